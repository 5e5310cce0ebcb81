"""Trigger API — one POST, one broadcast.

Learn: The trigger source does not know or care which devices are
connected. It gets back one of three answers:
- 400 error: no usable "message" field, nothing sent
- 200 info: accepted, but nobody is connected
- 200 success: broadcast, with the number of clients targeted
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from wsrelay.dependencies import get_relay_service
from wsrelay.exceptions import MissingPayloadError
from wsrelay.schemas.relay import ErrorResponse, TriggerRequest, TriggerResponse
from wsrelay.services.relay_service import RelayService

router = APIRouter()


@router.post(
    "/trigger",
    response_model=TriggerResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def trigger(
    body: Optional[TriggerRequest] = None,
    service: RelayService = Depends(get_relay_service),
):
    """Broadcast body.message to every connected WebSocket client."""
    try:
        outcome = await service.trigger(body.message if body else None)
    except MissingPayloadError as e:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(message=e.detail).model_dump(),
        )

    if not outcome.broadcast:
        return TriggerResponse(status="info", message=service.no_clients_message())

    return TriggerResponse(
        status="success",
        message="Message broadcasted successfully.",
        clients_count=outcome.clients_count,
    )
