"""Exception handlers — keep every error in the relay's JSON envelope.

Learn: FastAPI answers malformed bodies with 422 {"detail": [...]}.
Trigger sources only understand {"status": "error", "message": ...},
so validation failures are rewritten to that shape with a 400.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wsrelay.schemas.relay import ErrorResponse

logger = structlog.get_logger()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(
        "relay.invalid_request",
        path=request.url.path,
        errors=len(exc.errors()),
    )
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message="Invalid request body.").model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
