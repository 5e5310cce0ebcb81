"""API route aggregation.

All HTTP routers registered here get mounted in main.py. The relay has
no auth layer and no version prefix: trigger sources and monitors call
POST /trigger and GET /health directly.
"""

from fastapi import APIRouter

from wsrelay.api.health import router as health_router
from wsrelay.api.trigger import router as trigger_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(trigger_router, tags=["trigger"])
