"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from landed_cost.modules.economics.router import router as economics_router
from landed_cost.schemas.responses import ERROR_RESPONSES

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(economics_router, responses=ERROR_RESPONSES)
