"""APIRouter registration for the form session service."""

from __future__ import annotations

from fastapi import APIRouter

from formflow.routes.conditions import router as conditions_router
from formflow.routes.navigation import router as navigation_router
from formflow.routes.progress import router as progress_router
from formflow.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(sessions_router, tags=["Sessions", "Variables", "FlowStates"])
api_router.include_router(navigation_router, tags=["Navigation"])
api_router.include_router(conditions_router, tags=["Conditions"])
api_router.include_router(progress_router, tags=["Progress"])

__all__ = ["api_router"]
