"""Liveness endpoint."""

from fastapi import APIRouter

from backend.core.config import settings
from backend.services.simulation_manager import SessionManager

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "version": settings.VERSION,
        "active_sessions": SessionManager().active_count,
    }
