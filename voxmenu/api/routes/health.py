"""Health check endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with dependency status (GET /health/detailed)
"""

import shutil

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from voxmenu.config import Settings, get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    active_calls: int
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> DetailedHealthResponse:
    """Detailed health check including dependency status.

    Checks:
    - Storage directories and the greeting clip
    - ffmpeg (needed to decode synthesized speech)
    - External service configuration (not called)
    """
    checks: dict[str, str] = {}

    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        checks["storage"] = "error: not initialized"
    else:
        checks["storage"] = "ok" if storage.recordings_dir.is_dir() else "error: missing dirs"
        checks["greeting_clip"] = (
            "ok" if storage.clip_path(settings.greeting_clip).is_file() else "missing"
        )

    checks["ffmpeg"] = "ok" if shutil.which("ffmpeg") else "missing"
    checks["groq"] = "configured" if settings.groq_api_key else "missing"
    checks["tts"] = settings.tts_provider
    checks["recording"] = "enabled" if settings.recording_enabled else "disabled"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    active_calls = dispatcher.active_count if dispatcher is not None else 0

    status = "healthy" if checks["storage"] == "ok" else "degraded"
    return DetailedHealthResponse(
        status=status,
        checks=checks,
        active_calls=active_calls,
        version="0.1.0",
    )
