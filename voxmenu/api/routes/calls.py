"""Management API: live calls, menu configuration and stored recordings."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from voxmenu.config import Settings, get_settings
from voxmenu.core.menu import Menu

router = APIRouter()


class CallListResponse(BaseModel):
    """Calls currently shown on the call board."""

    active_calls: int
    calls: list[dict[str, Any]]


class RecordingListResponse(BaseModel):
    total: int
    files: list[dict[str, Any]]


@router.get("/calls", response_model=CallListResponse)
async def list_calls(request: Request) -> CallListResponse:
    calls = request.app.state.call_board.snapshot()
    return CallListResponse(active_calls=request.app.state.dispatcher.active_count, calls=calls)


@router.get("/menu")
async def get_menu(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Resolved key map, as the menu loop sees it."""
    return {
        "greeting_clip": settings.greeting_clip,
        "keys": Menu(settings.key_mappings).as_dict(),
    }


@router.get("/recordings", response_model=RecordingListResponse)
async def list_recordings(request: Request) -> RecordingListResponse:
    files = [f.to_dict() for f in request.app.state.storage.list_files()]
    return RecordingListResponse(total=len(files), files=files)
