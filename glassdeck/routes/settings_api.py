import logging
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends
from ..deps import AppContext, get_context, get_user_id
from ..errors import ValidationFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings")

ACTION_CATALOGUE = {
    "text-prev-page": {"name": "Previous page", "description": "Text reader: go to the previous page", "category": "text"},
    "text-next-page": {"name": "Next page", "description": "Text reader: go to the next page", "category": "text"},
    "audio-play": {"name": "Play", "description": "Audio player: start playback", "category": "audio"},
    "audio-pause": {"name": "Pause", "description": "Audio player: pause playback", "category": "audio"},
    "audio-skip-forward": {"name": "Skip +10s", "description": "Audio player: jump forward", "category": "audio"},
    "audio-skip-backward": {"name": "Skip -10s", "description": "Audio player: jump back", "category": "audio"},
    "audio-next-subtitle": {"name": "Next subtitle", "description": "Audio player: seek to the next subtitle", "category": "audio"},
    "audio-prev-subtitle": {"name": "Previous subtitle", "description": "Audio player: seek to the previous subtitle", "category": "audio"},
    "audio-toggle-repeat": {"name": "Repeat", "description": "Audio player: toggle subtitle repeat", "category": "audio"},
    "audio-cycle-speed": {"name": "Speed", "description": "Audio player: cycle playback speed", "category": "audio"},
}

TRIGGER_CATALOGUE = {
    "playpause": {"name": "Play/Pause button", "description": "Single or double click"},
    "nexttrack": {"name": "Next track button", "description": "Single or double click"},
    "prevtrack": {"name": "Previous track button", "description": "Single or double click"},
    "none": {"name": "None", "description": "Not bound"},
}


@router.get("/media")
def get_media_settings(user_id: str = Depends(get_user_id), ctx: AppContext = Depends(get_context)):
    user_settings = ctx.store.get(user_id)
    return {"success": True, "settings": user_settings.model_dump(by_alias=True, exclude_none=True)}


@router.put("/media")
async def put_media_settings(
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_user_id),
    ctx: AppContext = Depends(get_context),
):
    action_mappings = payload.get("actionMappings")
    if not isinstance(action_mappings, dict):
        raise ValidationFailure("actionMappings is required")

    updated = ctx.store.update(user_id, action_mappings)
    return {"success": True, "settings": updated.model_dump(by_alias=True, exclude_none=True)}


@router.get("/actions")
def list_actions():
    return {"success": True, "actions": ACTION_CATALOGUE}


@router.get("/triggers")
def list_triggers():
    return {"success": True, "triggers": TRIGGER_CATALOGUE}
