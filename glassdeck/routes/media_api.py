import logging
from typing import Optional
from fastapi import APIRouter, Depends
from ..deps import AppContext, current_session, get_context, optional_user_id
from ..errors import SessionNotFound, Unauthenticated
from ..models import MediaEvent, ScreenReport
from ..session import SessionState, effective_screen

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

SUPPORTED_EVENTS = {
    "playpause": {"name": "Play/Pause", "configurable": True},
    "nexttrack": {"name": "Next track", "configurable": True},
    "prevtrack": {"name": "Previous track", "configurable": True},
    "nextpage": {"name": "Next page", "configurable": False},
    "prevpage": {"name": "Previous page", "configurable": False},
    "play": {"name": "Play", "configurable": False},
    "pause": {"name": "Pause", "configurable": False},
    "stop": {"name": "Stop", "configurable": False},
    "skipforward": {"name": "Skip forward", "configurable": False},
    "skipbackward": {"name": "Skip backward", "configurable": False},
}


@router.get("/media/events")
def list_events():
    return {"success": True, "events": SUPPORTED_EVENTS, "totalEvents": len(SUPPORTED_EVENTS)}


@router.post("/media/event")
async def media_event(
    event: MediaEvent,
    user_id: Optional[str] = Depends(optional_user_id),
    ctx: AppContext = Depends(get_context),
):
    # The web view test page may address a session directly
    if user_id:
        state = ctx.registry.session_for_user(user_id)
    elif event.session_id:
        state = ctx.registry.get(event.session_id)
    else:
        raise Unauthenticated("Authentication or sessionId required")
    if state is None:
        raise SessionNotFound("No active glasses session")

    resolution = await ctx.engine.handle_event(state.session_id, event)

    page_info = None
    if state.pager is not None and resolution is not None and resolution.action.startswith("text-"):
        page_info = {
            "currentPage": state.pager.page_number,
            "totalPages": state.pager.total_pages,
            "pageInfo": state.pager.page_info,
        }

    return {
        "success": True,
        "eventType": event.event_type,
        "action": resolution.action if resolution else None,
        "origin": resolution.origin if resolution else None,
        "pageInfo": page_info,
    }


@router.post("/screen")
async def report_screen(
    report: ScreenReport,
    state: SessionState = Depends(current_session),
    ctx: AppContext = Depends(get_context),
):
    ctx.registry.set_screen(state.session_id, report.screen)
    return {"success": True, "screen": state.screen, "effectiveScreen": effective_screen(state)}
