import logging
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from ..deps import AppContext, current_session, get_context, optional_user_id
from ..models import AUDIO_CYCLE_SPEED, AUDIO_TOGGLE_REPEAT, PlaybackReport, SubtitleEndReport
from ..session import SessionState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audio")
# The <audio> element cannot send our headers, so streaming sits outside the token check
stream_router = APIRouter(prefix="/api/audio")


@router.get("/directories")
def list_directories(ctx: AppContext = Depends(get_context)):
    directories = []
    if ctx.library.available:
        directories.append({"id": "default", "name": ctx.library.root.name, "path": str(ctx.library.root)})
    return {"success": True, "directories": directories}


@router.get("/files")
def list_files(month: Optional[str] = None, ctx: AppContext = Depends(get_context)):
    all_files = ctx.library.list_files()
    files = [f for f in all_files if f.month == month] if month else all_files
    return {
        "success": True,
        "files": [f.model_dump() for f in files],
        "months": ctx.library.months(all_files),
    }


@stream_router.get("/stream/{media_id}")
def stream_audio(media_id: str, ctx: AppContext = Depends(get_context)):
    # FileResponse answers Range requests with 206 partial content
    return FileResponse(ctx.library.audio_path(media_id), media_type="audio/wav")


@router.get("/subtitles/{media_id}")
async def get_subtitles(
    media_id: str,
    user_id: Optional[str] = Depends(optional_user_id),
    ctx: AppContext = Depends(get_context),
):
    track = ctx.subtitles.get(media_id)
    if track is None:
        track = ctx.subtitles.load(media_id, ctx.library.subtitle_path(media_id))

    state = ctx.registry.session_for_user(user_id) if user_id else None
    if state is not None:
        ctx.engine.bind_media(state, media_id)

    return {"success": True, "subtitles": [entry.model_dump() for entry in track]}


@router.post("/state")
async def report_state(
    report: PlaybackReport,
    state: SessionState = Depends(current_session),
    ctx: AppContext = Depends(get_context),
):
    await ctx.engine.report_playback(state, report)
    return {"success": True}


@router.post("/repeat")
async def toggle_repeat(state: SessionState = Depends(current_session), ctx: AppContext = Depends(get_context)):
    await ctx.engine.execute(AUDIO_TOGGLE_REPEAT, None, state.session_id, announce=False)
    return {"success": True, "repeat": state.repeat}


@router.post("/speed")
async def cycle_speed(state: SessionState = Depends(current_session), ctx: AppContext = Depends(get_context)):
    await ctx.engine.execute(AUDIO_CYCLE_SPEED, None, state.session_id, announce=False)
    return {"success": True, "speed": state.speed}


@router.get("/settings")
def playback_settings(state: SessionState = Depends(current_session)):
    return {"success": True, "repeat": state.repeat, "speed": state.speed}


@router.get("/commands")
async def poll_commands(state: SessionState = Depends(current_session), ctx: AppContext = Depends(get_context)):
    commands = ctx.queue.drain(state.session_id)
    if commands:
        logger.debug(f"Delivering {len(commands)} command(s) to {state.session_id}")
    return {"success": True, "commands": [c.model_dump() for c in commands]}


@router.post("/subtitle-end")
async def subtitle_end(
    report: SubtitleEndReport,
    state: SessionState = Depends(current_session),
    ctx: AppContext = Depends(get_context),
):
    command = ctx.engine.subtitle_ended(state, report.audio_id, report.subtitle_index)
    if command is None:
        return {"success": True}
    return {"success": True, "seekTo": command.value}
