import logging
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from . import deps
from .config import settings
from .deps import AppContext, get_context, get_token
from .errors import GlassdeckError
from .models import SessionRegistration
from .routes import audio_api, media_api, settings_api, text_api

logger = logging.getLogger(__name__)

app = FastAPI(title="glassdeck")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(GlassdeckError)
async def glassdeck_error(request: Request, exc: GlassdeckError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return _error(400, f"Invalid request: {location} {first.get('msg', '')}".strip())


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error(500, "Internal server error")


@app.get("/healthz")
def healthz():
    if deps.context is None:
        return {"status": "starting"}
    return {"status": "ok", "sessions": len(deps.context.registry)}


@app.get("/status", dependencies=[Depends(get_token)])
def status(ctx: AppContext = Depends(get_context)):
    return {
        "package": settings.PACKAGE_NAME,
        "active_sessions": len(ctx.registry),
        "cached_subtitle_tracks": len(ctx.subtitles),
        "config": {
            "command_ttl_seconds": ctx.queue.ttl_seconds,
            "default_skip_seconds": settings.DEFAULT_SKIP_SECONDS,
            "audio_source": settings.AUDIO_SOURCE_DIR or None,
            "display_bridge": bool(settings.DISPLAY_BRIDGE_URL),
        },
    }


# Webhooks from the glasses bridge
@app.post("/api/sessions", dependencies=[Depends(get_token)])
async def register_session(registration: SessionRegistration, ctx: AppContext = Depends(get_context)):
    session_id = ctx.registry.register(registration.user_id, registration.session_id)
    await ctx.engine.greet(session_id)
    return {"success": True, "sessionId": session_id}


@app.delete("/api/sessions/{session_id}", dependencies=[Depends(get_token)])
async def disconnect_session(session_id: str, ctx: AppContext = Depends(get_context)):
    known = ctx.registry.get(session_id) is not None
    ctx.registry.teardown(session_id)
    return {"success": True, "removed": known}


for module in (settings_api, media_api, text_api, audio_api):
    app.include_router(module.router, dependencies=[Depends(get_token)])
app.include_router(audio_api.stream_router)
