from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Header, HTTPException
from .command_queue import CommandQueue
from .config import settings
from .engine import ControlEngine
from .errors import SessionNotFound, Unauthenticated
from .media_library import MediaLibrary
from .session import SessionRegistry, SessionState
from .subtitles import SubtitleCache
from .user_settings import UserSettingsStore


@dataclass
class AppContext:
    registry: SessionRegistry
    store: UserSettingsStore
    queue: CommandQueue
    subtitles: SubtitleCache
    library: MediaLibrary
    engine: ControlEngine


def build_context(display, settings_dir: Optional[str] = None, audio_dir: Optional[str] = None,
                  queue: Optional[CommandQueue] = None) -> AppContext:
    queue = queue or CommandQueue()
    registry = SessionRegistry(queue)
    store = UserSettingsStore(settings_dir if settings_dir is not None else settings.SETTINGS_DIR)
    subtitles = SubtitleCache()
    library = MediaLibrary(audio_dir if audio_dir is not None else settings.AUDIO_SOURCE_DIR)
    engine = ControlEngine(registry, store, queue, subtitles, display)
    return AppContext(registry, store, queue, subtitles, library, engine)


# Set by main (or tests) before the app serves requests
context: Optional[AppContext] = None


def get_context() -> AppContext:
    if context is None:
        raise HTTPException(status_code=503, detail="Service starting")
    return context


def get_token(x_token: Optional[str] = Header(None, alias="X-Token")):
    if settings.HTTP_SERVER_TOKEN and x_token != settings.HTTP_SERVER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise Unauthenticated("Authentication required")
    return x_user_id


def optional_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[str]:
    return x_user_id or None


def current_session(user_id: str = Depends(get_user_id), ctx: AppContext = Depends(get_context)) -> SessionState:
    state = ctx.registry.session_for_user(user_id)
    if state is None:
        raise SessionNotFound("No active glasses session. Restart the app on your glasses.")
    return state
