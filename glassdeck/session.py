import logging
import time
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict
from .command_queue import CommandQueue
from .models import CONTENT_SCREENS, SCREEN_TOP, PlaybackState
from .text_pager import TextPager

logger = logging.getLogger(__name__)

class SessionState(BaseModel):
    """Everything the server holds for one connected pair of glasses."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    user_id: str
    connected_at: float = 0.0

    screen: str = SCREEN_TOP
    last_content_screen: Optional[str] = None

    # Text reader
    text: Optional[str] = None
    file_type: str = "text"
    pager: Optional[TextPager] = None

    # Audio player
    media_id: Optional[str] = None
    playback: Optional[PlaybackState] = None
    repeat: bool = False
    speed: float = 1.0


def effective_screen(state: SessionState) -> str:
    """
    Screen whose actions a button press should reach.

    A content screen is used as is. Utility screens (settings, bt-controller,
    top) fall back to the last content screen the user had open; if there
    was none, the utility screen itself is returned.
    """
    if state.screen in CONTENT_SCREENS:
        return state.screen
    return state.last_content_screen or state.screen


class SessionRegistry:
    def __init__(self, queue: CommandQueue):
        self.queue = queue
        self.sessions: Dict[str, SessionState] = {}
        self.user_sessions: Dict[str, str] = {}

    def register(self, user_id: str, session_id: str) -> str:
        previous = self.user_sessions.get(user_id)
        if previous and previous != session_id:
            logger.info(f"User {user_id} reconnected, replacing session {previous}")
            self.teardown(previous)

        self.sessions[session_id] = SessionState(session_id=session_id, user_id=user_id, connected_at=time.time())
        self.user_sessions[user_id] = session_id
        logger.info(f"Registered session {session_id} for user {user_id}")
        return session_id

    def get(self, session_id: str) -> Optional[SessionState]:
        return self.sessions.get(session_id)

    def session_for_user(self, user_id: str) -> Optional[SessionState]:
        session_id = self.user_sessions.get(user_id)
        return self.sessions.get(session_id) if session_id else None

    def user_for_session(self, session_id: str) -> Optional[str]:
        state = self.sessions.get(session_id)
        return state.user_id if state else None

    def set_screen(self, session_id: str, screen: str):
        state = self.sessions.get(session_id)
        if not state:
            return
        state.screen = screen
        if screen in CONTENT_SCREENS:
            state.last_content_screen = screen

    def get_screen(self, session_id: str) -> str:
        state = self.sessions.get(session_id)
        return state.screen if state else SCREEN_TOP

    def teardown(self, session_id: str):
        state = self.sessions.pop(session_id, None)
        self.queue.discard(session_id)
        if state is None:
            return
        if self.user_sessions.get(state.user_id) == session_id:
            del self.user_sessions[state.user_id]
        logger.info(f"Session {session_id} torn down")

    def __len__(self):
        return len(self.sessions)
