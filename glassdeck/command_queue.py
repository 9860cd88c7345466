import logging
import threading
import time
from typing import Callable, Dict, List, Optional
from .config import settings
from .models import Command

logger = logging.getLogger(__name__)

class CommandQueue:
    """
    Per-session outbox of instructions for the web view's audio element.

    The client drains it on every poll. Anything older than the TTL is
    dropped at drain time instead of being delivered: a seek computed
    against an old playback position must not land later.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.ttl_seconds = settings.COMMAND_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self._queues: Dict[str, List[Command]] = {}
        self._lock = threading.Lock()

    def enqueue(self, session_id: str, kind: str, value: Optional[float] = None) -> Command:
        command = Command(kind=kind, value=value, enqueued_at=self.clock())
        with self._lock:
            self._queues.setdefault(session_id, []).append(command)
        logger.debug(f"Queued {kind}({value}) for session {session_id}")
        return command

    def drain(self, session_id: str) -> List[Command]:
        # Reset unconditionally; expired entries are discarded, not retried
        with self._lock:
            queued = self._queues.pop(session_id, [])
        now = self.clock()
        fresh = [c for c in queued if (now - c.enqueued_at) < self.ttl_seconds]
        if len(fresh) < len(queued):
            logger.info(f"Dropped {len(queued) - len(fresh)} stale command(s) for session {session_id}")
        return fresh

    def pending(self, session_id: str) -> List[Command]:
        with self._lock:
            return list(self._queues.get(session_id, []))

    def discard(self, session_id: str):
        with self._lock:
            self._queues.pop(session_id, None)
