import logging
import httpx
from typing import Optional, Protocol
from ..config import settings

logger = logging.getLogger(__name__)

VIEW_MAIN = "main"            # primary, in front of the eye
VIEW_DASHBOARD = "dashboard"  # secondary, head-up dashboard


class DisplaySurface(Protocol):
    async def show_text_wall(self, session_id: str, text: str, view: str = VIEW_MAIN,
                             duration_ms: Optional[int] = None): ...


class DisplayClient:
    """
    Pushes text walls to the glasses through the device bridge.

    Display is fire-and-forget: a bridge failure is logged, never raised,
    since the state change that triggered it has already been applied.
    Without DISPLAY_BRIDGE_URL the text is only logged.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        base_url = base_url if base_url is not None else settings.DISPLAY_BRIDGE_URL
        token = token if token is not None else settings.DISPLAY_BRIDGE_TOKEN
        self.client: Optional[httpx.AsyncClient] = None
        if base_url:
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            self.client = httpx.AsyncClient(
                base_url=base_url.rstrip('/'),
                headers=headers,
                timeout=settings.REQUEST_TIMEOUT_SECONDS
            )

    async def show_text_wall(self, session_id: str, text: str, view: str = VIEW_MAIN,
                             duration_ms: Optional[int] = None):
        if self.client is None:
            logger.info(f"[{session_id}/{view}] {text[:80]!r}")
            return

        payload = {"text": text, "view": view}
        if duration_ms is not None:
            payload["durationMs"] = duration_ms
        try:
            resp = await self.client.post(f"/sessions/{session_id}/layouts/text-wall", json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to push text wall to session {session_id}: {e}")

    async def close(self):
        if self.client is not None:
            await self.client.aclose()
