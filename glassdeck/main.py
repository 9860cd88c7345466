import asyncio
import logging
import signal
import sys
import uvicorn

from .config import settings
from .clients.display_client import DisplayClient
from . import deps
from . import server

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Silence noisy libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("main")

class GlassdeckService:
    def __init__(self):
        self.display = DisplayClient()
        self.context = deps.build_context(self.display)

        # Link the shared context to the HTTP layer
        deps.context = self.context

    async def start(self):
        logger.info(f"Starting {settings.PACKAGE_NAME} on {settings.HOST}:{settings.PORT}")
        if not settings.DISPLAY_BRIDGE_URL:
            logger.warning("DISPLAY_BRIDGE_URL is not set, glasses output is only logged")
        if not settings.AUDIO_SOURCE_DIR:
            logger.warning("AUDIO_SOURCE_DIR is not set, the audio player has no media")

        config = uvicorn.Config(server.app, host=settings.HOST, port=settings.PORT, log_level="warning")
        try:
            await uvicorn.Server(config).serve()
        except asyncio.CancelledError:
            pass
        finally:
            await self.display.close()

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(0)

if __name__ == "__main__":
    signal.signal(signal.SIGTERM, handle_sigterm)
    service = GlassdeckService()
    try:
        asyncio.run(service.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
