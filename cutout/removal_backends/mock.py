import asyncio
import logging

from cutout.images import ImageRepresentation
from cutout.removal_backends.base import RemovalBackend

logger = logging.getLogger(__name__)


class MockBackend(RemovalBackend):
    """Offline stand-in: waits a fixed delay and returns the input unchanged."""

    def __init__(self, delay_seconds: float = 1.5):
        self._delay = max(0.0, delay_seconds)

    @property
    def delay_seconds(self) -> float:
        return self._delay

    async def remove_background(self, image: ImageRepresentation) -> ImageRepresentation:
        logger.info(f"Using mock background removal ({self._delay}s delay)")
        await asyncio.sleep(self._delay)
        return image
