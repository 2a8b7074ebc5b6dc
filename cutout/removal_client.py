import logging
from typing import Awaitable, Callable, Optional

from cutout.config import get_settings
from cutout.images import ImageRepresentation
from cutout.removal_backends.base import ConfigMissingError, NetworkError, ServiceError
from cutout.removal_backends.mock import MockBackend
from cutout.removal_backends.removebg import RemoveBgBackend

logger = logging.getLogger(__name__)

ConfirmFallback = Callable[[str], Awaitable[bool]]


class BackgroundRemovalClient:
    """Calls the live backend, degrading to the mock backend.

    Without a usable credential the mock backend is used silently. When the
    live call fails, ``confirm_fallback`` decides between the mock backend
    and re-raising the original error; without it the error is re-raised.
    """

    def __init__(self, live: RemoveBgBackend, mock: MockBackend):
        self._live = live
        self._mock = mock

    @property
    def mode(self) -> str:
        return "live" if self._live.is_configured else "mock"

    async def remove_background(
        self,
        image: ImageRepresentation,
        confirm_fallback: Optional[ConfirmFallback] = None,
    ) -> ImageRepresentation:
        try:
            return await self._live.remove_background(image)
        except ConfigMissingError:
            logger.warning("No REMOVE_BG_API_KEY found. Using mock mode.")
            return await self._mock.remove_background(image)
        except (NetworkError, ServiceError) as e:
            logger.error(f"Background removal failed: {e}")
            if confirm_fallback is not None and await confirm_fallback(str(e)):
                logger.info("User accepted mock fallback")
                return await self._mock.remove_background(image)
            logger.info("User declined mock fallback")
            raise


def get_removal_client() -> BackgroundRemovalClient:
    settings = get_settings()
    live = RemoveBgBackend(
        api_key=settings.REMOVE_BG_API_KEY,
        url=settings.REMOVE_BG_URL,
        timeout=settings.REMOVE_BG_TIMEOUT_SECONDS,
    )
    return BackgroundRemovalClient(live, MockBackend(settings.MOCK_DELAY_SECONDS))

