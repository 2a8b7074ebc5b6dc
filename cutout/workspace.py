import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cutout.crud import update_upload
from cutout.images import ImageRepresentation
from cutout.messages import fallback_prompt
from cutout.state import ProcessingStatus

logger = logging.getLogger(__name__)


class NoPendingPromptError(Exception):
    """Raised when a fallback answer arrives with no question pending."""
    pass


class FallbackPromptBroker:
    """Turns the fallback question into a pending prompt answered over HTTP.

    ``ask`` suspends until ``answer`` is called or the timeout expires; an
    unanswered prompt counts as a decline.
    """

    def __init__(self, timeout: Optional[float] = 300.0):
        self._timeout = timeout
        self._pending: Optional[asyncio.Future] = None
        self._message: Optional[str] = None

    @property
    def pending_message(self) -> Optional[str]:
        if self._pending is None or self._pending.done():
            return None
        return self._message

    async def ask(self, message: str) -> bool:
        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        self._message = message
        try:
            return await asyncio.wait_for(self._pending, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Fallback prompt unanswered after {self._timeout}s, declining"
            )
            return False
        finally:
            self._pending = None
            self._message = None

    def answer(self, accept: bool) -> None:
        if self._pending is None or self._pending.done():
            raise NoPendingPromptError("No fallback prompt is pending")
        self._pending.set_result(accept)


class Workspace:
    """Sink and notifier that write the current upload into its DB record.

    Each call commits its own transaction so readers never observe a
    partially applied update.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        prompts: FallbackPromptBroker,
        locale: str = "zh",
    ):
        self._session_factory = session_factory
        self._prompts = prompts
        self._locale = locale
        self._upload_id: Optional[str] = None

    @property
    def upload_id(self) -> Optional[str]:
        return self._upload_id

    @property
    def prompts(self) -> FallbackPromptBroker:
        return self._prompts

    def bind(self, upload_id: str) -> None:
        self._upload_id = upload_id

    async def _update(self, **values) -> None:
        if self._upload_id is None:
            logger.warning(f"No upload bound, dropping update of {sorted(values)}")
            return
        async with self._session_factory() as db:
            await update_upload(db, self._upload_id, **values)
            await db.commit()

    async def publish_original(self, image: ImageRepresentation) -> None:
        await self._update(original_mime=image.mime_type, original_data=image.data)

    async def publish_processed(self, image: ImageRepresentation) -> None:
        await self._update(processed_mime=image.mime_type, processed_data=image.data)

    async def set_uploading(self, value: bool) -> None:
        await self._update(is_uploading=value)

    async def set_processing(self, value: bool) -> None:
        await self._update(is_processing=value)

    async def record_state(self, status: ProcessingStatus) -> None:
        await self._update(state=status.state.value, error_message=status.reason)

    async def alert(self, message: str) -> None:
        logger.info(f"[{self._upload_id}] Alert: {message}")
        await self._update(notice=message)

    async def confirm_fallback(self, reason: str) -> bool:
        return await self._prompts.ask(fallback_prompt(reason, self._locale))
