import logging
from typing import Awaitable, Callable, Optional

from cutout.decoder import DecodeError, ImageDecoder
from cutout.images import RawFile
from cutout.messages import get_message
from cutout.removal_backends.base import RemovalError
from cutout.removal_client import BackgroundRemovalClient
from cutout.state import (
    ImageSink,
    Notifier,
    ProcessingState,
    ProcessingStatus,
    UploadInProgressError,
)
from cutout.validation import FileValidator, TooLargeError, ValidationError

logger = logging.getLogger(__name__)

StateListener = Callable[[ProcessingStatus], Awaitable[None]]


class UploadOrchestrator:
    """Runs one upload at a time: validate, decode, publish, remove, publish.

    Uploads submitted while another is uploading or processing are rejected
    with UploadInProgressError. Every exit path clears the in-progress flags
    on the sink.
    """

    def __init__(
        self,
        validator: FileValidator,
        decoder: ImageDecoder,
        removal_client: BackgroundRemovalClient,
        sink: ImageSink,
        notifier: Notifier,
        locale: str = "zh",
        on_state_change: Optional[StateListener] = None,
    ):
        self._validator = validator
        self._decoder = decoder
        self._removal_client = removal_client
        self._sink = sink
        self._notifier = notifier
        self._locale = locale
        self._on_state_change = on_state_change
        self._status = ProcessingStatus()

    @property
    def status(self) -> ProcessingStatus:
        return self._status

    @property
    def is_busy(self) -> bool:
        return self._status.state.is_busy

    async def handle_upload(self, file: RawFile) -> None:
        # No await before the state leaves IDLE, so the busy check and the
        # transition cannot interleave with another call.
        if self.is_busy:
            raise UploadInProgressError(
                f"Upload already {self._status.state.value}"
            )
        self._status = ProcessingStatus(ProcessingState.IDLE)

        try:
            self._validator.validate(file)
        except ValidationError as e:
            logger.info(f"Rejected upload '{file.filename}': {e}")
            await self._notifier.alert(self._validation_message(e))
            return

        self._status = ProcessingStatus(ProcessingState.UPLOADING)
        try:
            await self._notify_state()
            await self._sink.set_uploading(True)
            original = await self._decoder.decode(file)
            await self._sink.publish_original(original)
            await self._sink.set_uploading(False)

            await self._set_state(ProcessingStatus(ProcessingState.PROCESSING))
            await self._sink.set_processing(True)
            processed = await self._removal_client.remove_background(
                original, self._notifier.confirm_fallback
            )
            await self._sink.publish_processed(processed)
            await self._sink.set_processing(False)
            await self._set_state(ProcessingStatus(ProcessingState.DONE))
            logger.info(f"Upload '{file.filename}' done")
        except (DecodeError, RemovalError) as e:
            logger.error(f"Upload '{file.filename}' failed: {e}")
            await self._fail(str(e))
            raise
        except Exception as e:
            logger.error(f"Unexpected error during upload: {e}", exc_info=True)
            await self._fail(str(e))
            raise
        finally:
            if self.is_busy:
                self._status = ProcessingStatus(ProcessingState.FAILED, "interrupted")
                await self._notify_state()
            await self._sink.set_uploading(False)
            await self._sink.set_processing(False)

    async def _fail(self, reason: str) -> None:
        # State leaves the busy range before any further await
        self._status = ProcessingStatus(ProcessingState.FAILED, reason)
        await self._notify_state()
        await self._sink.set_uploading(False)
        await self._sink.set_processing(False)
        try:
            await self._notifier.alert(get_message("upload_failed", self._locale))
        except Exception as e:
            # The upload error is the one the caller must see
            logger.error(f"Failed to alert user: {e}", exc_info=True)

    async def _set_state(self, status: ProcessingStatus) -> None:
        self._status = status
        await self._notify_state()

    async def _notify_state(self) -> None:
        if self._on_state_change is not None:
            await self._on_state_change(self._status)

    def _validation_message(self, error: ValidationError) -> str:
        if isinstance(error, TooLargeError):
            max_mb = error.max_size // (1024 * 1024)
            return get_message("too_large", self._locale, max_mb=max_mb)
        return get_message("unsupported_type", self._locale)
