import enum
from dataclasses import dataclass
from typing import Optional, Protocol

from cutout.images import ImageRepresentation


class ProcessingState(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_busy(self) -> bool:
        return self in (ProcessingState.UPLOADING, ProcessingState.PROCESSING)


@dataclass(frozen=True)
class ProcessingStatus:
    state: ProcessingState = ProcessingState.IDLE
    reason: Optional[str] = None  # only set for FAILED


class ImageSink(Protocol):
    """Receives the images and progress flags produced by an upload.

    Calls are notifications; their return values are ignored.
    """

    async def publish_original(self, image: ImageRepresentation) -> None:
        ...

    async def publish_processed(self, image: ImageRepresentation) -> None:
        ...

    async def set_uploading(self, value: bool) -> None:
        ...

    async def set_processing(self, value: bool) -> None:
        ...


class Notifier(Protocol):
    """User-facing prompts: a blocking alert and a yes/no fallback question."""

    async def alert(self, message: str) -> None:
        ...

    async def confirm_fallback(self, reason: str) -> bool:
        ...


class UploadInProgressError(Exception):
    """Raised when an upload is submitted while another is in flight."""
    pass
