import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cutout.config import Settings
from cutout.crud import create_upload
from cutout.decoder import DecodeError, ImageDecoder
from cutout.images import RawFile
from cutout.models import UploadRecord
from cutout.orchestrator import UploadOrchestrator
from cutout.removal_backends.base import RemovalError
from cutout.removal_client import BackgroundRemovalClient, get_removal_client
from cutout.state import ProcessingStatus, UploadInProgressError
from cutout.validation import FileValidator
from cutout.workspace import FallbackPromptBroker, Workspace

logger = logging.getLogger(__name__)


class UploadManager:
    """Runs the orchestrator as a background task, one upload at a time."""

    def __init__(self):
        self._orchestrator: Optional[UploadOrchestrator] = None
        self._workspace: Optional[Workspace] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._removal_client: Optional[BackgroundRemovalClient] = None
        self._task: Optional[asyncio.Task] = None
        self._reserved = False

    async def start(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        removal_client: Optional[BackgroundRemovalClient] = None,
    ) -> None:
        self._session_factory = session_factory
        self._removal_client = removal_client or get_removal_client()
        self._workspace = Workspace(
            session_factory,
            FallbackPromptBroker(timeout=settings.FALLBACK_PROMPT_TIMEOUT_SECONDS),
            locale=settings.LOCALE,
        )
        self._orchestrator = UploadOrchestrator(
            validator=FileValidator(max_size=settings.max_file_size_bytes),
            decoder=ImageDecoder(),
            removal_client=self._removal_client,
            sink=self._workspace,
            notifier=self._workspace,
            locale=settings.LOCALE,
            on_state_change=self._workspace.record_state,
        )
        logger.info(f"Upload manager started ({self._removal_client.mode} mode)")

    async def stop(self) -> None:
        """Cancel the in-flight upload, if any, and wait for it."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Upload manager stopped")

    @property
    def is_running(self) -> bool:
        return self._orchestrator is not None

    @property
    def is_busy(self) -> bool:
        if self._reserved:
            return True
        if self._task is not None and not self._task.done():
            return True
        return self._orchestrator is not None and self._orchestrator.is_busy

    @property
    def status(self) -> ProcessingStatus:
        if self._orchestrator is None:
            return ProcessingStatus()
        return self._orchestrator.status

    @property
    def current_upload_id(self) -> Optional[str]:
        return self._workspace.upload_id if self._workspace else None

    @property
    def pending_prompt(self) -> Optional[str]:
        return self._workspace.prompts.pending_message if self._workspace else None

    @property
    def mode(self) -> Optional[str]:
        return self._removal_client.mode if self._removal_client else None

    async def submit(self, file: RawFile) -> UploadRecord:
        """Record a new upload and start processing it in the background."""
        if self._orchestrator is None or self._session_factory is None:
            raise RuntimeError("Upload manager not started")
        if self.is_busy:
            raise UploadInProgressError("Another upload is in progress")

        self._reserved = True
        try:
            async with self._session_factory() as db:
                record = await create_upload(
                    db, file.filename, file.content_type, file.size
                )
                await db.commit()
            self._workspace.bind(record.id)
            self._task = asyncio.create_task(self._run(record.id, file))
        finally:
            self._reserved = False

        logger.info(f"Accepted upload {record.id} ('{file.filename}')")
        return record

    def answer_fallback(self, accept: bool) -> None:
        if self._workspace is None:
            raise RuntimeError("Upload manager not started")
        self._workspace.prompts.answer(accept)

    async def wait(self) -> None:
        """Wait for the in-flight upload to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self, upload_id: str, file: RawFile) -> None:
        try:
            await self._orchestrator.handle_upload(file)
        except (DecodeError, RemovalError) as e:
            logger.info(f"[{upload_id}] Upload ended in failure: {e}")
        except Exception as e:
            logger.error(f"[{upload_id}] Unexpected error: {e}", exc_info=True)


# Singleton instance
upload_manager = UploadManager()
