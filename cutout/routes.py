import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from cutout.config import get_settings
from cutout.crud import delete_upload, get_upload, list_uploads
from cutout.database import get_db
from cutout.images import InMemoryFile
from cutout.messages import get_message
from cutout.models import UploadRecord
from cutout.schemas import (
    FallbackDecision,
    HealthResponse,
    StatusResponse,
    UploadAcceptedResponse,
    UploadDetail,
    UploadListItem,
    UploadListResponse,
)
from cutout.state import ProcessingState, UploadInProgressError
from cutout.validation import TooLargeError, UnsupportedTypeError, get_file_validator
from cutout.worker import upload_manager
from cutout.workspace import NoPendingPromptError

logger = logging.getLogger(__name__)

upload_router = APIRouter()
health_router = APIRouter()

BUSY_DETAIL = "Another upload is in progress."


def _detail(record: UploadRecord) -> UploadDetail:
    return UploadDetail(
        upload_id=record.upload_id,
        filename=record.filename,
        content_type=record.content_type,
        size_bytes=record.size_bytes,
        state=record.state,
        error_message=record.error_message,
        notice=record.notice,
        is_uploading=record.is_uploading,
        is_processing=record.is_processing,
        has_original=record.has_original,
        has_processed=record.has_processed,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


async def _get_or_404(db: AsyncSession, upload_id: str) -> UploadRecord:
    record = await get_upload(db, upload_id)
    if not record:
        raise HTTPException(status_code=404, detail="Upload not found")
    return record


@upload_router.post("/upload", response_model=UploadAcceptedResponse, status_code=202)
async def submit_upload(file: UploadFile):
    settings = get_settings()

    if upload_manager.is_busy:
        logger.info(f"Rejected upload '{file.filename}': busy")
        raise HTTPException(status_code=409, detail=BUSY_DETAIL)

    # Reject before reading the body into memory
    try:
        get_file_validator().validate(file)
    except UnsupportedTypeError:
        raise HTTPException(
            status_code=400,
            detail=get_message("unsupported_type", settings.LOCALE),
        )
    except TooLargeError:
        raise HTTPException(
            status_code=413,
            detail=get_message(
                "too_large", settings.LOCALE, max_mb=settings.MAX_FILE_SIZE_MB
            ),
        )

    # The request's file handle is closed once the response is sent
    data = await file.read()
    raw_file = InMemoryFile(
        data=data, content_type=file.content_type, filename=file.filename
    )

    try:
        record = await upload_manager.submit(raw_file)
    except UploadInProgressError:
        raise HTTPException(status_code=409, detail=BUSY_DETAIL)

    return UploadAcceptedResponse(
        upload_id=record.upload_id,
        message=f"Upload accepted ({len(data)} bytes).",
    )


@upload_router.get("/status", response_model=StatusResponse)
async def get_status():
    status = upload_manager.status
    return StatusResponse(
        state=status.state.value,
        reason=status.reason,
        upload_id=upload_manager.current_upload_id,
        is_uploading=status.state == ProcessingState.UPLOADING,
        is_processing=status.state == ProcessingState.PROCESSING,
        pending_prompt=upload_manager.pending_prompt,
    )


@upload_router.post("/fallback", status_code=204)
async def answer_fallback(decision: FallbackDecision):
    try:
        upload_manager.answer_fallback(decision.accept)
    except NoPendingPromptError:
        raise HTTPException(status_code=409, detail="No fallback prompt is pending")
    return Response(status_code=204)


@upload_router.get("/uploads", response_model=UploadListResponse)
async def list_all_uploads(
    state: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    db: AsyncSession = Depends(get_db),
):
    if page_size > 100:
        raise HTTPException(status_code=400, detail="page_size must be <= 100")
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")

    uploads, total = await list_uploads(db, state=state, page=page, page_size=page_size)

    return UploadListResponse(
        uploads=[
            UploadListItem(
                upload_id=u.upload_id,
                filename=u.filename,
                state=u.state,
                has_processed=u.has_processed,
                created_at=u.created_at,
            )
            for u in uploads
        ],
        total=total,
        page=page,
        page_size=page_size,
    )


@upload_router.get("/uploads/{upload_id}", response_model=UploadDetail)
async def get_upload_detail(upload_id: str, db: AsyncSession = Depends(get_db)):
    return _detail(await _get_or_404(db, upload_id))


@upload_router.get("/uploads/{upload_id}/original")
async def get_original_image(upload_id: str, db: AsyncSession = Depends(get_db)):
    record = await _get_or_404(db, upload_id)
    if not record.has_original:
        raise HTTPException(status_code=404, detail="Original image not available")
    return Response(content=record.original_data, media_type=record.original_mime)


@upload_router.get("/uploads/{upload_id}/processed")
async def get_processed_image(upload_id: str, db: AsyncSession = Depends(get_db)):
    record = await _get_or_404(db, upload_id)
    if not record.has_processed:
        raise HTTPException(status_code=404, detail="Processed image not available")
    return Response(content=record.processed_data, media_type=record.processed_mime)


@upload_router.delete("/uploads/{upload_id}", status_code=204)
async def delete_upload_endpoint(upload_id: str, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, upload_id)
    if upload_manager.is_busy and upload_manager.current_upload_id == upload_id:
        raise HTTPException(status_code=409, detail="Upload is still in progress")

    await delete_upload(db, upload_id)
    return Response(status_code=204)


@health_router.get("/health", response_model=HealthResponse)
async def health_check():
    settings = get_settings()
    return HealthResponse(
        status="ok",
        mode=upload_manager.mode,
        busy=upload_manager.is_busy,
        db_path=settings.DB_PATH,
    )
