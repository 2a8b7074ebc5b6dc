import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cutout.models import UploadRecord

logger = logging.getLogger(__name__)


async def create_upload(
    db: AsyncSession,
    filename: Optional[str],
    content_type: Optional[str],
    size_bytes: Optional[int],
) -> UploadRecord:
    record = UploadRecord(
        id=str(uuid.uuid4()),
        filename=filename,
        content_type=content_type,
        size_bytes=size_bytes,
        state="idle",
    )
    db.add(record)
    await db.flush()
    return record


async def get_upload(db: AsyncSession, upload_id: str) -> Optional[UploadRecord]:
    result = await db.execute(select(UploadRecord).where(UploadRecord.id == upload_id))
    return result.scalar_one_or_none()


async def update_upload(db: AsyncSession, upload_id: str, **values) -> None:
    """Apply column values to one upload in a single UPDATE."""
    await db.execute(
        update(UploadRecord)
        .where(UploadRecord.id == upload_id)
        .values(**values, updated_at=datetime.now(timezone.utc))
    )
    await db.flush()


async def list_uploads(
    db: AsyncSession,
    state: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[UploadRecord], int]:
    query = select(UploadRecord)
    count_query = select(func.count(UploadRecord.id))

    if state:
        query = query.where(UploadRecord.state == state)
        count_query = count_query.where(UploadRecord.state == state)

    query = (
        query.order_by(UploadRecord.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    result = await db.execute(query)
    count_result = await db.execute(count_query)

    uploads = list(result.scalars().all())
    total = count_result.scalar_one()
    return uploads, total


async def delete_upload(db: AsyncSession, upload_id: str) -> bool:
    result = await db.execute(
        delete(UploadRecord).where(UploadRecord.id == upload_id).returning(UploadRecord.id)
    )
    await db.flush()
    return result.scalar_one_or_none() is not None


async def mark_interrupted(db: AsyncSession) -> int:
    """Fail uploads left busy by a previous process."""
    result = await db.execute(
        update(UploadRecord)
        .where(UploadRecord.state.in_(("uploading", "processing")))
        .values(
            state="failed",
            error_message="interrupted",
            is_uploading=False,
            is_processing=False,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(UploadRecord.id)
    )
    await db.flush()
    return len(result.fetchall())
