import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UploadRecord(Base):
    __tablename__ = "uploads"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    filename: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    state: Mapped[str] = mapped_column(
        String, default="idle"
    )  # idle/uploading/processing/done/failed
    error_message: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notice: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_uploading: Mapped[bool] = mapped_column(Boolean, default=False)
    is_processing: Mapped[bool] = mapped_column(Boolean, default=False)
    original_mime: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    original_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    processed_mime: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    processed_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def upload_id(self) -> str:
        return self.id

    @property
    def has_original(self) -> bool:
        return self.original_data is not None

    @property
    def has_processed(self) -> bool:
        return self.processed_data is not None
