from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class UploadAcceptedResponse(BaseModel):
    upload_id: str
    message: str


class StatusResponse(BaseModel):
    state: str
    reason: Optional[str]
    upload_id: Optional[str]
    is_uploading: bool
    is_processing: bool
    pending_prompt: Optional[str]


class FallbackDecision(BaseModel):
    accept: bool


class UploadDetail(BaseModel):
    upload_id: str
    filename: Optional[str]
    content_type: Optional[str]
    size_bytes: Optional[int]
    state: str
    error_message: Optional[str]
    notice: Optional[str]
    is_uploading: bool
    is_processing: bool
    has_original: bool
    has_processed: bool
    created_at: datetime
    updated_at: datetime


class UploadListItem(BaseModel):
    upload_id: str
    filename: Optional[str]
    state: str
    has_processed: bool
    created_at: datetime


class UploadListResponse(BaseModel):
    uploads: List[UploadListItem]
    total: int
    page: int
    page_size: int


class HealthResponse(BaseModel):
    status: str
    mode: Optional[str]  # "live" or "mock"
    busy: bool
    db_path: str
