# pdfmerge/schemas/responses.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

from pdfmerge.schemas.config import DatalistActionConfig


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class MergeStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


class MergeResult(BaseModel):
    """Outcome of one merge: bytes on success, a reason otherwise."""

    status: MergeStatus
    content: bytes = b""
    pages_count: int = 0
    files_merged: int = 0
    filename: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, content: bytes, pages_count: int, files_merged: int) -> "MergeResult":
        return cls(
            status=MergeStatus.SUCCESS,
            content=content,
            pages_count=pages_count,
            files_merged=files_merged
        )

    @classmethod
    def empty(cls, reason: str) -> "MergeResult":
        return cls(status=MergeStatus.EMPTY, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "MergeResult":
        return cls(status=MergeStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == MergeStatus.SUCCESS


class DownloadPayload(BaseModel):
    content: bytes
    filename: str
    content_type: str
    files_count: int = 1


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SaveResponse(BaseModel):
    success: bool
    status: MergeStatus
    message: str
    filename: Optional[str] = None
    pages_count: Optional[int] = None
    files_merged: Optional[int] = None
    processing_time_ms: float


class DownloadRequest(BaseModel):
    record_ids: List[str] = Field(..., description="Selected record ids, in order")
    config: DatalistActionConfig
