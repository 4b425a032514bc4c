"""Download job and file record data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
import uuid


class Platform(str, Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    TWITTER = "twitter"


class DownloadStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


BULK_DOWNLOAD_TYPE = "bulk"

# Platforms missing here accept any non-empty download type
DOWNLOAD_TYPES: Dict[Platform, Tuple[str, ...]] = {
    Platform.TIKTOK: ("username", "keyword", "hashtag", BULK_DOWNLOAD_TYPE),
    Platform.INSTAGRAM: ("url", "username", "story"),
}

DEFAULT_LIMIT = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_progress(completed_files: int, total_files: int) -> int:
    """Percentage of finished files, rounded half up. 0 when nothing is planned."""
    if total_files <= 0:
        return 0
    return (200 * completed_files + total_files) // (2 * total_files)


class _Record(BaseModel):
    """Immutable record serialized with camelCase keys."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DownloadRequest(_Record):
    """Validated parameters for a new download job."""
    platform: Platform
    download_type: str
    value: str
    limit: Optional[int] = Field(default=DEFAULT_LIMIT, gt=0)

    @field_validator("download_type", "value")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @model_validator(mode="after")
    def download_type_matches_platform(self) -> "DownloadRequest":
        allowed = DOWNLOAD_TYPES.get(self.platform)
        if allowed is not None and self.download_type not in allowed:
            raise ValueError(
                f"downloadType '{self.download_type}' is not supported for "
                f"{self.platform.value}; expected one of {list(allowed)}"
            )
        return self


class Download(_Record):
    """Tracks the lifecycle of a single download job."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    platform: Platform
    download_type: str
    value: str
    limit: Optional[int] = DEFAULT_LIMIT
    status: DownloadStatus = DownloadStatus.PENDING
    progress: int = 0
    total_files: int = 0
    completed_files: int = 0
    zip_url: Optional[str] = None
    excel_url: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_bulk(self) -> bool:
        return self.download_type == BULK_DOWNLOAD_TYPE


class FetchedFile(_Record):
    """One artifact produced by a fetcher, not yet attached to a job."""
    filename: str
    url: str
    size: Optional[str] = None
    views: Optional[int] = None
    likes: Optional[int] = None
    comments: Optional[int] = None
    metadata: Optional[str] = None  # JSON string


class DownloadFile(FetchedFile):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    download_id: str
