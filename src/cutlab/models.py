"""
Data models for the breakpoint editor.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class UploadStatus(str, Enum):
    """Lifecycle of a track: local -> uploading -> uploaded (uploading -> local on failure)."""

    LOCAL = "local"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"


@dataclass(frozen=True)
class Chunk:
    """A contiguous interval between two consecutive boundaries."""

    id: str
    start: float  # seconds
    end: float  # seconds

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class Track:
    """One audio file plus its breakpoint and upload state."""

    id: str
    path: Path
    file_name: str
    duration: float  # seconds
    content_type: str = "audio/mpeg"
    preview_url: str = ""
    storage_key: str = ""
    storage_url: str = ""
    breakpoints: tuple[float, ...] = ()
    status: UploadStatus = UploadStatus.LOCAL
    chunks: tuple[Chunk, ...] = ()
    current_time: float = 0.0

    @property
    def uploading(self) -> bool:
        return self.status is UploadStatus.UPLOADING

    @property
    def uploaded(self) -> bool:
        return self.status is UploadStatus.UPLOADED


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded original landed."""

    key: str
    url: str


@dataclass
class Video:
    """A row of the `videos` relation, owned by the processing service."""

    id: str
    created_at: str = ""
    updated_at: str = ""
    original_url: str = ""
    preview_url: str = ""
    breakpoints: list[float] = field(default_factory=list)
    chunks_total: int = 0
    chunks_completed: int = 0
    status: str = ""
    video_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Video":
        """Build from a database row, tolerating missing or null columns."""
        return cls(
            id=str(row["id"]),
            created_at=row.get("created_at") or "",
            updated_at=row.get("updated_at") or "",
            original_url=row.get("original_url") or "",
            preview_url=row.get("preview_url") or "",
            breakpoints=[float(b) for b in row.get("breakpoints") or []],
            chunks_total=int(row.get("chunks_total") or row.get("breakpoints_total") or 0),
            chunks_completed=int(
                row.get("chunks_completed") or row.get("breakpoints_completed") or 0
            ),
            status=row.get("status") or "",
            video_urls=list(row.get("video_urls") or []),
        )


@dataclass
class VideoChunk:
    """One produced chunk of a video, as shown in the chunk grid."""

    id: str
    url: str
    index: int
    duration: float = 0.0
    has_error: bool = False


@dataclass(frozen=True)
class CustomVideo:
    """A locally uploaded replacement clip; only ever used as a drag source."""

    id: str
    url: str
    name: str
    created_at: str


@dataclass(frozen=True)
class StoredUpload:
    """A previously uploaded original recovered from storage listing."""

    id: str
    file_name: str
    storage_url: str
    created_at: str
    duration: float
    breakpoints: list[float]


@dataclass(frozen=True)
class Notification:
    """A transient message for the user."""

    title: str
    description: str
    variant: str = "default"  # default | destructive
