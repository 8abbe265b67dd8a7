"""
Domain models for media ingestion.

These models represent the core concepts: the persisted video record,
the stored object reference, probed stream metadata and the ephemeral
upload session that tracks a single pipeline run. They have no
dependencies on frameworks, databases or storage SDKs.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4

from .errors import MalformedReference


REFERENCE_DELIMITER = ","


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Orientation(Enum):
    """Frame orientation. The value doubles as the storage key prefix."""
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


def classify_orientation(width: int, height: int) -> Orientation:
    """
    Classify frame dimensions into an orientation.

    The portrait branch compares height against 16*height//9, which only
    holds when height is zero. Existing stored keys were produced by this
    rule, so it is reproduced as-is; a 1080x1920 video lands under other/.
    """
    if width == 16 * height // 9:
        return Orientation.LANDSCAPE
    if height == 16 * height // 9:
        return Orientation.PORTRAIT
    return Orientation.OTHER


@dataclass(frozen=True)
class StreamMetadata:
    """The first video stream reported by the probe."""
    codec_type: str
    width: int
    height: int
    codec_name: str = "unknown"
    duration_seconds: Optional[float] = None

    @property
    def orientation(self) -> Orientation:
        return classify_orientation(self.width, self.height)


@dataclass(frozen=True)
class StoredReference:
    """
    Bucket and key of an uploaded object.

    Persisted as the single string "<bucket>,<key>". This class is the only
    place that formats or parses that string.
    """
    bucket: str
    key: str

    def __post_init__(self) -> None:
        if not self.bucket or not self.key:
            raise ValueError("Bucket and key must both be set")
        if REFERENCE_DELIMITER in self.bucket or REFERENCE_DELIMITER in self.key:
            raise ValueError(
                f"Bucket and key may not contain {REFERENCE_DELIMITER!r}"
            )

    def __str__(self) -> str:
        return f"{self.bucket}{REFERENCE_DELIMITER}{self.key}"

    @classmethod
    def parse(cls, value: str) -> "StoredReference":
        bucket, found, key = value.partition(REFERENCE_DELIMITER)
        if not found or not bucket or not key:
            raise MalformedReference(
                f"Could not get bucket and key from stored reference {value!r}"
            )
        return cls(bucket=bucket, key=key)


@dataclass
class CreateVideoParams:
    """Fields a user supplies when creating video metadata."""
    title: str
    description: str = ""

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("Video title cannot be empty")


@dataclass
class VideoRecord:
    """
    A video as persisted by the database collaborator.

    video_url holds a StoredReference string while at rest. Reads replace
    it with a presigned URL on a copy of the record (see signing.py).
    """
    user_id: UUID
    title: str
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def copy(self, **changes) -> "VideoRecord":
        return replace(self, **changes)


class PipelineStage(Enum):
    """States of a single upload run."""
    RECEIVED = "received"
    STAGED = "staged"
    PROBED = "probed"
    REMUXED = "remuxed"
    KEY_ASSIGNED = "key_assigned"
    UPLOADED = "uploaded"
    RECORD_UPDATED = "record_updated"
    ABORTED = "aborted"


VIDEO_STAGES = (
    PipelineStage.RECEIVED,
    PipelineStage.STAGED,
    PipelineStage.PROBED,
    PipelineStage.REMUXED,
    PipelineStage.KEY_ASSIGNED,
    PipelineStage.UPLOADED,
    PipelineStage.RECORD_UPDATED,
)

THUMBNAIL_STAGES = (
    PipelineStage.RECEIVED,
    PipelineStage.STAGED,
    PipelineStage.RECORD_UPDATED,
)


@dataclass
class UploadSession:
    """
    Ephemeral state of one upload request. Never persisted.

    Stages only move forward, one step at a time, along the path the
    session was created with. Any stage may move to ABORTED.
    """
    video_id: UUID
    user_id: UUID
    content_type: str
    stages: tuple[PipelineStage, ...] = VIDEO_STAGES
    stage: PipelineStage = PipelineStage.RECEIVED
    staged_path: Optional[Path] = None
    orientation: Optional[Orientation] = None
    processed_path: Optional[Path] = None
    storage_key: Optional[str] = None
    reference: Optional[StoredReference] = None

    def advance(self, stage: PipelineStage) -> None:
        if self.stage in (PipelineStage.ABORTED, PipelineStage.RECORD_UPDATED):
            raise RuntimeError(f"Upload session already finished ({self.stage.value})")
        expected = self.stages[self.stages.index(self.stage) + 1]
        if stage is not expected:
            raise RuntimeError(
                f"Cannot move from {self.stage.value} to {stage.value}; "
                f"next stage is {expected.value}"
            )
        self.stage = stage

    def abort(self) -> None:
        self.stage = PipelineStage.ABORTED

    @property
    def is_complete(self) -> bool:
        return self.stage is PipelineStage.RECORD_UPDATED
