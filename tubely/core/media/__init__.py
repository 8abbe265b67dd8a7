"""
Media ingestion pipeline.

Validates, stages, probes, remuxes and uploads videos; writes thumbnails
to local assets; signs stored references at read time.
"""

from .catalog import VideoCatalog
from .errors import (
    InvalidID,
    InvalidMediaType,
    MalformedReference,
    MediaError,
    PayloadTooLarge,
    PersistenceFailure,
    ProbeFailure,
    RemuxFailure,
    StagingFailure,
    Unauthenticated,
    Unauthorized,
    UploadFailure,
    VideoNotFound,
)
from .locks import RecordLocks
from .models import (
    CreateVideoParams,
    Orientation,
    PipelineStage,
    StoredReference,
    StreamMetadata,
    UploadSession,
    VideoRecord,
    classify_orientation,
)
from .pipeline import ThumbnailPipeline, VideoIngestPipeline
from .signing import VideoSigner

__all__ = [
    "VideoCatalog",
    "InvalidID",
    "InvalidMediaType",
    "MalformedReference",
    "MediaError",
    "PayloadTooLarge",
    "PersistenceFailure",
    "ProbeFailure",
    "RemuxFailure",
    "StagingFailure",
    "Unauthenticated",
    "Unauthorized",
    "UploadFailure",
    "VideoNotFound",
    "RecordLocks",
    "CreateVideoParams",
    "Orientation",
    "PipelineStage",
    "StoredReference",
    "StreamMetadata",
    "UploadSession",
    "VideoRecord",
    "classify_orientation",
    "ThumbnailPipeline",
    "VideoIngestPipeline",
    "VideoSigner",
]
