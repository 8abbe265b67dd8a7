"""
Access to video records through the database collaborator.

The helpers here translate repository failures into the error taxonomy
and enforce ownership, so every operation that mutates a record goes
through the same checks.
"""

import logging
from typing import Protocol
from uuid import UUID

from .errors import PersistenceFailure, Unauthorized, VideoNotFound
from .models import CreateVideoParams, VideoRecord

logger = logging.getLogger(__name__)


class VideoRepository(Protocol):
    """
    Interface for video record persistence.

    get_video raises VideoNotFound for unknown ids. Any other exception
    is treated as a persistence failure.
    """

    def create_video(self, params: CreateVideoParams, user_id: UUID) -> VideoRecord:
        ...

    def get_video(self, video_id: UUID) -> VideoRecord:
        ...

    def list_videos(self, user_id: UUID) -> list[VideoRecord]:
        ...

    def update_video(self, video: VideoRecord) -> None:
        ...

    def delete_video(self, video_id: UUID) -> None:
        ...


def fetch_video(repository: VideoRepository, video_id: UUID) -> VideoRecord:
    try:
        return repository.get_video(video_id)
    except VideoNotFound:
        raise
    except Exception as e:
        logger.error(
            "Failed to load video",
            extra={"video_id": str(video_id), "error": str(e)}
        )
        raise PersistenceFailure(f"Couldn't load video {video_id}") from e


def load_owned_video(
    repository: VideoRepository,
    video_id: UUID,
    user_id: UUID,
) -> VideoRecord:
    """Load a record and make sure user_id owns it."""
    video = fetch_video(repository, video_id)
    if not video.is_owned_by(user_id):
        logger.warning(
            "Ownership check failed",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )
        raise Unauthorized()
    return video


def save_video(repository: VideoRepository, video: VideoRecord) -> None:
    try:
        repository.update_video(video)
    except VideoNotFound:
        raise
    except Exception as e:
        logger.error(
            "Failed to update video",
            extra={"video_id": str(video.id), "error": str(e)}
        )
        raise PersistenceFailure(f"Couldn't save video {video.id}") from e
