"""
Video metadata operations that don't move media bytes.

Creating, reading, listing and deleting records. Reads hand out signed
copies; deletes are owner-only and release the stored object afterwards.
"""

import logging
from typing import Optional
from uuid import UUID

from .errors import PersistenceFailure
from .locks import RecordLocks
from .models import CreateVideoParams, StoredReference, VideoRecord
from .pipeline import ObjectStorage
from .records import VideoRepository, fetch_video, load_owned_video
from .signing import VideoSigner

logger = logging.getLogger(__name__)


class VideoCatalog:
    def __init__(
        self,
        repository: VideoRepository,
        signer: VideoSigner,
        storage: ObjectStorage,
        locks: RecordLocks,
    ) -> None:
        self._repository = repository
        self._signer = signer
        self._storage = storage
        self._locks = locks

    def create(self, params: CreateVideoParams, user_id: UUID) -> VideoRecord:
        try:
            video = self._repository.create_video(params, user_id)
        except Exception as e:
            logger.error(
                "Failed to create video",
                extra={"user_id": str(user_id), "error": str(e)}
            )
            raise PersistenceFailure("Couldn't create video") from e

        logger.info(
            "Video created",
            extra={"video_id": str(video.id), "user_id": str(user_id)}
        )
        return video

    async def get(self, video_id: UUID) -> VideoRecord:
        """Fetch a record with a freshly signed video URL. Public."""
        video = fetch_video(self._repository, video_id)
        return await self._signer.sign(video)

    async def list_for_user(self, user_id: UUID) -> list[VideoRecord]:
        try:
            videos = self._repository.list_videos(user_id)
        except Exception as e:
            logger.error(
                "Failed to list videos",
                extra={"user_id": str(user_id), "error": str(e)}
            )
            raise PersistenceFailure("Couldn't retrieve videos") from e

        return await self._signer.sign_all(videos)

    async def delete(self, video_id: UUID, user_id: UUID) -> None:
        async with self._locks.hold(video_id):
            video = load_owned_video(self._repository, video_id, user_id)
            try:
                self._repository.delete_video(video_id)
            except Exception as e:
                logger.error(
                    "Failed to delete video",
                    extra={"video_id": str(video_id), "error": str(e)}
                )
                raise PersistenceFailure("Couldn't delete video") from e

        logger.info(
            "Video deleted",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )
        await self._release_object(video.video_url)

    async def _release_object(self, video_url: Optional[str]) -> None:
        """Best-effort removal of the stored object behind a deleted record."""
        if video_url is None:
            return
        try:
            reference = StoredReference.parse(video_url)
            await self._storage.delete_object(reference)
        except Exception as e:
            logger.warning(
                "Couldn't remove stored object for deleted video",
                extra={"video_url": video_url, "error": str(e)}
            )
