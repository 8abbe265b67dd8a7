"""
Upload pipelines for videos and thumbnails.

Video path:
    received -> staged -> probed -> remuxed -> key_assigned -> uploaded -> record_updated

Thumbnail path:
    received -> staged -> record_updated

Stages run strictly in order within one request. A failure at any stage
aborts the run: files owned by earlier stages are removed, nothing is
written to the record, and the error is raised to the caller as one of
the types in errors.py. The record is only touched by the final commit,
which runs under the per-record lock.
"""

import logging
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol
from uuid import UUID

from .errors import (
    MediaError,
    ProbeFailure,
    RemuxFailure,
    UploadFailure,
)
from .keys import generate_thumbnail_filename, generate_video_key
from .locks import RecordLocks
from .models import (
    THUMBNAIL_STAGES,
    VIDEO_STAGES,
    PipelineStage,
    StoredReference,
    StreamMetadata,
    UploadSession,
    VideoRecord,
)
from .records import VideoRepository, load_owned_video, save_video
from .validation import MediaType, validate_thumbnail_type, validate_video_type

logger = logging.getLogger(__name__)

REMUX_SUFFIX = ".processing"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class UploadStream(Protocol):
    """Anything with an async chunked read, e.g. a FastAPI UploadFile."""

    async def read(self, size: int = -1) -> bytes:
        ...


class Stager(Protocol):
    def stage(
        self,
        stream: UploadStream,
        max_bytes: int,
    ) -> AbstractAsyncContextManager[Path]:
        """Copy the stream to a temp file that is removed when the block exits."""
        ...


class VideoProcessor(Protocol):
    async def probe(self, path: Path) -> StreamMetadata:
        """Return the first video stream of the file."""
        ...

    async def remux(self, path: Path, output_path: Path) -> Path:
        """Write a fast-start copy of path to output_path and return it."""
        ...


class ObjectStorage(Protocol):
    async def upload_file(
        self,
        path: Path,
        key: str,
        content_type: str,
    ) -> StoredReference:
        ...

    async def delete_object(self, reference: StoredReference) -> None:
        ...


class AssetStore(Protocol):
    async def save(self, stream: UploadStream, filename: str, max_bytes: int) -> Path:
        """Write the stream under filename, removing partial output on failure."""
        ...

    def remove(self, filename: str) -> None:
        ...

    def url_for(self, filename: str) -> str:
        ...


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------

def remux_output_path(path: Path) -> Path:
    return path.with_name(path.name + REMUX_SUFFIX)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RecordPipeline:
    """Ownership checks and the locked final commit shared by both paths."""

    def __init__(self, repository: VideoRepository, locks: RecordLocks) -> None:
        self._repository = repository
        self._locks = locks

    async def _commit(self, session: UploadSession, **fields) -> VideoRecord:
        """
        Re-read the record under its lock and write a single field.

        Re-reading keeps a concurrent update of the other field intact and
        re-checks ownership in case the record changed hands meanwhile.
        """
        async with self._locks.hold(session.video_id):
            current = load_owned_video(self._repository, session.video_id, session.user_id)
            updated = current.copy(updated_at=_utcnow(), **fields)
            save_video(self._repository, updated)
        return updated

    def _abort(self, session: UploadSession, error: BaseException) -> None:
        failed_at = session.stage
        session.abort()
        log = logger.warning if isinstance(error, MediaError) else logger.error
        log(
            "Upload aborted",
            extra={
                "video_id": str(session.video_id),
                "failed_after": failed_at.value,
                "error": type(error).__name__,
            }
        )


class VideoIngestPipeline(_RecordPipeline):
    """
    Stage, probe, remux and upload a video, then record its reference.

    Collaborators are injected so tests can swap FFmpeg and S3 for doubles.
    """

    def __init__(
        self,
        repository: VideoRepository,
        locks: RecordLocks,
        stager: Stager,
        processor: VideoProcessor,
        storage: ObjectStorage,
        max_upload_bytes: int,
    ) -> None:
        super().__init__(repository, locks)
        self._stager = stager
        self._processor = processor
        self._storage = storage
        self._max_upload_bytes = max_upload_bytes

    async def run(
        self,
        video_id: UUID,
        user_id: UUID,
        stream: UploadStream,
        content_type: Optional[str],
    ) -> VideoRecord:
        session = UploadSession(
            video_id=video_id,
            user_id=user_id,
            content_type=content_type or "",
            stages=VIDEO_STAGES,
        )
        logger.info(
            "Video upload received",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )

        try:
            load_owned_video(self._repository, video_id, user_id)
            media_type = validate_video_type(content_type)

            async with AsyncExitStack() as stack:
                session.staged_path = await stack.enter_async_context(
                    self._stager.stage(stream, self._max_upload_bytes)
                )
                session.advance(PipelineStage.STAGED)

                metadata = await self._probe(session)
                session.orientation = metadata.orientation
                session.advance(PipelineStage.PROBED)

                # Registered before ffmpeg starts, so partial output goes too
                output_path = remux_output_path(session.staged_path)
                stack.callback(output_path.unlink, missing_ok=True)
                session.processed_path = await self._remux(session, output_path)
                session.advance(PipelineStage.REMUXED)

                session.storage_key = generate_video_key(
                    session.orientation, media_type.extension
                )
                session.advance(PipelineStage.KEY_ASSIGNED)

                session.reference = await self._upload(session, media_type)
                session.advance(PipelineStage.UPLOADED)

                record = await self._commit_reference(session)
                session.advance(PipelineStage.RECORD_UPDATED)

        except BaseException as e:
            self._abort(session, e)
            raise

        logger.info(
            "Video upload complete",
            extra={
                "video_id": str(video_id),
                "key": session.storage_key,
                "orientation": session.orientation.value,
            }
        )
        return record

    async def _probe(self, session: UploadSession) -> StreamMetadata:
        try:
            metadata = await self._processor.probe(session.staged_path)
        except Exception as e:
            raise ProbeFailure(f"Unable to determine aspect ratio: {e}") from e

        logger.info(
            "Video probed",
            extra={
                "video_id": str(session.video_id),
                "resolution": f"{metadata.width}x{metadata.height}",
                "orientation": metadata.orientation.value,
            }
        )
        return metadata

    async def _remux(self, session: UploadSession, output_path: Path) -> Path:
        try:
            return await self._processor.remux(session.staged_path, output_path)
        except Exception as e:
            raise RemuxFailure(f"Unable to process video for fast start: {e}") from e

    async def _upload(self, session: UploadSession, media_type: MediaType) -> StoredReference:
        try:
            return await self._storage.upload_file(
                session.processed_path,
                session.storage_key,
                str(media_type),
            )
        except Exception as e:
            raise UploadFailure(f"Unable to upload video: {e}") from e

    async def _commit_reference(self, session: UploadSession) -> VideoRecord:
        try:
            return await self._commit(session, video_url=str(session.reference))
        except BaseException:
            # The object is unreachable without a record pointing at it
            await self._discard_upload(session.reference)
            raise

    async def _discard_upload(self, reference: StoredReference) -> None:
        try:
            await self._storage.delete_object(reference)
        except Exception as e:
            logger.error(
                "Failed to remove orphaned upload",
                extra={"reference": str(reference), "error": str(e)}
            )


class ThumbnailPipeline(_RecordPipeline):
    """Write an image straight into the asset directory and link it."""

    def __init__(
        self,
        repository: VideoRepository,
        locks: RecordLocks,
        assets: AssetStore,
        max_upload_bytes: int,
    ) -> None:
        super().__init__(repository, locks)
        self._assets = assets
        self._max_upload_bytes = max_upload_bytes

    async def run(
        self,
        video_id: UUID,
        user_id: UUID,
        stream: UploadStream,
        content_type: Optional[str],
    ) -> VideoRecord:
        session = UploadSession(
            video_id=video_id,
            user_id=user_id,
            content_type=content_type or "",
            stages=THUMBNAIL_STAGES,
        )
        logger.info(
            "Thumbnail upload received",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )

        try:
            load_owned_video(self._repository, video_id, user_id)
            media_type = validate_thumbnail_type(content_type)

            filename = generate_thumbnail_filename(media_type.extension)
            session.staged_path = await self._assets.save(
                stream, filename, self._max_upload_bytes
            )
            session.advance(PipelineStage.STAGED)

            try:
                record = await self._commit(
                    session, thumbnail_url=self._assets.url_for(filename)
                )
            except BaseException:
                self._assets.remove(filename)
                raise
            session.advance(PipelineStage.RECORD_UPDATED)

        except BaseException as e:
            self._abort(session, e)
            raise

        logger.info(
            "Thumbnail upload complete",
            extra={"video_id": str(video_id), "filename": filename}
        )
        return record
