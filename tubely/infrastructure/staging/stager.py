"""
Temp-file staging with a byte limit.

The stager streams an upload to disk in chunks, counting bytes as it goes,
so an oversized body is rejected before it is fully written. The staged
file is flushed, rewound and handed to the caller inside an async context
manager; leaving the block for any reason (including cancellation when
the client disconnects) deletes it.
"""

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from ...core.media.errors import PayloadTooLarge, StagingFailure
from ...core.media.pipeline import UploadStream

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def check_declared_size(content_length: Optional[str], max_bytes: int) -> None:
    """
    Reject a request whose Content-Length already exceeds the limit.

    This runs before the body is read. Missing or unparseable headers fall
    through to the streaming check in the stager.
    """
    if not content_length:
        return
    try:
        declared = int(content_length)
    except ValueError:
        return
    if declared > max_bytes:
        raise PayloadTooLarge(
            f"Request body of {declared} bytes exceeds the {max_bytes} byte limit"
        )


async def copy_stream(
    stream: UploadStream,
    destination,
    max_bytes: int,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy stream into an open binary file, enforcing max_bytes."""
    total = 0
    while chunk := await stream.read(chunk_size):
        total += len(chunk)
        if total > max_bytes:
            raise PayloadTooLarge(
                f"Upload exceeds the {max_bytes} byte limit"
            )
        destination.write(chunk)
    return total


class TempStager:
    """
    Stages uploads under scratch_dir (the system temp dir by default).

    Usage:
        async with stager.stage(upload, max_bytes) as path:
            ...  # path exists here, is gone afterwards
    """

    def __init__(self, scratch_dir: Optional[Path] = None, prefix: str = "tubely-upload-") -> None:
        self._scratch_dir = scratch_dir
        self._prefix = prefix
        if scratch_dir is not None:
            scratch_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def stage(self, stream: UploadStream, max_bytes: int) -> AsyncIterator[Path]:
        try:
            tmp = tempfile.NamedTemporaryFile(
                prefix=self._prefix,
                suffix=".mp4",
                dir=self._scratch_dir,
                delete=False,
            )
        except OSError as e:
            raise StagingFailure(f"Unable to create temp file: {e}") from e

        path = Path(tmp.name)
        try:
            with tmp:
                try:
                    size = await copy_stream(stream, tmp, max_bytes)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                    tmp.seek(0)
                except OSError as e:
                    raise StagingFailure(f"Unable to save upload: {e}") from e

            logger.info(
                "Upload staged",
                extra={"path": str(path), "size_bytes": size}
            )
            yield path

        finally:
            path.unlink(missing_ok=True)
            logger.debug("Removed staged upload", extra={"path": str(path)})
