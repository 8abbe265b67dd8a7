"""
Local asset directory for thumbnails.

Thumbnails skip object storage entirely: the upload is streamed into the
directory the app serves at /assets and linked by URL.
"""

import logging
from pathlib import Path

from ...core.media.errors import StagingFailure
from ...core.media.pipeline import UploadStream
from ..staging.stager import copy_stream

logger = logging.getLogger(__name__)


class LocalAssetStore:
    def __init__(self, root: Path, public_base_url: str, url_prefix: str = "/assets") -> None:
        self._root = root
        self._base_url = public_base_url.rstrip("/")
        self._url_prefix = url_prefix
        root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, filename: str) -> Path:
        path = (self._root / filename).resolve()
        if path.parent != self._root.resolve():
            raise ValueError(f"Asset filename escapes the asset root: {filename!r}")
        return path

    def url_for(self, filename: str) -> str:
        return f"{self._base_url}{self._url_prefix}/{filename}"

    async def save(self, stream: UploadStream, filename: str, max_bytes: int) -> Path:
        """
        Stream an upload into the asset directory.

        Opened with "xb" so an existing file is never overwritten. Partial
        files are removed if the copy fails or the limit is exceeded.
        """
        path = self.path_for(filename)
        try:
            f = open(path, "xb")
        except OSError as e:
            raise StagingFailure(f"Unable to create thumbnail file: {e}") from e

        try:
            with f:
                size = await copy_stream(stream, f, max_bytes)
        except BaseException as e:
            path.unlink(missing_ok=True)
            if isinstance(e, OSError):
                raise StagingFailure(f"Unable to save thumbnail: {e}") from e
            raise

        logger.info(
            "Created thumbnail",
            extra={"path": str(path), "size_bytes": size}
        )
        return path

    def remove(self, filename: str) -> None:
        self.path_for(filename).unlink(missing_ok=True)
        logger.debug("Removed thumbnail", extra={"filename": filename})
