"""
Read-time signing of stored video references.

Records keep "<bucket>,<key>" at rest. When a record is served, a copy
gets a presigned URL in its place. The URL is never written back.
"""

import logging
from typing import Protocol

from .models import StoredReference, VideoRecord

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 3600


class PresignClient(Protocol):
    async def get_presigned_url(
        self,
        reference: StoredReference,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
    ) -> str:
        """Generate a temporary download URL."""
        ...


class VideoSigner:
    """
    Swaps stored references for presigned URLs on served records.

    sign() surfaces every failure. sign_all() drops the records it can't
    sign and logs them, so one bad row doesn't hide the others.
    """

    def __init__(
        self,
        client: PresignClient,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
    ) -> None:
        self._client = client
        self._expiry_seconds = expiry_seconds

    async def sign(self, video: VideoRecord) -> VideoRecord:
        if video.video_url is None:
            # No video uploaded yet
            return video

        reference = StoredReference.parse(video.video_url)
        url = await self._client.get_presigned_url(
            reference,
            expiry_seconds=self._expiry_seconds,
        )
        return video.copy(video_url=url)

    async def sign_all(self, videos: list[VideoRecord]) -> list[VideoRecord]:
        signed = []
        for video in videos:
            try:
                signed.append(await self.sign(video))
            except Exception as e:
                logger.warning(
                    "Skipping video with unsignable URL",
                    extra={
                        "video_id": str(video.id),
                        "video_url": video.video_url,
                        "error": str(e),
                    }
                )
        return signed
