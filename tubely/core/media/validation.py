"""
Content-type gate for uploads.

Videos must be declared as exactly video/mp4. Thumbnails may be any image
type; the subtype becomes the stored file extension, so it is restricted
to RFC 6838 name characters to keep it safe inside a filename.
"""

import re
from dataclasses import dataclass

from .errors import InvalidMediaType

VIDEO_MEDIA_TYPE = "video/mp4"

_RESTRICTED_NAME = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]{0,126}$")


@dataclass(frozen=True)
class MediaType:
    type: str
    subtype: str

    def __str__(self) -> str:
        return f"{self.type}/{self.subtype}"

    @property
    def extension(self) -> str:
        return self.subtype


def parse_media_type(declared: str | None) -> MediaType:
    """Parse a Content-Type header value, dropping any parameters."""
    if not declared:
        raise InvalidMediaType("Missing Content-Type")

    essence = declared.split(";", 1)[0].strip().lower()
    type_, found, subtype = essence.partition("/")
    if not found or not _RESTRICTED_NAME.match(type_) or not _RESTRICTED_NAME.match(subtype):
        raise InvalidMediaType(f"Malformed Content-Type: {declared!r}")

    return MediaType(type=type_, subtype=subtype)


def validate_video_type(declared: str | None) -> MediaType:
    media_type = parse_media_type(declared)
    if str(media_type) != VIDEO_MEDIA_TYPE:
        raise InvalidMediaType(
            f"Unsupported video type {str(media_type)!r}, expected {VIDEO_MEDIA_TYPE}"
        )
    return media_type


def validate_thumbnail_type(declared: str | None) -> MediaType:
    media_type = parse_media_type(declared)
    if media_type.type != "image":
        raise InvalidMediaType(
            f"Unsupported thumbnail type {str(media_type)!r}, expected an image"
        )
    return media_type
