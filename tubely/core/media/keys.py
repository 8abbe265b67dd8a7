"""
Storage key generation.

Keys are 256 bits of randomness in unpadded URL-safe base64, followed by
the file extension. Video keys live under their orientation prefix. No
existence check is made; uniqueness rests on the size of the draw.
"""

import base64
import posixpath
import secrets

from .models import Orientation

KEY_ENTROPY_BYTES = 32


def random_token() -> str:
    raw = secrets.token_bytes(KEY_ENTROPY_BYTES)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_video_key(orientation: Orientation, extension: str) -> str:
    """Build a key such as landscape/<43 chars>.mp4."""
    return posixpath.join(orientation.value, f"{random_token()}.{extension}")


def generate_thumbnail_filename(extension: str) -> str:
    """
    Build a random thumbnail filename.

    Re-uploading a thumbnail never overwrites a file another record or a
    cached client may still reference; the previous file is left behind.
    """
    return f"{random_token()}.{extension}"
