"""
Scratch-disk staging for inbound uploads.

Uploads are copied to an exclusively owned temp file so FFmpeg can read
them by path, and removed again when the request is done with them.
"""

from .stager import TempStager, check_declared_size

__all__ = ["TempStager", "check_declared_size"]
