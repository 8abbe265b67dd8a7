"""
Error taxonomy for the media pipeline.

Every stage raises one of these and nothing else escapes the pipeline.
Each class carries the HTTP status the API layer responds with, so the
mapping lives next to the error instead of in every route.
"""


class MediaError(Exception):
    """Base class for pipeline and ownership errors."""

    status_code = 500
    default_message = "Media operation failed"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidID(MediaError):
    status_code = 400
    default_message = "Invalid ID"


class Unauthenticated(MediaError):
    status_code = 401
    default_message = "Couldn't validate access token"


class Unauthorized(MediaError):
    """The caller is authenticated but does not own the record."""

    status_code = 403
    default_message = "You don't own this video"


class VideoNotFound(MediaError):
    status_code = 404
    default_message = "Video not found"


class InvalidMediaType(MediaError):
    status_code = 400
    default_message = "Invalid Content-Type"


class PayloadTooLarge(MediaError):
    status_code = 413
    default_message = "Upload exceeds the maximum allowed size"


class StagingFailure(MediaError):
    status_code = 500
    default_message = "Unable to stage upload"


class ProbeFailure(MediaError):
    status_code = 422
    default_message = "Unable to read video stream metadata"


class RemuxFailure(MediaError):
    status_code = 500
    default_message = "Unable to process video"


class UploadFailure(MediaError):
    status_code = 502
    default_message = "Unable to store video"


class MalformedReference(MediaError):
    """A stored video reference could not be split into bucket and key."""

    status_code = 500
    default_message = "Stored video reference is malformed"


class PersistenceFailure(MediaError):
    status_code = 500
    default_message = "Unable to save video record"
