"""
Object storage client for processed videos.

Talks to S3 (or any S3-compatible store via endpoint_url) through boto3,
with a mock mode for local development.

Uploads stream from the remuxed file on disk rather than reading it into
memory, since videos can be up to 1 GiB. boto3 is synchronous, so calls
are pushed to a worker thread to keep the event loop free.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from ...core.media.models import StoredReference

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Empty credentials fall back to boto3's default credential chain
    (environment, shared config, instance role).
    """
    bucket_name: str
    region: str
    access_key_id: str = ""
    secret_access_key: str = ""
    endpoint_url: Optional[str] = None


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def upload_file(
        self,
        path: Path,
        key: str,
        content_type: str,
    ) -> StoredReference:
        """Upload a file and return where it landed."""
        ...

    async def get_presigned_url(
        self,
        reference: StoredReference,
        expiry_seconds: int = 3600,
    ) -> str:
        """Generate temporary download URL."""
        ...

    async def delete_object(self, reference: StoredReference) -> None:
        ...

    async def check_bucket(self) -> None:
        """Raise StorageError if the configured bucket can't be reached."""
        ...


class S3StorageClient:
    """
    S3 object storage client.

    Uses boto3 with SigV4 so presigned URLs work against AWS as well as
    MinIO or R2 when endpoint_url is set.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the S3 client.

        boto3 is imported here (not at module level) so mock mode and
        the test suite don't need it.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config

        boto_config = Config(signature_version="s3v4")

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "endpoint": config.endpoint_url,
            }
        )

    async def upload_file(
        self,
        path: Path,
        key: str,
        content_type: str,
    ) -> StoredReference:
        """
        Stream a file to the configured bucket.

        upload_file switches to multipart uploads for large files, so the
        remuxed video is never held in memory.
        """
        reference = StoredReference(bucket=self._config.bucket_name, key=key)

        try:
            await asyncio.to_thread(
                self._s3_client.upload_file,
                str(path),
                reference.bucket,
                reference.key,
                ExtraArgs={"ContentType": content_type},
            )
        except Exception as e:
            logger.error(
                "Failed to upload video",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Video upload failed: {e}") from e

        logger.info(
            "Uploaded video",
            extra={
                "bucket": reference.bucket,
                "key": key,
                "size_bytes": path.stat().st_size,
            }
        )
        return reference

    async def get_presigned_url(
        self,
        reference: StoredReference,
        expiry_seconds: int = 3600,
    ) -> str:
        """
        Generate a temporary download URL for a stored object.

        The bucket comes from the reference, not from config, so objects
        uploaded before a bucket change stay readable.
        """
        try:
            return self._s3_client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": reference.bucket,
                    "Key": reference.key,
                },
                ExpiresIn=expiry_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"reference": str(reference), "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}") from e

    async def delete_object(self, reference: StoredReference) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=reference.bucket,
                Key=reference.key,
            )
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"reference": str(reference), "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}") from e

        logger.info("Deleted object", extra={"reference": str(reference)})

    async def check_bucket(self) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.head_bucket,
                Bucket=self._config.bucket_name,
            )
        except Exception as e:
            raise StorageError(f"Bucket unreachable: {e}") from e


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are kept in a dictionary keyed by (bucket, key) and "URLs"
    are mock URIs. Not suitable for production, but enables the full
    upload flow without provisioning a bucket.
    """

    def __init__(self, bucket_name: str = "tubely-videos") -> None:
        self.bucket_name = bucket_name
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def upload_file(
        self,
        path: Path,
        key: str,
        content_type: str,
    ) -> StoredReference:
        reference = StoredReference(bucket=self.bucket_name, key=key)
        data = path.read_bytes()
        self.objects[(reference.bucket, key)] = data
        self.content_types[(reference.bucket, key)] = content_type

        logger.debug(
            "Stored video in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )
        return reference

    async def get_presigned_url(
        self,
        reference: StoredReference,
        expiry_seconds: int = 3600,
    ) -> str:
        if (reference.bucket, reference.key) not in self.objects:
            raise StorageError(f"Object not found: {reference}")

        return f"mock://{reference.bucket}/{reference.key}?expires={expiry_seconds}"

    async def delete_object(self, reference: StoredReference) -> None:
        self.objects.pop((reference.bucket, reference.key), None)
        self.content_types.pop((reference.bucket, reference.key), None)

    async def check_bucket(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        if config is not None:
            return MockStorageClient(bucket_name=config.bucket_name)
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
