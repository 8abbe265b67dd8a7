"""
Storage integrations.

Processed videos go to S3 (or any S3-compatible store) via boto3, with
an in-memory mock for local development. Thumbnails are written to a
local asset directory served by the app.
"""

from .assets import LocalAssetStore
from .client import (
    MockStorageClient,
    S3StorageClient,
    StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
)

__all__ = [
    "LocalAssetStore",
    "MockStorageClient",
    "S3StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "create_storage_client",
]
