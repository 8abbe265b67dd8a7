"""
FastAPI dependency injection.

The application factory builds one Services value from Settings and
stores it on app.state. Every dependency below reads from that value, so
configuration flows explicitly from the factory into the handlers and
tests can build an app with whatever settings they need.

Each dependency is a function that FastAPI calls when needed; tests can
swap any of them via app.dependency_overrides.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Annotated, Generator, Iterator, Optional
from uuid import UUID

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings
from ..core.media.catalog import VideoCatalog
from ..core.media.errors import InvalidID, Unauthenticated
from ..core.media.locks import RecordLocks
from ..core.media.pipeline import ThumbnailPipeline, VideoIngestPipeline
from ..core.media.signing import VideoSigner
from ..infrastructure.auth.tokens import AuthError, TokenValidator
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository
from ..infrastructure.staging.stager import TempStager
from ..infrastructure.storage.assets import LocalAssetStore
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.video.processor import VideoProcessor, create_video_processor

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Service container
# ---------------------------------------------------------------------------

@dataclass
class Services:
    """Long-lived collaborators shared by all requests of one app."""
    settings: Settings
    storage: StorageClient
    video_processor: VideoProcessor
    assets: LocalAssetStore
    stager: TempStager
    token_validator: TokenValidator
    record_locks: RecordLocks
    mock_connection: Optional[MockSnowflakeConnection] = None


def build_services(settings: Settings) -> Services:
    """
    Create the collaborators described by settings.

    In Snowflake mock mode one in-memory connection is shared by every
    request so data persists for the life of the app.
    """
    storage = create_storage_client(
        config=StorageConfig(
            bucket_name=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
        ),
        mock_mode=settings.s3_mock_mode,
    )

    video_processor = create_video_processor(
        mock_mode=settings.video_processor_mock_mode,
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
        probe_timeout=settings.probe_timeout_seconds,
        remux_timeout=settings.remux_timeout_seconds,
    )

    mock_connection = MockSnowflakeConnection() if settings.snowflake_mock_mode else None

    return Services(
        settings=settings,
        storage=storage,
        video_processor=video_processor,
        assets=LocalAssetStore(settings.assets_root, settings.public_base_url),
        stager=TempStager(settings.scratch_dir),
        token_validator=TokenValidator(settings.jwt_secret, issuer=settings.jwt_issuer),
        record_locks=RecordLocks(),
        mock_connection=mock_connection,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def get_storage_client(services: ServicesDep) -> StorageClient:
    return services.storage


def get_video_processor(services: ServicesDep) -> VideoProcessor:
    return services.video_processor


@contextmanager
def open_video_repository(services: Services) -> Iterator[VideoRepository]:
    """
    Open a VideoRepository on a fresh database connection.

    The real connection is closed when the block exits. The mock
    connection is shared and never closed.
    """
    if services.mock_connection is not None:
        yield VideoRepository(services.mock_connection)
        return

    settings = services.settings
    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    with create_snowflake_connection(config=config) as conn:
        yield VideoRepository(conn)


def get_video_repository(services: ServicesDep) -> Generator[VideoRepository, None, None]:
    """Provide VideoRepository for the duration of one request."""
    with open_video_repository(services) as repository:
        yield repository


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_current_user(
    services: ServicesDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> UUID:
    """Validate the bearer token and return the caller's user id."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        logger.warning("Request missing bearer token")
        raise Unauthenticated("Couldn't find access token")

    try:
        return services.token_validator.validate(credentials.credentials)
    except AuthError as e:
        raise Unauthenticated(f"Couldn't validate access token: {e}") from e


def parse_video_id(video_id: str) -> UUID:
    """Path parameter parser that reports bad ids as InvalidID (400)."""
    try:
        return UUID(video_id)
    except ValueError as e:
        raise InvalidID(f"Invalid video ID: {video_id!r}") from e


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
VideoProcessorDep = Annotated[VideoProcessor, Depends(get_video_processor)]
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]


def get_video_pipeline(
    services: ServicesDep,
    repository: VideoRepositoryDep,
    storage: StorageClientDep,
    video_processor: VideoProcessorDep,
) -> VideoIngestPipeline:
    return VideoIngestPipeline(
        repository=repository,
        locks=services.record_locks,
        stager=services.stager,
        processor=video_processor,
        storage=storage,
        max_upload_bytes=services.settings.max_video_upload_bytes,
    )


def get_thumbnail_pipeline(
    services: ServicesDep,
    repository: VideoRepositoryDep,
) -> ThumbnailPipeline:
    return ThumbnailPipeline(
        repository=repository,
        locks=services.record_locks,
        assets=services.assets,
        max_upload_bytes=services.settings.max_thumbnail_upload_bytes,
    )


def get_video_signer(services: ServicesDep, storage: StorageClientDep) -> VideoSigner:
    return VideoSigner(storage, expiry_seconds=services.settings.signed_url_expiry_seconds)


VideoSignerDep = Annotated[VideoSigner, Depends(get_video_signer)]


def get_video_catalog(
    services: ServicesDep,
    repository: VideoRepositoryDep,
    storage: StorageClientDep,
    signer: VideoSignerDep,
) -> VideoCatalog:
    return VideoCatalog(
        repository=repository,
        signer=signer,
        storage=storage,
        locks=services.record_locks,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
CurrentUser = Annotated[UUID, Depends(get_current_user)]
VideoID = Annotated[UUID, Depends(parse_video_id)]
VideoPipelineDep = Annotated[VideoIngestPipeline, Depends(get_video_pipeline)]
ThumbnailPipelineDep = Annotated[ThumbnailPipeline, Depends(get_thumbnail_pipeline)]
VideoCatalogDep = Annotated[VideoCatalog, Depends(get_video_catalog)]
