"""Shared fixtures for unit tests."""

from pathlib import Path
from uuid import UUID, uuid4

import pytest

from tubely.core.media.locks import RecordLocks
from tubely.infrastructure.staging.stager import TempStager
from tubely.infrastructure.storage.assets import LocalAssetStore
from tubely.infrastructure.storage.client import MockStorageClient

from .fakes import InMemoryVideoRepository


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def repository() -> InMemoryVideoRepository:
    return InMemoryVideoRepository()


@pytest.fixture
def locks() -> RecordLocks:
    return RecordLocks()


@pytest.fixture
def scratch_dir(tmp_path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def stager(scratch_dir) -> TempStager:
    return TempStager(scratch_dir)


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient(bucket_name="tubely-test")


@pytest.fixture
def assets(tmp_path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path / "assets", "http://localhost:8091")
