"""Service fixtures for testing."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.catalog.core.services import (
    CatalogService,
    DbSessionService,
    IngestionWorker,
    MediaNormalizer,
)
from src.catalog.core.services.media.queue import InMemoryMediaQueue
from src.catalog.core.storage import InMemoryCache, LocalArtifactStore
from src.catalog.runtime.config.config_data import ConfigData

__all__ = [
    "FakeClock",
    "artifact_store",
    "cache",
    "catalog_config",
    "catalog_service",
    "clock",
    "ingestion_worker",
    "media_queue",
    "normalizer",
]


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCache:
    return InMemoryCache(clock=clock)


@pytest.fixture
def artifact_store(tmp_path: Path) -> LocalArtifactStore:
    return LocalArtifactStore(tmp_path / "public", public_url="http://testserver/storage")


@pytest.fixture
def media_queue() -> InMemoryMediaQueue:
    return InMemoryMediaQueue(max_attempts=3)


@pytest.fixture
def catalog_config() -> ConfigData:
    return ConfigData()


@pytest.fixture
def normalizer(artifact_store: LocalArtifactStore, catalog_config: ConfigData) -> MediaNormalizer:
    return MediaNormalizer(artifact_store, catalog_config.media)


@pytest.fixture
def ingestion_worker(
    normalizer: MediaNormalizer,
    database_service: DbSessionService,
    cache: InMemoryCache,
) -> IngestionWorker:
    return IngestionWorker(normalizer, database_service, cache)


@pytest.fixture
def catalog_service(
    database_service: DbSessionService,
    cache: InMemoryCache,
    media_queue: InMemoryMediaQueue,
    catalog_config: ConfigData,
) -> CatalogService:
    return CatalogService(database_service, cache, media_queue, catalog_config)
