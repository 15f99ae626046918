import asyncio
from dataclasses import dataclass

from src.catalog.core.services import (
    CatalogService,
    DbSessionService,
    IngestionWorker,
    RedisService,
    TemporalClientService,
)
from src.catalog.core.services.media.queue import MediaQueue
from src.catalog.core.storage import ArtifactStore, Cache


@dataclass
class ApplicationDependencies:
    database_service: DbSessionService
    redis_service: RedisService
    temporal_service: TemporalClientService
    cache: Cache
    artifact_store: ArtifactStore
    media_queue: MediaQueue
    catalog_service: CatalogService
    # Set only when jobs are consumed in-process (memory queue backend)
    ingestion_worker: IngestionWorker | None = None
    consumer_task: asyncio.Task | None = None
    consumer_stop: asyncio.Event | None = None
