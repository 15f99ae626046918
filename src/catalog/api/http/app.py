"""FastAPI application setup."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.api.http.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from src.catalog.api.http.routers.health import router as health_router
from src.catalog.api.http.routers.service.product import router as product_router
from src.catalog.api.utils.app_startup import configure_logging
from src.catalog.core.services import (
    CatalogService,
    DbSessionService,
    IngestionWorker,
    MediaNormalizer,
    RedisService,
    TemporalClientService,
)
from src.catalog.core.services.database.db_manage import DbManageService
from src.catalog.core.services.media.queue import InMemoryMediaQueue, MediaQueue, TemporalMediaQueue
from src.catalog.core.storage import LocalArtifactStore, build_cache
from src.catalog.runtime.context import get_config

# Initialize logging
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    try:
        yield
    finally:
        await shutdown()


_config = get_config()
_is_production = _config.app.environment == "production"

if _is_production and "*" in _config.app.cors.origins:
    raise RuntimeError(
        "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
    )

app = FastAPI(
    title="Product Catalog",
    lifespan=lifespan,
    docs_url=None if _is_production else "/docs",
    redoc_url=None if _is_production else "/redoc",
)

# Last added runs first: request logging wraps everything else
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.app.cors.origins,
    allow_credentials=_config.app.cors.allow_credentials,
    allow_methods=_config.app.cors.allow_methods,
    allow_headers=_config.app.cors.allow_headers,
)
app.add_middleware(RequestLoggingMiddleware)

__all__ = ["app", "startup", "shutdown"]


# --- Router registration ---
app.include_router(health_router)
app.include_router(product_router)

# Artifacts are served from the local store root
app.mount(
    "/storage",
    StaticFiles(directory=_config.storage.root, check_dir=False),
    name="storage",
)


def _build_media_queue(temporal_service: TemporalClientService) -> MediaQueue:
    backend = get_config().catalog.queue_backend
    if backend == "temporal":
        logger.info("Media queue backend: Temporal ({})", temporal_service.task_queue)
        return TemporalMediaQueue(temporal_service)
    logger.info("Media queue backend: in-process memory queue")
    return InMemoryMediaQueue(max_attempts=get_config().temporal.activities.retry.maximum_attempts)


# --- Lifecycle hooks ---
async def startup() -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    database_service = DbSessionService()
    DbManageService(database_service.engine).create_all()

    redis_service = RedisService()
    temporal_service = TemporalClientService()
    cache = await build_cache(redis_service.get_client())
    artifact_store = LocalArtifactStore(config.storage.root, config.storage.public_url)
    media_queue = _build_media_queue(temporal_service)

    deps = ApplicationDependencies(
        database_service=database_service,
        redis_service=redis_service,
        temporal_service=temporal_service,
        cache=cache,
        artifact_store=artifact_store,
        media_queue=media_queue,
        catalog_service=CatalogService(database_service, cache, media_queue, config),
    )

    # Without Temporal the API process consumes its own jobs
    if isinstance(media_queue, InMemoryMediaQueue):
        deps.ingestion_worker = IngestionWorker(
            MediaNormalizer(artifact_store, config.media), database_service, cache
        )
        deps.consumer_stop = asyncio.Event()
        deps.consumer_task = asyncio.create_task(
            media_queue.run(deps.ingestion_worker.process, deps.consumer_stop),
            name="media-consumer",
        )

    app.state.app_dependencies = deps


async def shutdown() -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies = app.state.app_dependencies

    if app_dependencies.consumer_task is not None and app_dependencies.consumer_stop is not None:
        app_dependencies.consumer_stop.set()
        await app_dependencies.consumer_task

    await app_dependencies.redis_service.close()
    await app_dependencies.temporal_service.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # We handle access logging in middleware
    )
