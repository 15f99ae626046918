from loguru import logger
from temporalio import activity

from src.catalog.core.services.database.db_session import DbSessionService
from src.catalog.core.services.media.ingestion import IngestionWorker
from src.catalog.core.services.media.models import IngestionResult, PendingMedia
from src.catalog.core.services.media.normalizer import MediaNormalizer
from src.catalog.core.services.redis_service import RedisService
from src.catalog.core.storage.artifact_store import LocalArtifactStore
from src.catalog.core.storage.cache import build_cache
from src.catalog.runtime.context import get_config
from src.catalog.worker.registry import activity_defn

_ingestion_worker: IngestionWorker | None = None


async def get_ingestion_worker() -> IngestionWorker:
    """Build the process-wide ingestion worker on first use."""
    global _ingestion_worker
    if _ingestion_worker is None:
        config = get_config()
        store = LocalArtifactStore(config.storage.root, config.storage.public_url)
        cache = await build_cache(RedisService().get_client())
        _ingestion_worker = IngestionWorker(
            MediaNormalizer(store, config.media), DbSessionService(), cache
        )
    return _ingestion_worker


def set_ingestion_worker(worker: IngestionWorker | None) -> None:
    global _ingestion_worker
    _ingestion_worker = worker


@activity_defn(queue=get_config().temporal.media_queue)
async def ingest_product_media(job: PendingMedia) -> IngestionResult:
    """Normalize and link the media of one product.

    Storage and commit failures propagate so Temporal retries the attempt.
    """
    info = activity.info()
    logger.info(
        "Ingesting product media",
        product_id=job.product_id,
        workflow_id=info.workflow_id,
        attempt=info.attempt,
    )
    worker = await get_ingestion_worker()
    return await worker.process(job)
