"""Ingestion worker: apply the media normalizer to a job and commit the paths."""

import asyncio

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.catalog.core.errors import (
    CacheError,
    MediaRejected,
    NotFound,
    StorageFailure,
    TransactionFailure,
)
from src.catalog.core.services.cache_keys import product_key
from src.catalog.core.services.database.db_session import DbSessionService
from src.catalog.core.services.media.models import IngestionResult, PendingMedia
from src.catalog.core.services.media.normalizer import MediaNormalizer
from src.catalog.core.storage.cache import Cache
from src.catalog.entities.service.product import ProductRepository


class IngestionWorker:
    """Process PendingMedia jobs.

    Image and video are handled independently, image first. Each successful
    medium is committed on its own, touching only its own path column, and the
    product's detail cache entry is dropped after the commit.

    Rejected media are logged and skipped; the product is not changed and no
    caller is told. Storage and database failures are logged, the other medium
    still runs, and the first failure is re-raised so the queue redelivers the
    job.
    """

    def __init__(self, normalizer: MediaNormalizer, database: DbSessionService, cache: Cache):
        self._normalizer = normalizer
        self._database = database
        self._cache = cache

    async def process(self, job: PendingMedia) -> IngestionResult:
        result = IngestionResult(product_id=job.product_id)
        if job.image is None and job.video is None:
            logger.warning("Media job without payloads ignored", product_id=job.product_id)
            return result

        steps = (
            ("image", "image_path", job.image, self._normalizer.normalize_image),
            ("video", "video_path", job.video, self._normalizer.store_video),
        )
        failures: list[Exception] = []

        for medium, column, payload, normalize in steps:
            if payload is None:
                continue

            try:
                path = await asyncio.to_thread(normalize, payload.content, payload.extension)
            except MediaRejected as e:
                logger.warning(
                    "Media rejected",
                    product_id=job.product_id,
                    medium=medium,
                    reason=e.reason,
                )
                result.rejected[medium] = e.reason
                continue
            except StorageFailure as e:
                logger.error("Media storage failed", product_id=job.product_id, medium=medium, error=str(e))
                failures.append(e)
                continue

            try:
                await asyncio.to_thread(self._commit, job.product_id, column, path)
            except NotFound:
                logger.warning(
                    "Product no longer exists; artifact left unreferenced",
                    product_id=job.product_id,
                    path=path,
                )
                result.product_missing = True
                break
            except TransactionFailure as e:
                logger.error("Media path commit failed", product_id=job.product_id, medium=medium, error=str(e))
                failures.append(e)
                continue

            setattr(result, column, path)
            await self._invalidate(job.product_id)

        if failures:
            raise failures[0]

        logger.info(
            "Media job processed",
            product_id=job.product_id,
            image_path=result.image_path,
            video_path=result.video_path,
            rejected=list(result.rejected),
        )
        return result

    def _commit(self, product_id: str, column: str, path: str) -> None:
        try:
            with self._database.session_scope() as session:
                ProductRepository(session).update(product_id, {column: path})
        except SQLAlchemyError as e:
            raise TransactionFailure(f"Could not store {column} for product {product_id}") from e

    async def _invalidate(self, product_id: str) -> None:
        try:
            await self._cache.forget(product_key(product_id))
        except CacheError as e:
            # The entry still expires on its TTL
            logger.error("Cache invalidation failed", product_id=product_id, error=str(e))
