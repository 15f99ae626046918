"""Tests for the ingestion worker."""

from decimal import Decimal
from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image
from sqlalchemy.exc import OperationalError

from src.catalog.core.errors import StorageFailure, TransactionFailure
from src.catalog.core.services.media.models import MediaPayload, PendingMedia
from src.catalog.entities.service.product import ProductDetail, ProductRepository


def _insert(database_service, **fields):
    values = {"title": "Lamp", "description": "Desk lamp", "price": Decimal("19.99"), **fields}
    with database_service.session_scope() as session:
        return ProductRepository(session).insert(values)


def _load(database_service, product_id):
    with database_service.session_scope() as session:
        return ProductRepository(session).get(product_id)


class TestIngestionWorker:
    @pytest.mark.asyncio
    async def test_image_and_video_are_committed(
        self, ingestion_worker, database_service, artifact_store, png_bytes
    ):
        product = _insert(database_service)
        job = PendingMedia(
            product_id=product.id,
            image=MediaPayload(content=png_bytes, extension="png"),
            video=MediaPayload(content=b"video-bytes", extension="mp4"),
        )

        result = await ingestion_worker.process(job)

        stored = _load(database_service, product.id)
        assert stored.image_path == result.image_path
        assert stored.video_path == result.video_path
        assert result.rejected == {}
        with Image.open(BytesIO(artifact_store.read(stored.image_path))) as image:
            assert image.size == (800, 600)
        assert artifact_store.read(stored.video_path) == b"video-bytes"

    @pytest.mark.asyncio
    async def test_image_only_job_keeps_existing_video(
        self, ingestion_worker, database_service, png_bytes
    ):
        product = _insert(database_service, video_path="videos/existing.mp4")

        await ingestion_worker.process(
            PendingMedia(product_id=product.id, image=MediaPayload(content=png_bytes, extension="png"))
        )

        stored = _load(database_service, product.id)
        assert stored.image_path is not None
        assert stored.video_path == "videos/existing.mp4"

    @pytest.mark.asyncio
    async def test_rejected_image_does_not_block_video(self, ingestion_worker, database_service):
        product = _insert(database_service, image_path="images/old.jpg")
        job = PendingMedia(
            product_id=product.id,
            image=MediaPayload(content=b"not an image", extension="png"),
            video=MediaPayload(content=b"video-bytes", extension="webm"),
        )

        result = await ingestion_worker.process(job)

        stored = _load(database_service, product.id)
        assert "image" in result.rejected
        assert stored.image_path == "images/old.jpg"
        assert stored.video_path is not None and stored.video_path.endswith(".webm")

    @pytest.mark.asyncio
    async def test_unsupported_video_is_skipped(self, ingestion_worker, database_service, png_bytes):
        product = _insert(database_service)
        job = PendingMedia(
            product_id=product.id,
            image=MediaPayload(content=png_bytes, extension="png"),
            video=MediaPayload(content=b"video", extension="mkv"),
        )

        result = await ingestion_worker.process(job)

        stored = _load(database_service, product.id)
        assert stored.image_path is not None
        assert stored.video_path is None
        assert "video" in result.rejected

    @pytest.mark.asyncio
    async def test_commit_invalidates_detail_cache(
        self, ingestion_worker, database_service, cache, png_bytes
    ):
        product = _insert(database_service)
        await cache.put(f"product_{product.id}", ProductDetail(product=product), 600)

        await ingestion_worker.process(
            PendingMedia(product_id=product.id, image=MediaPayload(content=png_bytes, extension="png"))
        )

        assert await cache.get(f"product_{product.id}", ProductDetail) is None

    @pytest.mark.asyncio
    async def test_missing_product_ends_job(self, ingestion_worker, artifact_store, png_bytes):
        job = PendingMedia(
            product_id="does-not-exist",
            image=MediaPayload(content=png_bytes, extension="png"),
            video=MediaPayload(content=b"video", extension="mp4"),
        )

        result = await ingestion_worker.process(job)

        assert result.product_missing is True
        assert result.image_path is None
        # The video is not processed once the product is known to be gone
        assert not (artifact_store.root / "videos").exists()

    @pytest.mark.asyncio
    async def test_storage_failure_is_raised_after_other_medium(
        self, ingestion_worker, database_service, png_bytes
    ):
        product = _insert(database_service)
        job = PendingMedia(
            product_id=product.id,
            image=MediaPayload(content=png_bytes, extension="png"),
            video=MediaPayload(content=b"video", extension="mp4"),
        )

        with patch.object(
            ingestion_worker._normalizer,
            "normalize_image",
            side_effect=StorageFailure("disk full"),
        ):
            with pytest.raises(StorageFailure):
                await ingestion_worker.process(job)

        stored = _load(database_service, product.id)
        assert stored.image_path is None
        assert stored.video_path is not None

    @pytest.mark.asyncio
    async def test_commit_failure_becomes_transaction_failure(
        self, ingestion_worker, database_service, png_bytes
    ):
        product = _insert(database_service)
        job = PendingMedia(product_id=product.id, image=MediaPayload(content=png_bytes, extension="png"))

        with patch.object(
            ProductRepository,
            "update",
            side_effect=OperationalError("UPDATE products", {}, Exception("database is locked")),
        ):
            with pytest.raises(TransactionFailure):
                await ingestion_worker.process(job)

        assert _load(database_service, product.id).image_path is None

    @pytest.mark.asyncio
    async def test_rerun_overwrites_path_with_equivalent_artifact(
        self, ingestion_worker, database_service, artifact_store, png_bytes
    ):
        product = _insert(database_service)
        job = PendingMedia(product_id=product.id, image=MediaPayload(content=png_bytes, extension="png"))

        first = await ingestion_worker.process(job)
        second = await ingestion_worker.process(job)

        assert first.image_path != second.image_path
        assert _load(database_service, product.id).image_path == second.image_path
        assert artifact_store.read(first.image_path) == artifact_store.read(second.image_path)

    @pytest.mark.asyncio
    async def test_job_without_payloads_is_ignored(self, ingestion_worker, database_service):
        product = _insert(database_service)
        job = PendingMedia.model_construct(product_id=product.id, image=None, video=None)

        result = await ingestion_worker.process(job)

        assert result.image_path is None and result.video_path is None
