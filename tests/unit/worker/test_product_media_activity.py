"""Tests for the product media activity and workflow registration."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from temporalio.testing import ActivityEnvironment

from src.catalog.core.errors import StorageFailure
from src.catalog.core.services.media.models import IngestionResult, MediaPayload, PendingMedia
from src.catalog.entities.service.product import ProductRepository
from src.catalog.worker.activities import product_media
from src.catalog.worker.activities.product_media import ingest_product_media
from src.catalog.worker.workflows.base import default_activity_opts, default_workflow_opts
from src.catalog.worker.workflows.product_media import ProcessProductMediaWorkflow


@pytest.fixture
def injected_worker(ingestion_worker):
    product_media.set_ingestion_worker(ingestion_worker)
    yield ingestion_worker
    product_media.set_ingestion_worker(None)


class TestIngestProductMediaActivity:
    @pytest.mark.asyncio
    async def test_runs_ingestion_for_the_job(self, injected_worker, database_service, png_bytes):
        with database_service.session_scope() as session:
            product = ProductRepository(session).insert(
                {"title": "Lamp", "description": "", "price": Decimal("19.99")}
            )
        job = PendingMedia(product_id=product.id, image=MediaPayload(content=png_bytes, extension="png"))

        result = await ActivityEnvironment().run(ingest_product_media, job)

        assert isinstance(result, IngestionResult)
        assert result.image_path is not None
        with database_service.session_scope() as session:
            assert ProductRepository(session).get(product.id).image_path == result.image_path

    @pytest.mark.asyncio
    async def test_failures_propagate_for_retry(self):
        worker = MagicMock()
        worker.process = AsyncMock(side_effect=StorageFailure("disk full"))
        product_media.set_ingestion_worker(worker)
        try:
            job = PendingMedia(product_id="p-1", video=MediaPayload(content=b"v", extension="mp4"))
            with pytest.raises(StorageFailure):
                await ActivityEnvironment().run(ingest_product_media, job)
        finally:
            product_media.set_ingestion_worker(None)


class TestRegistration:
    def test_workflow_and_activity_share_the_media_queue(self):
        assert ProcessProductMediaWorkflow.__workflow_queue__ == "product-media"
        assert ingest_product_media.__activity_queue__ == "product-media"

    def test_manager_builds_one_pool_for_the_media_queue(self):
        from src.catalog.worker.manager import TemporalWorkerManager

        pools = TemporalWorkerManager().pools

        pool = pools["product-media"]
        assert ProcessProductMediaWorkflow in pool.workflows
        assert ingest_product_media in pool.activities

    def test_unknown_queue_has_no_worker(self):
        from src.catalog.worker.manager import TemporalWorkerManager

        with pytest.raises(ValueError):
            TemporalWorkerManager().build_worker(MagicMock(), "no-such-queue")


class TestDefaultOptions:
    def test_activity_options_come_from_config(self):
        opts = default_activity_opts()

        assert opts["start_to_close_timeout"] == timedelta(seconds=300)
        assert opts["retry_policy"].maximum_attempts == 5
        assert "ValidationError" in opts["retry_policy"].non_retryable_error_types

    def test_workflow_is_not_retried_by_default(self):
        opts = default_workflow_opts()

        assert opts["retry_policy"].maximum_attempts == 1

    @pytest.mark.asyncio
    async def test_start_workflow_uses_declared_queue(self):
        client = MagicMock()
        client.start_workflow = AsyncMock(return_value=MagicMock(id="wf-1"))
        job = PendingMedia(product_id="p-1", video=MediaPayload(content=b"v", extension="mp4"))

        await ProcessProductMediaWorkflow.start_workflow(client, job, id="wf-1")

        _, kwargs = client.start_workflow.await_args
        assert kwargs["task_queue"] == "product-media"
        assert kwargs["id"] == "wf-1"
        assert kwargs["execution_timeout"] == timedelta(seconds=3600)
