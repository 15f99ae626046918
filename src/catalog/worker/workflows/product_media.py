from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from src.catalog.core.services.media.models import IngestionResult, PendingMedia
    from src.catalog.runtime.context import get_config
    from src.catalog.worker.activities.product_media import ingest_product_media

from src.catalog.worker.registry import workflow_defn
from src.catalog.worker.workflows.base import BaseWorkflow, default_activity_opts


@workflow_defn(queue=get_config().temporal.media_queue)
class ProcessProductMediaWorkflow(BaseWorkflow[PendingMedia, IngestionResult]):
    """One media ingestion job. The workflow id is the queue ticket.

    Redelivery is the activity retry policy: storage and commit failures
    raised by the ingestion worker fail the attempt and Temporal retries it.
    """

    @workflow.run
    async def run(self, input: PendingMedia) -> IngestionResult:
        self._state["product_id"] = input.product_id
        self._state["status"] = "ingesting"

        result = await workflow.execute_activity(
            ingest_product_media,
            input,
            **default_activity_opts(),
        )

        self._state["status"] = "completed"
        self._state["rejected"] = dict(result.rejected)
        return result
