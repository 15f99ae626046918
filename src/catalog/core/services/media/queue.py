"""Queue handles for media ingestion jobs.

``enqueue`` returns a ticket identifying the job so callers and tests can
observe dispatch. Delivery is at-least-once: a job may be handed to the
ingestion worker more than once.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from src.catalog.core.services.media.models import PendingMedia
from src.catalog.core.services.temporal.temporal_client import TemporalClientService

JobHandler = Callable[[PendingMedia], Awaitable[object]]


class MediaQueue(ABC):
    """Abstract dispatch interface for media ingestion jobs."""

    @abstractmethod
    async def enqueue(self, job: PendingMedia) -> str:
        """Hand ``job`` to the queue and return its ticket."""


def new_ticket(job: PendingMedia) -> str:
    return f"product-media-{job.product_id}-{uuid.uuid4().hex[:12]}"


@dataclass
class QueuedMedia:
    ticket: str
    job: PendingMedia
    attempt: int = 1


class InMemoryMediaQueue(MediaQueue):
    """Process-local queue with a consumer loop.

    Used for development without Temporal and in tests. A job whose handler
    raises is re-queued until ``max_attempts`` deliveries have been made.
    """

    def __init__(self, max_attempts: int = 3):
        self._queue: asyncio.Queue[QueuedMedia] = asyncio.Queue()
        self._max_attempts = max_attempts
        self.tickets: list[str] = []

    async def enqueue(self, job: PendingMedia) -> str:
        ticket = new_ticket(job)
        self._queue.put_nowait(QueuedMedia(ticket=ticket, job=job))
        self.tickets.append(ticket)
        logger.debug("Media job queued", ticket=ticket, product_id=job.product_id)
        return ticket

    async def consume(self) -> QueuedMedia:
        """Wait for the next job."""
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    async def handle(self, item: QueuedMedia, handler: JobHandler) -> bool:
        """Run ``handler`` for one delivery; returns True if it succeeded."""
        try:
            await handler(item.job)
            return True
        except Exception:
            logger.exception(
                "Media job failed",
                ticket=item.ticket,
                product_id=item.job.product_id,
                attempt=item.attempt,
            )
            if item.attempt < self._max_attempts:
                self._queue.put_nowait(
                    QueuedMedia(ticket=item.ticket, job=item.job, attempt=item.attempt + 1)
                )
            else:
                logger.error("Media job dropped after {} attempts", item.attempt, ticket=item.ticket)
            return False
        finally:
            self._queue.task_done()

    async def drain(self, handler: JobHandler) -> int:
        """Process queued jobs, including redeliveries, until the queue is empty.

        Returns:
            Number of deliveries made.
        """
        deliveries = 0
        while not self._queue.empty():
            await self.handle(self._queue.get_nowait(), handler)
            deliveries += 1
        return deliveries

    async def run(self, handler: JobHandler, stop_event: asyncio.Event) -> None:
        """Consume jobs until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                item = await asyncio.wait_for(self.consume(), timeout=0.5)
            except TimeoutError:
                continue
            await self.handle(item, handler)


class TemporalMediaQueue(MediaQueue):
    """Dispatch each job as a ProcessProductMediaWorkflow execution.

    The workflow id is the ticket. Temporal's activity retry policy provides
    redelivery.
    """

    def __init__(self, temporal_service: TemporalClientService):
        self._temporal = temporal_service

    async def enqueue(self, job: PendingMedia) -> str:
        from src.catalog.worker.workflows.product_media import ProcessProductMediaWorkflow

        client = await self._temporal.get_client()
        handle = await ProcessProductMediaWorkflow.start_workflow(
            client, job, id=new_ticket(job)
        )
        logger.info("Media workflow started", ticket=handle.id, product_id=job.product_id)
        return handle.id
