import asyncio
import signal
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import (
    SandboxedWorkflowRunner,
    SandboxRestrictions,
)

from src.catalog.runtime.context import get_config
from src.catalog.worker.registry import (
    autodiscover_modules,
    get_activities_by_queue,
    get_workflows_by_queue,
)

# Shared with the host process instead of being re-imported per workflow run;
# loguru calls datetime.now(), which the sandbox forbids.
PASSTHROUGH_MODULES = ("loguru", "src.catalog.runtime")


@dataclass
class Pool:
    """Workflows and activities registered to one task queue."""

    queue: str
    workflows: list[type[Any]] = field(default_factory=list)
    activities: list[Callable[..., Any]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.workflows and not self.activities

    def check_declared_queue(self) -> None:
        """Raise RuntimeError if a handler was registered under another queue."""
        handlers: list[tuple[str, Any, str]] = [
            (wf.__name__, wf, "__workflow_queue__") for wf in self.workflows
        ]
        handlers += [(fn.__name__, fn, "__activity_queue__") for fn in self.activities]
        for name, handler, attr in handlers:
            declared = getattr(handler, attr, None)
            if declared != self.queue:
                raise RuntimeError(
                    f"{name} declares queue '{declared}', but worker requested '{self.queue}'"
                )


def _collect_pools() -> dict[str, Pool]:
    pools: dict[str, Pool] = {}
    for queue, wfs in get_workflows_by_queue().items():
        pool = pools.setdefault(queue, Pool(queue=queue))
        pool.workflows.extend(sorted(wfs, key=lambda c: c.__name__))
    for queue, activities in get_activities_by_queue().items():
        pool = pools.setdefault(queue, Pool(queue=queue))
        pool.activities.extend(sorted(activities, key=lambda c: c.__name__))
    return pools


def _stop_on_signals() -> asyncio.Event:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows / non-main thread
            pass
    return stop_event


class TemporalWorkerManager:
    """Builds and runs one Temporal worker per discovered task queue.

    Example:
        manager = TemporalWorkerManager()
        client = await TemporalClientService().get_client()
        await manager.run_workers(client, ["product-media"])
    """

    def __init__(self, packages: list[str] | None = None):
        autodiscover_modules(packages)
        self._pools = _collect_pools()

    @property
    def pools(self) -> dict[str, Pool]:
        return self._pools

    def build_worker(self, client: Client, task_queue: str) -> Worker:
        """Create a Temporal worker for ``task_queue``.

        Raises:
            ValueError: If no workflows or activities are registered for the queue
            RuntimeError: If a handler's declared queue doesn't match the requested queue
        """
        pool = self._pools.get(task_queue)
        if pool is None or pool.empty:
            raise ValueError(f"No handlers registered for queue '{task_queue}'")
        pool.check_declared_queue()

        limits = get_config().temporal.worker
        restrictions = SandboxRestrictions.default.with_passthrough_modules(*PASSTHROUGH_MODULES)
        return Worker(
            client,
            task_queue=task_queue,
            workflows=pool.workflows,
            activities=pool.activities,
            workflow_runner=SandboxedWorkflowRunner(restrictions=restrictions),
            max_concurrent_workflow_tasks=limits.max_concurrent_workflow_tasks,
            max_concurrent_activities=limits.max_concurrent_activities,
        )

    async def run_workers(
        self,
        client: Client,
        task_queues: Sequence[str],
        stop_event: asyncio.Event | None = None,
        drain_timeout: float = 600.0,
    ) -> None:
        """Poll ``task_queues`` until stopped, then let in-flight ingestions finish.

        Args:
            client: Connected Temporal client instance
            task_queues: Task queue names to poll
            stop_event: Triggers shutdown. If None, SIGINT/SIGTERM set it.
            drain_timeout: Seconds to wait for in-flight tasks before cancelling workers.
        """
        workers = {q: self.build_worker(client, q) for q in task_queues}
        running = [asyncio.create_task(w.run(), name=f"worker:{q}") for q, w in workers.items()]
        stop_event = stop_event or _stop_on_signals()

        logger.info("Workers started; polling queues: {}", ", ".join(workers))
        try:
            await stop_event.wait()
            await self._drain(list(workers.values()), drain_timeout)
        except TimeoutError:
            logger.warning("Drain timed out after {}s; cancelling run loops", drain_timeout)
            for task in running:
                task.cancel()
        finally:
            await asyncio.gather(*running, return_exceptions=True)

    @staticmethod
    async def _drain(workers: list[Worker], timeout: float) -> None:
        logger.info("Shutdown requested; draining workers (timeout: {}s)", timeout)
        shutdowns = asyncio.gather(*(w.shutdown() for w in workers), return_exceptions=True)
        # Shielded so cancelling the caller doesn't abort the shutdown itself
        await asyncio.wait_for(asyncio.shield(shutdowns), timeout=timeout)
        logger.info("Workers drained cleanly")
