"""Task queue registry for Temporal handlers.

Workflows and activities register themselves to a task queue with the
decorators below; the worker manager builds one pool per queue.

Usage:
    @workflow_defn(queue="product-media")
    class ProcessProductMediaWorkflow(BaseWorkflow[PendingMedia, IngestionResult]):
        ...

    @activity_defn(queue="product-media")
    async def ingest_product_media(job: PendingMedia) -> IngestionResult:
        ...
"""

import importlib
import pkgutil
from collections import defaultdict
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, cast

from temporalio import activity, workflow

from src.catalog.worker.workflows.base import BaseWorkflow

DEFAULT_PACKAGES = [
    "src.catalog.worker.activities",
    "src.catalog.worker.workflows",
]

QUEUE_ATTR = {"activity": "__activity_queue__", "workflow": "__workflow_queue__"}

# kind -> queue -> handlers
_REGISTRY: dict[str, defaultdict[str, set[Any]]] = {
    "activity": defaultdict(set),
    "workflow": defaultdict(set),
}

P = ParamSpec("P")
R = TypeVar("R")
WFClass = TypeVar("WFClass", bound="type[BaseWorkflow[Any, Any]]")


def _register(kind: str, queue: str, handler: Any) -> None:
    setattr(handler, "__temporal_registered__", True)
    setattr(handler, QUEUE_ATTR[kind], queue)
    _REGISTRY[kind][queue].add(handler)


def activity_defn(
    *, queue: str, **activity_kwargs: Any
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Apply ``@activity.defn`` and register the activity to ``queue``.

    Raises:
        ValueError: If queue is empty
    """
    if not queue:
        raise ValueError("activity_defn requires 'queue'")

    def deco(fn: Callable[P, R]) -> Callable[P, R]:
        wrapped = activity.defn(**activity_kwargs)(fn)
        _register("activity", queue, wrapped)
        return cast(Callable[P, R], wrapped)

    return deco


def workflow_defn(*, queue: str, **workflow_kwargs: Any) -> Callable[[WFClass], WFClass]:
    """Apply ``@workflow.defn`` and register the workflow class to ``queue``.

    Raises:
        ValueError: If queue is empty
    """
    if not queue:
        raise ValueError("workflow_defn requires 'queue'")

    def deco(cls: WFClass) -> WFClass:
        wrapped = workflow.defn(**workflow_kwargs)(cls)
        _register("workflow", queue, wrapped)
        return cast(WFClass, wrapped)

    return deco


def autodiscover_modules(packages: list[str] | None = None) -> None:
    """Import every module under ``packages`` so their decorators run."""
    for package_name in packages or DEFAULT_PACKAGES:
        package = importlib.import_module(package_name)
        for module in pkgutil.walk_packages(package.__path__, prefix=f"{package_name}."):
            importlib.import_module(module.name)


def get_activities_by_queue() -> dict[str, set[Callable[..., Any]]]:
    return {queue: set(handlers) for queue, handlers in _REGISTRY["activity"].items()}


def get_workflows_by_queue() -> dict[str, set[type]]:
    return {queue: set(handlers) for queue, handlers in _REGISTRY["workflow"].items()}
