from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Self

from temporalio import workflow
from temporalio.client import Client, WorkflowHandle
from temporalio.common import RetryPolicy

from src.catalog.runtime.config.config_data import RetryConfig, TemporalConfig

# Payload validation errors fail the activity on the first attempt
NON_RETRYABLE_ERRORS = ["ValidationError"]


def _seconds(value: int) -> timedelta:
    return timedelta(seconds=value)


def _retry_policy(cfg: RetryConfig, **kwargs: Any) -> RetryPolicy:
    return RetryPolicy(
        maximum_attempts=cfg.maximum_attempts,
        initial_interval=_seconds(cfg.initial_interval_seconds),
        backoff_coefficient=cfg.backoff_coefficient,
        maximum_interval=_seconds(cfg.maximum_interval_seconds),
        **kwargs,
    )


def _temporal_config(cfg: TemporalConfig | None) -> TemporalConfig:
    if cfg is not None:
        return cfg
    from src.catalog.runtime.context import get_config

    return get_config().temporal


def default_workflow_opts(cfg: TemporalConfig | None = None) -> dict[str, Any]:
    """Timeouts and retry policy for ``Client.start_workflow``."""
    workflows = _temporal_config(cfg).workflows
    return {
        "execution_timeout": _seconds(workflows.execution_timeout_s),
        "run_timeout": _seconds(workflows.run_timeout_s),
        "task_timeout": _seconds(workflows.task_timeout_s),
        "retry_policy": _retry_policy(workflows.retry),
    }


def default_activity_opts(cfg: TemporalConfig | None = None) -> dict[str, Any]:
    """Timeouts and retry policy for ``workflow.execute_activity``; use inside workflows."""
    activities = _temporal_config(cfg).activities
    return {
        "start_to_close_timeout": _seconds(activities.start_to_close_timeout_s),
        "schedule_to_close_timeout": _seconds(activities.schedule_to_close_timeout_s),
        "retry_policy": _retry_policy(
            activities.retry, non_retryable_error_types=NON_RETRYABLE_ERRORS
        ),
    }


class BaseWorkflow[TArgs, TReturn](ABC):
    """Workflow with a queryable ``state`` dict and a typed ``start_workflow``."""

    def __init__(self) -> None:
        self._state: dict[str, Any] = {}

    @workflow.run
    @abstractmethod
    async def run(self, input: TArgs) -> TReturn: ...

    @workflow.query
    def state(self) -> dict:
        return self._state

    @classmethod
    def declared_queue(cls) -> str:
        queue = getattr(cls, "__workflow_queue__", None)
        if not queue:
            raise ValueError(f"{cls.__name__} has no declared queue")
        return queue

    @classmethod
    async def start_workflow(
        cls: type[Self],
        client: Client,
        input: TArgs,
        id: str,
        **workflow_kwargs,
    ) -> WorkflowHandle[Self, TReturn]:
        """Start an execution on the class's declared queue and return its handle.

        ``workflow_kwargs`` override the configured timeouts and retry policy.

        Raises:
            ValueError: If the workflow class has no declared queue
        """
        options = {**default_workflow_opts(), **workflow_kwargs}
        return await client.start_workflow(
            cls.run, input, id=id, task_queue=cls.declared_queue(), **options
        )
