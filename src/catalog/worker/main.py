"""``catalog-worker``: run the Temporal worker that ingests product media."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger

from src.catalog.api.utils.app_startup import configure_logging
from src.catalog.core.services.temporal.temporal_client import TemporalClientService
from src.catalog.runtime.context import get_config
from src.catalog.runtime.init_db import init_db
from src.catalog.worker.manager import TemporalWorkerManager

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _select_queues(manager: TemporalWorkerManager, requested: list[str] | None) -> list[str]:
    discovered = sorted(manager.pools)
    if not discovered:
        logger.error("No task queues discovered under the worker packages")
        raise typer.Exit(code=2)
    if not requested:
        return discovered

    unknown = sorted(set(requested) - set(discovered))
    if unknown:
        logger.error("Unknown queue(s): {}. Known: {}", ", ".join(unknown), ", ".join(discovered))
        raise typer.Exit(code=2)
    return requested


async def _run(manager: TemporalWorkerManager, queues: list[str], drain_timeout: float) -> int:
    temporal_service = TemporalClientService()
    try:
        client = await temporal_service.get_client()
        await manager.run_workers(client, queues, drain_timeout=drain_timeout)
    except Exception:
        logger.exception("Worker crashed")
        return 1
    finally:
        await temporal_service.close()
    return 0


@app.command(name="serve")
def serve(
    queue: list[str] | None = typer.Option(
        None,
        "--queue",
        "-q",
        help="Task queue to poll (repeatable). Defaults to every discovered queue.",
    ),
    drain_timeout: float = typer.Option(
        600.0, "--drain-timeout", help="Seconds to let in-flight ingestions finish on shutdown."
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", case_sensitive=False, help="Override the configured logging level."
    ),
):
    """Poll the media queue and ingest uploaded product images and videos."""
    configure_logging(level=log_level, component="worker")

    if not get_config().temporal.enabled:
        logger.error("Temporal is disabled by configuration; nothing to serve")
        raise typer.Exit(code=2)

    manager = TemporalWorkerManager()
    queues = _select_queues(manager, queue)

    # Ingestion writes product rows
    init_db()

    raise typer.Exit(code=asyncio.run(_run(manager, queues, drain_timeout)))


@app.command(name="queues")
def list_queues():
    """Print each discovered task queue with its workflows and activities."""
    for name, pool in sorted(TemporalWorkerManager().pools.items()):
        typer.echo(name)
        for wf in pool.workflows:
            typer.echo(f"  workflow  {wf.__name__}")
        for act in pool.activities:
            typer.echo(f"  activity  {act.__name__}")


def main():
    app()


if __name__ == "__main__":
    main()
