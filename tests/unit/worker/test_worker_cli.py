"""Tests for the catalog-worker command line."""

from typer.testing import CliRunner

from src.catalog.runtime.config.config_data import ConfigData, TemporalConfig
from src.catalog.runtime.context import with_context
from src.catalog.worker.main import app

runner = CliRunner()


def test_queues_lists_media_handlers():
    result = runner.invoke(app, ["queues"])

    assert result.exit_code == 0
    assert "product-media" in result.output
    assert "ProcessProductMediaWorkflow" in result.output
    assert "ingest_product_media" in result.output


def test_serve_refuses_when_temporal_disabled():
    with with_context(ConfigData(temporal=TemporalConfig(enabled=False))):
        result = runner.invoke(app, ["serve"])

    assert result.exit_code == 2


def test_serve_rejects_unknown_queue():
    with with_context(ConfigData(temporal=TemporalConfig(enabled=True))):
        result = runner.invoke(app, ["serve", "--queue", "no-such-queue"])

    assert result.exit_code == 2
