"""Shared setup logic for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from stockwise.advisor.aggregator import AdvicePipeline
    from stockwise.advisor.models import RunReport
    from stockwise.core.config_schema import StockwiseConfig
    from stockwise.core.storage import LocalDocumentStore

STOCKWISE_DIR = Path.home() / ".stockwise"
CONFIG_PATH = STOCKWISE_DIR / "config.yaml"


def load_settings(ctx: click.Context) -> StockwiseConfig:
    """Load and validate the config, then configure logging from it."""
    from pydantic import ValidationError

    from stockwise.core.config import Config
    from stockwise.core.utils.logging import setup_logging

    obj = ctx.obj or {}
    config_file = obj.get("config_file") or str(CONFIG_PATH)
    config = Config(config_file=config_file)
    try:
        settings = config.validated()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration in {config_file}:\n{e}") from e
    config.ensure_directories()

    log_dir = str(settings.paths.log_dir) if settings.paths.log_dir else None
    setup_logging("DEBUG" if obj.get("verbose") else "INFO", log_dir=log_dir)
    return settings


def create_store(settings: StockwiseConfig) -> LocalDocumentStore:
    from stockwise.core.storage import LocalDocumentStore

    return LocalDocumentStore(base_path=str(settings.paths.data_dir))


def create_pipeline(settings: StockwiseConfig, store: LocalDocumentStore) -> AdvicePipeline:
    """Wire gateway, record store, sources and aggregator from config."""
    from stockwise.advisor.aggregator import AdviceAggregator, AdvicePipeline
    from stockwise.advisor.gateway import ProviderGateway
    from stockwise.advisor.record_store import AdviceRecordStore
    from stockwise.advisor.sources import DocumentProviderCatalog, WarehouseSource

    docs = settings.documents
    aggregator = AdviceAggregator(
        ProviderGateway.from_config(settings.gateway),
        AdviceRecordStore(store, key=docs.advice_key),
        user_capacity=settings.advisor.user_capacity_ntd,
        min_investment=settings.advisor.min_investment_ntd,
        inter_provider_delay=settings.advisor.inter_provider_delay,
        language=settings.advisor.language,
    )
    return AdvicePipeline(
        aggregator,
        WarehouseSource(store, key=docs.holdings_key),
        DocumentProviderCatalog(store, key=docs.providers_key, inline=settings.providers),
        retention_days=settings.advisor.retention_days,
    )


def echo_report(report: RunReport) -> None:
    """Print the per-provider outcome of a run."""
    for result in report.results:
        mark = "ok" if result.succeeded else "FAILED"
        click.echo(f"  [{mark}] {result.describe()}")
    click.echo(report.summary())
