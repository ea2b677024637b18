"""stockwise prune: drop old ledger entries."""

from __future__ import annotations

import asyncio

import click


@click.command()
@click.option("--days", type=int, default=None, help="Keep this many days (default: advisor.retention_days).")
@click.pass_context
def prune(ctx: click.Context, days: int | None) -> None:
    """Remove advice ledger entries older than the retention window."""
    from stockwise.advisor.record_store import AdviceRecordStore
    from stockwise.core.cli.common import create_store, load_settings

    settings = load_settings(ctx)
    days = days if days is not None else settings.advisor.retention_days
    if days < 0:
        raise click.BadParameter("must not be negative", param_hint="--days")

    record_store = AdviceRecordStore(create_store(settings), key=settings.documents.advice_key)
    removed = asyncio.run(record_store.prune_older_than(days))
    click.echo(f"Removed {removed} entr{'y' if removed == 1 else 'ies'} older than {days} days.")
