"""stockwise run: start the advice scheduler."""

from __future__ import annotations

import asyncio

import click


@click.command()
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Run now and then every N minutes instead of daily (for checking the pipeline).",
)
@click.pass_context
def run(ctx: click.Context, interval: float | None) -> None:
    """Start the daily advice scheduler and block until interrupted."""
    from stockwise.core.cli.common import create_pipeline, create_store, load_settings

    if interval is not None and interval <= 0:
        raise click.BadParameter("must be positive", param_hint="--interval")

    settings = load_settings(ctx)
    store = create_store(settings)
    pipeline = create_pipeline(settings, store)

    try:
        asyncio.run(_serve(settings, store, pipeline, interval))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


async def _serve(settings, store, pipeline, interval: float | None) -> None:  # type: ignore[no-untyped-def]
    """Check storage and providers, start the scheduler, then wait forever."""
    from stockwise.advisor.scheduler import AdviceScheduler
    from stockwise.core.storage import StorageError

    try:
        await store.check_available()
    except StorageError as e:
        raise click.ClickException(f"Document store unavailable: {e}") from e

    configured = await pipeline.catalog.load_providers()
    if not configured:
        raise click.ClickException("No usable providers configured. Add them to the config file or api.md.")

    scheduler = AdviceScheduler.from_config(pipeline.run, settings.scheduler)
    if interval:
        scheduler.start_with_interval(interval)
        click.echo(f"Running {len(configured)} provider(s) every {interval:g} minute(s).")
    else:
        scheduler.start()
        status = scheduler.get_status()
        click.echo(f"Running {len(configured)} provider(s) daily; next run at {status.next_fire_time:%Y-%m-%d %H:%M}.")
    click.echo("Press Ctrl+C to stop.\n")

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
