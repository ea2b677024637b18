"""stockwise advise / providers: one-off runs and provider listing."""

from __future__ import annotations

import asyncio

import click


@click.command()
@click.option("--provider", "provider_name", default=None, help="Run only the named provider.")
@click.pass_context
def advise(ctx: click.Context, provider_name: str | None) -> None:
    """Ask every provider for advice now and record it."""
    from stockwise.core.cli.common import create_pipeline, create_store, echo_report, load_settings
    from stockwise.core.exceptions import ConfigurationError
    from stockwise.core.storage import StorageError

    settings = load_settings(ctx)
    pipeline = create_pipeline(settings, create_store(settings))

    try:
        if provider_name:
            report = asyncio.run(pipeline.run_provider(provider_name))
        else:
            report = asyncio.run(pipeline.run())
    except (ConfigurationError, StorageError) as e:
        raise click.ClickException(str(e)) from e

    echo_report(report)
    if not report.success:
        ctx.exit(1)


@click.command()
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List the usable AI providers."""
    from stockwise.core.cli.common import create_pipeline, create_store, load_settings

    settings = load_settings(ctx)
    pipeline = create_pipeline(settings, create_store(settings))
    configured = asyncio.run(pipeline.catalog.load_providers())

    if not configured:
        click.echo("No usable providers configured.")
        ctx.exit(1)
    for provider in configured:
        click.echo(f"{provider.name}: {provider.model} @ {provider.base_url}")
