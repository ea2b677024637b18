"""stockwise CLI: entry point for advise, run, prune and providers commands."""

import click

from stockwise import __version__


@click.group()
@click.version_option(version=__version__, package_name="stockwise")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (YAML or JSON). Defaults to ~/.stockwise/config.yaml.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level.")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, verbose: bool) -> None:
    """stockwise: daily multi-provider AI investment advice."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["verbose"] = verbose


# Register subcommands (lazy imports keep startup fast)
from .advise_cmd import advise, providers
from .prune_cmd import prune
from .run_cmd import run

main.add_command(advise)
main.add_command(run)
main.add_command(prune)
main.add_command(providers)
