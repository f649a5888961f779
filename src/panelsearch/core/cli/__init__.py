"""panelsearch CLI: entry point for index generation, search and cache maintenance."""

import click

from panelsearch import __version__

from .common import setup_from_options


@click.group()
@click.version_option(version=__version__, package_name="panelsearch")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None, help="YAML or JSON config file.")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str | None) -> None:
    """panelsearch: full-text search over dated transcripts."""
    ctx.obj = setup_from_options(config_file, log_level)


from .cache_cmd import cache, stats
from .generate_cmd import generate
from .search_cmd import search

main.add_command(generate)
main.add_command(search)
main.add_command(cache)
main.add_command(stats)
