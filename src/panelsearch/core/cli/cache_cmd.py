"""panelsearch cache / stats: inspect and maintain the local cache."""

from __future__ import annotations

import json

import click

from panelsearch.core.exceptions import EngineUnavailable
from panelsearch.core.utils.async_helpers import run_async_safely

from .common import build_service


@click.group()
def cache() -> None:
    """Manage cached artifacts."""


@cache.command()
@click.pass_obj
def clear(config) -> None:
    """Delete cached artifacts and their metadata."""
    service = build_service(config)
    run_async_safely(service.clear_all_caches())
    click.echo("Cache cleared.")


@cache.command()
@click.pass_obj
def refresh(config) -> None:
    """Discard cached artifacts and download them again."""
    service = build_service(config)
    try:
        run_async_safely(service.refresh_all())
    except EngineUnavailable as e:
        raise click.ClickException(f"Refresh failed: {e}") from e
    click.echo("Artifacts refreshed.")


@click.command()
@click.option("--load/--no-load", default=False, help="Load artifacts before reporting.")
@click.pass_obj
def stats(config, load: bool) -> None:
    """Show index and cache statistics as JSON."""
    service = build_service(config)
    if load:
        try:
            run_async_safely(service.init())
        except EngineUnavailable as e:
            click.echo(f"Warning: {e}", err=True)
    click.echo(json.dumps(service.stats(), indent=2, default=str))
