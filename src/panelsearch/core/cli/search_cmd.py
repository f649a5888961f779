"""panelsearch search: run one query against the cached index."""

from __future__ import annotations

import click

from panelsearch.core.exceptions import EngineUnavailable
from panelsearch.core.utils.async_helpers import run_async_safely

from .common import build_service


@click.command()
@click.argument("query")
@click.option("--limit", default=None, type=int, help="Maximum results (default from config).")
@click.option("--lines/--no-lines", default=True, help="Print matching lines with highlights.")
@click.pass_obj
def search(config, query: str, limit: int | None, lines: bool) -> None:
    """Search transcripts for QUERY."""
    service = build_service(config)
    try:
        run_async_safely(service.init())
    except EngineUnavailable as e:
        raise click.ClickException(f"Search unavailable: {e}") from e

    results = service.search(query, limit)
    if not results:
        click.echo("No matches.")
        return

    for result in results:
        click.echo(f"{result.document_id}  score={result.score}  matches={len(result.matches)}")
        if not lines:
            continue
        seen: set[tuple[int, int]] = set()
        for match in result.matches:
            if (match.section_index, match.line_index) in seen:
                continue
            seen.add((match.section_index, match.line_index))
            marked = service.highlight(match.line, query.strip())
            click.echo(f"    [{match.section_index + 1}] {marked}")
