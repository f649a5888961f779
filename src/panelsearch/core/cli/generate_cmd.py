"""panelsearch generate: build the search index and document archive."""

from __future__ import annotations

import click


@click.command()
@click.option(
    "--corpus",
    "corpus_dir",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="Transcript directory laid out as <year>/<YYYY-MM-DD>.json.",
)
@click.option("--output", "output_dir", required=True, type=click.Path(file_okay=False), help="Where to write artifacts.")
@click.option("--index-version", default=None, help="Version string stamped into both artifacts.")
@click.option("--formatted/--no-formatted", default=True, help="Also write indented copies for inspection.")
def generate(corpus_dir: str, output_dir: str, index_version: str | None, formatted: bool) -> None:
    """Generate the search index and document archive from a transcript corpus."""
    from panelsearch.corpus.store import DirectoryDocumentStore
    from panelsearch.index.generator import INDEX_VERSION, IndexGenerator

    store = DirectoryDocumentStore(corpus_dir)
    generator = IndexGenerator(version=index_version or INDEX_VERSION)
    report = generator.generate_to(store.iter_documents(), output_dir, formatted=formatted)

    click.echo(f"Indexed {report.documents_indexed} documents ({report.documents_skipped} skipped)")
    click.echo(f"{report.token_count} unique tokens")
    for path, size in report.files.items():
        click.echo(f"  {path} ({size / 1024 / 1024:.2f} MB)")
    click.echo(f"Done in {report.duration_ms:.0f}ms")
