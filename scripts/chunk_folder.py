"""CLI helper - chunk an entire directory of ``.md`` files.

Usage::

    python -m scripts.chunk_folder ~/Notes --output chunks.jsonl
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import IO

import click

from mdchunk.core.config import Settings, get_settings
from mdchunk.ingestion.markdown_loader import parse_markdown_file
from mdchunk.splitters.markdown_header import MarkdownHeaderTextSplitter


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "directory", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path)
)
@click.option("--chunk-size", type=click.IntRange(min=1), help="Override MDCHUNK_CHUNK_SIZE.")
@click.option(
    "--chunk-overlap", type=click.IntRange(min=0), help="Override MDCHUNK_CHUNK_OVERLAP."
)
@click.option(
    "--output",
    "-o",
    type=click.File("w", encoding="utf-8"),
    default="-",
    help="JSON-lines destination (default: stdout).",
)
@click.option("--dry-run", is_flag=True, help="Parse + chunk but only report counts.")
def main(
    directory: pathlib.Path,
    chunk_size: int | None,
    chunk_overlap: int | None,
    output: IO[str],
    dry_run: bool,
    settings: Settings | None = None,
) -> None:
    """Chunk every ``.md`` under *DIRECTORY* (recursive) into JSON lines."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    try:
        splitter = MarkdownHeaderTextSplitter(
            chunk_size=chunk_size or settings.chunk_size,
            chunk_overlap=settings.chunk_overlap if chunk_overlap is None else chunk_overlap,
            max_depth=settings.max_depth,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    paths = sorted(directory.rglob("*.md"))
    if not paths:
        click.echo("No markdown files found - exiting.", err=True)
        raise SystemExit(0)

    total = 0
    for p in paths:
        chunks = parse_markdown_file(p, splitter)
        total += len(chunks)
        if dry_run:
            click.echo(f"{p}: {len(chunks)} chunks", err=True)
            continue
        for chunk in chunks:
            output.write(json.dumps(chunk, default=str, ensure_ascii=False) + "\n")

    click.echo(f"Done: {total} chunks from {len(paths)} files.", err=True)


if __name__ == "__main__":  # pragma: no cover
    main()
