# =============================================================================
# ragloader/cli/ingest.py: command-line ingestion and search
# =============================================================================
#
# Runs the same ingestion pipeline as the HTTP upload route, against files
# on local disk.  Each file is an isolated job; several files are processed
# concurrently up to --concurrency.
#
# Subcommands:
#
#   file   Ingest one or more files (text, PDF, audio, video, CSV)
#   query  Embed a text query and print the nearest stored records
#
# Usage examples:
#   python -m ragloader.cli.ingest file notes.md talk.mp4 products_shopify.csv
#   python -m ragloader.cli.ingest file ./exports/*.csv --concurrency 4
#   python -m ragloader.cli.ingest query "lavender essence for sleep" --top-k 3
# =============================================================================

"""Standalone CLI for ingesting files and querying the vector store.

Usage::

    python -m ragloader.cli.ingest file PATH [PATH ...] [--concurrency N]

    python -m ragloader.cli.ingest query "text" [--top-k K]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from ragloader.config.settings import Settings
from ragloader.models.ingestion import RawUpload
from ragloader.utils.errors import RagLoaderError


def _build(app_settings: Settings) -> dict[str, Any]:
    # Deferred so --help works without provider credentials.
    from ragloader.main import build_components

    return build_components(app_settings)


async def _handle_file(args: argparse.Namespace, components: dict[str, Any]) -> int:
    uploads: list[RawUpload] = []
    for raw_path in args.paths:
        path = Path(raw_path)
        if not path.is_file():
            print(f"Error: not a file: {path}", file=sys.stderr)
            return 1
        uploads.append(RawUpload(filename=path.name, data=path.read_bytes()))

    print(f"Ingesting {len(uploads)} file(s) with concurrency {args.concurrency}")
    pipeline = components["pipeline"]
    outcomes = await pipeline.process_many(uploads, concurrency=args.concurrency)

    failures = 0
    for outcome in outcomes:
        if outcome.succeeded:
            print(
                f"  OK    {outcome.filename}: document {outcome.document.id}, "
                f"{outcome.records_written} record(s), {outcome.elapsed_seconds:.2f}s"
            )
        else:
            failures += 1
            failure = outcome.failure
            print(
                f"  FAIL  {outcome.filename}: [{failure.kind.value}] {failure.message}",
                file=sys.stderr,
            )

    print(f"\n{len(outcomes) - failures} succeeded, {failures} failed")
    return 0 if failures == 0 else 2


async def _handle_query(args: argparse.Namespace, components: dict[str, Any]) -> int:
    from ragloader.models.vector import prioritize_products

    app_settings: Settings = components["settings"]
    vector_store = components["vector_store"]
    await vector_store.ensure_index(app_settings.embedding_dimension, app_settings.vector_metric)
    vector = await components["embedding_provider"].embed_single(args.text)
    matches = prioritize_products(await vector_store.query(vector, top_k=args.top_k))

    if not matches:
        print("No matches.")
        return 0
    for rank, match in enumerate(matches, start=1):
        title = match.metadata.get("product_title") or match.metadata.get("filename", "")
        snippet = str(match.metadata.get("content", ""))[:120].replace("\n", " ")
        print(f"{rank:>2}. {match.score:.3f}  {match.id}  {title}")
        if snippet:
            print(f"      {snippet}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m ragloader.cli.ingest",
        description="Ingest files into the ragloader vector store, or query it.",
    )
    subparsers = parser.add_subparsers(dest="command")

    file_parser = subparsers.add_parser("file", help="Ingest one or more files")
    file_parser.add_argument("paths", nargs="+", help="Files to ingest")
    file_parser.add_argument(
        "--concurrency",
        type=int,
        default=3,
        help="Maximum files processed at once (default: 3)",
    )

    query_parser = subparsers.add_parser("query", help="Search stored records")
    query_parser.add_argument("text", help="Query text")
    query_parser.add_argument("--top-k", type=int, default=5, help="Number of results (default: 5)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()
    try:
        components = _build(app_settings)
        if args.command == "file":
            return asyncio.run(_handle_file(args, components))
        return asyncio.run(_handle_query(args, components))
    except RagLoaderError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
