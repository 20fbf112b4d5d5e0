"""Standalone CLI for managing the legal document corpus.

Usage::

    python -m src.cli ingest contract.pdf lease.docx --category leases
    python -m src.cli reprocess <document-id>
    python -m src.cli list
    python -m src.cli search "termination notice period" --limit 5
    python -m src.cli delete <document-id> --yes
    python -m src.cli stats

Unlike the HTTP API, ``ingest`` and ``reprocess`` await each ingestion
run and report its final status before exiting.
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.models.document import DOCX_MIME_TYPE, PDF_MIME_TYPE, DocumentStatus
from src.utils.errors import LegalDocsError

_MIME_BY_SUFFIX = {
    ".pdf": PDF_MIME_TYPE,
    ".docx": DOCX_MIME_TYPE,
}


def _guess_mime_type(path: Path) -> str:
    mime_type = _MIME_BY_SUFFIX.get(path.suffix.lower())
    if mime_type is None:
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return mime_type


def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Build the same provider/service graph the web app uses.

    Deferred import so ``--help`` does not load chromadb or the SDKs.
    """
    from src.main import build_components

    return build_components(app_settings)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Upload and ingest each file, waiting for every run to finish."""
    service = components["document_service"]
    failures = 0

    for raw_path in args.files:
        path = Path(raw_path)
        if not path.is_file():
            print(f"  {path}: not found", file=sys.stderr)
            failures += 1
            continue

        data = await asyncio.to_thread(path.read_bytes)
        try:
            document = await service.upload(
                data,
                path.name,
                _guess_mime_type(path),
                category=args.category,
                wait=True,
            )
        except LegalDocsError as exc:
            print(f"  {path.name}: {exc.message}", file=sys.stderr)
            failures += 1
            continue

        summary = await service.get_document(document.id)
        print(
            f"  {path.name}: {summary.status.value} "
            f"({summary.chunk_count} chunks) id={document.id}"
        )
        if summary.status is DocumentStatus.FAILED:
            failures += 1

    return 1 if failures else 0


async def _handle_reprocess(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = components["document_service"]
    await service.reprocess(args.document_id, wait=True)
    summary = await service.get_document(args.document_id)
    print(f"{summary.title}: {summary.status.value} ({summary.chunk_count} chunks)")
    return 0 if summary.status is DocumentStatus.READY else 1


async def _handle_list(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print the status listing, newest first."""
    summaries = await components["document_service"].list_documents(
        include_archived=not args.active_only
    )
    if not summaries:
        print("No documents.")
        return 0

    print(f"{'ID':<38} {'STATUS':<11} {'CHUNKS':>6}  TITLE")
    for summary in summaries:
        title = summary.title + (" [archived]" if summary.archived else "")
        print(
            f"{summary.id:<38} {summary.status.value:<11} "
            f"{summary.chunk_count:>6}  {title}"
        )
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    chunks = await components["retrieval_service"].retrieve(
        args.query, limit=args.limit, document_id=args.document_id
    )
    if not chunks:
        print("No matching chunks.")
        return 0

    for rank, chunk in enumerate(chunks, start=1):
        preview = " ".join(chunk.content.split())[:200]
        print(
            f"{rank:>2}. [{chunk.similarity:.3f}] document={chunk.document_id} "
            f"position={chunk.position}"
        )
        print(f"    {preview}")
    return 0


async def _handle_delete(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Delete a document and its chunks.  Asks for confirmation unless --yes."""
    service = components["document_service"]
    summary = await service.get_document(args.document_id)

    if not args.yes:
        confirm = input(
            f"  Delete '{summary.title}' and its {summary.chunk_count} chunks? [y/N] "
        ).strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    removed = await service.delete(args.document_id)
    print(f"  Deleted '{summary.title}' ({removed} chunks).")
    return 0


async def _handle_stats(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Display corpus statistics."""
    vector_store = components["vector_store"]
    if not vector_store.is_available():
        print("Vector store not available.")
        return 1

    stats = await vector_store.get_stats()
    summaries = await components["document_service"].list_documents()
    by_status: dict[str, int] = {}
    for summary in summaries:
        by_status[summary.status.value] = by_status.get(summary.status.value, 0) + 1

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Documents:        {len(summaries)}")
    print(f"  With chunks:      {stats.total_documents}")
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Embedding:        {components['embedding_client'].provider_name}")
    if by_status:
        print("\n  Documents by status:")
        for status, count in sorted(by_status.items()):
            print(f"    {status:<12} {count}")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "reprocess": _handle_reprocess,
    "list": _handle_list,
    "search": _handle_search,
    "delete": _handle_delete,
    "stats": _handle_stats,
}


async def _run(args: argparse.Namespace, components: dict[str, Any]) -> int:
    from src.main import close_components

    try:
        await components["documents"].initialize()
        return await _HANDLERS[args.command](args, components)
    except LegalDocsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_components(components)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the document CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Manage the legal document corpus.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest PDF/DOCX files")
    ingest_parser.add_argument("files", nargs="+", help="Paths to PDF or DOCX files")
    ingest_parser.add_argument("--category", default=None, help="Optional category label")

    reprocess_parser = subparsers.add_parser(
        "reprocess", help="Re-run ingestion for a document, replacing its chunks"
    )
    reprocess_parser.add_argument("document_id", help="Document id")

    list_parser = subparsers.add_parser("list", help="Show documents with status and chunk counts")
    list_parser.add_argument(
        "--active-only",
        action="store_true",
        dest="active_only",
        help="Hide archived documents",
    )

    search_parser = subparsers.add_parser("search", help="Semantic search over chunks")
    search_parser.add_argument("query", help="Natural-language question")
    search_parser.add_argument("--limit", type=int, default=10, help="Maximum results (default: 10)")
    search_parser.add_argument(
        "--document-id",
        dest="document_id",
        default=None,
        help="Restrict results to one document",
    )

    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("document_id", help="Document id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    subparsers.add_parser("stats", help="Show corpus statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Parses the subcommand, builds the provider/service graph from
    environment variables / .env file, and dispatches to the handler.
    Returns the process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    components = _build_components(Settings())
    return asyncio.run(_run(args, components))


if __name__ == "__main__":
    sys.exit(main())
