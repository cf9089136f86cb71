"""Operator CLI for session ingestion and retrieval.

Usage::

    python -m livekb.cli process --session demo
    python -m livekb.cli process --session demo --file notes.md --no-embed
    python -m livekb.cli context --session demo --topic "payment settlement" --max 3
    python -m livekb.cli list --session demo --status
    python -m livekb.cli cleanup --session demo --purge-vectors

Each run builds the same components as the API server from ``.env`` and
``config/config.yaml``.  Exit code is 0 on success, 1 on error.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from livekb.config.settings import Settings
from livekb.dependencies import build_components
from livekb.services.session_workspace import UPLOADS
from livekb.utils.errors import LiveKBError
from livekb.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_process(args: argparse.Namespace, components: dict[str, Any]) -> int:
    workspace = components["workspace"]
    ingestion = components["ingestion_service"]
    uploads_dir = workspace.uploads_dir(args.session)
    processed_dir = workspace.processed_dir(args.session)
    embed = not args.no_embed

    if args.file:
        report = await ingestion.ingest_file(
            args.session, args.file, uploads_dir, processed_dir, embed=embed
        )
    else:
        report = await ingestion.ingest_session(
            args.session, uploads_dir, processed_dir, embed=embed
        )

    print(f"Session {args.session}:")
    print(f"  Files processed:  {report.processed_files}")
    print(f"  Chunks created:   {report.processed_chunks}")
    print(f"  Vectors indexed:  {report.indexed_vectors}")
    for failure in report.failures:
        print(f"  FAILED {failure.file_name}: {failure.error}")

    return 0 if report.success else 1


async def _handle_context(args: argparse.Namespace, components: dict[str, Any]) -> int:
    retrieval = components["retrieval_service"]
    contexts = await retrieval.get_relevant_context(
        args.topic, args.session, args.max, fail_open=not args.strict
    )
    if not contexts:
        print("No context above the similarity threshold.")
        return 0

    for context in contexts:
        print(context)
        print()
    return 0


async def _handle_list(args: argparse.Namespace, components: dict[str, Any]) -> int:
    workspace = components["workspace"]
    ingestion = components["ingestion_service"]
    documents = ingestion.list_processed_documents(workspace.processed_dir(args.session))

    if args.status:
        processed = {d.file_name for d in documents}
        for name in workspace.list_files(args.session, UPLOADS):
            state = "processed" if name in processed else "pending"
            print(f"  {name:<40} {state}")
        return 0

    if not documents:
        print(f"No processed documents for session {args.session}.")
        return 0

    for doc in documents:
        print(f"  {doc.file_name:<40} {doc.file_type:<6} {doc.total_chunks:>5} chunks")
    print(f"\n  Total: {len(documents)} documents")
    return 0


async def _handle_cleanup(args: argparse.Namespace, components: dict[str, Any]) -> int:
    if args.purge_vectors:
        deleted = await components["index_client"].delete_namespace(args.session)
        print(f"Deleted {deleted} vectors from namespace {args.session}")

    removed = components["workspace"].cleanup(args.session)
    print(f"Session folder {'removed' if removed else 'not found'}: {args.session}")
    return 0


_HANDLERS = {
    "process": _handle_process,
    "context": _handle_context,
    "list": _handle_list,
    "cleanup": _handle_cleanup,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m livekb.cli",
        description="Ingest session documents and query the knowledge base.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    process_parser = subparsers.add_parser("process", help="Process a session's uploads")
    process_parser.add_argument("--session", required=True, help="Session id")
    process_parser.add_argument("--file", help="Process only this uploaded file")
    process_parser.add_argument(
        "--no-embed",
        action="store_true",
        dest="no_embed",
        help="Write manifests only; skip embedding and indexing",
    )

    context_parser = subparsers.add_parser("context", help="Print retrieval context for a topic")
    context_parser.add_argument("--session", required=True, help="Session id")
    context_parser.add_argument("--topic", required=True, help="Topic or question")
    context_parser.add_argument("--max", type=int, default=None, help="Maximum contexts")
    context_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on retrieval errors instead of printing nothing",
    )

    list_parser = subparsers.add_parser("list", help="List processed documents")
    list_parser.add_argument("--session", required=True, help="Session id")
    list_parser.add_argument(
        "--status", action="store_true", help="Show processed/pending state per upload"
    )

    cleanup_parser = subparsers.add_parser("cleanup", help="Remove a session folder")
    cleanup_parser.add_argument("--session", required=True, help="Session id")
    cleanup_parser.add_argument(
        "--purge-vectors",
        action="store_true",
        dest="purge_vectors",
        help="Also delete the session's namespace from the vector index",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, build components, and dispatch to a handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    try:
        components = build_components(app_settings)
        exit_code = asyncio.run(_HANDLERS[args.command](args, components))
    except LiveKBError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
