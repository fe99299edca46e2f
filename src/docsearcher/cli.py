"""Document searcher CLI: serve, search and ingest entry points.

Usage:
    docsearcher serve                            # Start the HTTP server
    docsearcher search "budget" --chat-id 42     # One-off search, JSON output
    docsearcher ingest notes.txt --chat-id 42    # Import a text file
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .errors import DocumentSearcherError
from .filters import MemoryTags


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the HTTP server."""
    from .server.app import run_server
    from .server.config import load_config

    run_server(
        config=load_config(args.config),
        host=args.host,
        port=args.port,
        log_level=args.log_level or "info",
    )


async def _run_search(args: argparse.Namespace) -> dict:
    from .composer import compose_engine
    from .search import search_memory
    from .server.config import load_config

    config = load_config(args.config)
    async with compose_engine(config.memory) as engine:
        result = await search_memory(
            engine,
            index_name=args.index or config.server.index_name,
            query=args.query,
            relevance_threshold=args.min_relevance,
            chat_id=args.chat_id,
            memory_name=args.memory,
            result_count=args.limit,
        )
    return result.to_dict()


def cmd_search(args: argparse.Namespace) -> int:
    """Run one search and print the result as JSON."""
    try:
        output = asyncio.run(_run_search(args))
    except (DocumentSearcherError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2))
    return 0


async def _run_ingest(args: argparse.Namespace) -> str:
    from .composer import compose_engine
    from .server.config import load_config

    config = load_config(args.config)
    path = Path(args.file)
    tags = {MemoryTags.CHAT_ID: args.chat_id}
    if args.memory:
        tags[MemoryTags.MEMORY] = args.memory

    async with compose_engine(config.memory) as engine:
        return await engine.import_text(
            path.read_text(),
            document_id=args.document_id,
            index=args.index or config.server.index_name,
            tags=tags,
            source_url=args.url or path.resolve().as_uri(),
            file_name=path.name,
        )


def cmd_ingest(args: argparse.Namespace) -> int:
    """Import a text file into memory."""
    if not Path(args.file).is_file():
        print(f"❌ File not found: {args.file}", file=sys.stderr)
        return 1
    try:
        document_id = asyncio.run(_run_ingest(args))
    except (DocumentSearcherError, ValueError, RuntimeError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    print(f"✅ Imported {args.file} as {document_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsearcher",
        description="Document Searcher: tag-scoped semantic search over document memory",
    )
    parser.add_argument("--log-level", type=str, default=None,
                        choices=["debug", "info", "warning", "error"])
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", "-p", type=int, default=None)
    serve_parser.add_argument("--config", "-c", type=str, default=None)

    # search
    search_parser = subparsers.add_parser("search", help="Search memory and print JSON")
    search_parser.add_argument("query", type=str)
    search_parser.add_argument("--chat-id", type=str, required=True)
    search_parser.add_argument("--memory", type=str, default=None,
                               help="Restrict to a named memory")
    search_parser.add_argument("--index", type=str, default=None)
    search_parser.add_argument("--min-relevance", type=float, default=0.5)
    search_parser.add_argument("--limit", type=int, default=-1,
                               help="Max citations (-1 for no bound)")
    search_parser.add_argument("--config", "-c", type=str, default=None)

    # ingest
    ingest_parser = subparsers.add_parser("ingest", help="Import a text file")
    ingest_parser.add_argument("file", type=str)
    ingest_parser.add_argument("--chat-id", type=str, required=True)
    ingest_parser.add_argument("--memory", type=str, default=None)
    ingest_parser.add_argument("--document-id", type=str, default=None)
    ingest_parser.add_argument("--index", type=str, default=None)
    ingest_parser.add_argument("--url", type=str, default=None)
    ingest_parser.add_argument("--config", "-c", type=str, default=None)

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    _configure_logging(args.log_level or "warning")

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "search":
        sys.exit(cmd_search(args))
    elif args.command == "ingest":
        sys.exit(cmd_ingest(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
