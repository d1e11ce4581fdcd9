"""
Knowledge base indexer CLI.

Usage:
    python -m src.features.knowledge.cli products --dry-run
    python -m src.features.knowledge.cli products --collection=hybrid-wood --skip-existing
    python -m src.features.knowledge.cli pages --delay=2000
    python -m src.features.knowledge.cli documents --file=guide*.pdf --locale=bg
    python -m src.features.knowledge.cli purge --yes
"""

import argparse
import asyncio
import logging
import sys

from src.config import get_settings
from src.core.firestore import FirestoreClient
from src.core.gemini import GeminiClient
from src.core.logging_config import configure_logging

from .indexer import EmbeddingIndexer
from .models import LOCALES
from .products import COLLECTIONS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecovibe-embed",
        description="Embed products, pages and documents into the knowledge base",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--dry-run", action="store_true", help="Compute embeddings, write nothing")
    common.add_argument(
        "--skip-existing",
        action="store_true",
        help="Skip chunks whose sourceId and locale are already stored",
    )
    common.add_argument(
        "--delay", type=int, default=100, help="Pause between requests in ms (default: 100)"
    )
    common.add_argument("--verbose", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    products = commands.add_parser("products", parents=[common], help="Index product collections")
    products.add_argument("--collection", choices=COLLECTIONS, help="Only this collection")

    commands.add_parser("pages", parents=[common], help="Scrape and index marketing pages")

    documents = commands.add_parser("documents", parents=[common], help="Index custom documents")
    documents.add_argument(
        "--file", required=True, help="File name or wildcard pattern (e.g. guide*.pdf)"
    )
    documents.add_argument("--locale", choices=LOCALES, help="Force the locale of the documents")

    purge = commands.add_parser("purge", parents=[common], help="Delete all knowledge chunks")
    purge.add_argument("--yes", action="store_true", help="Confirm the deletion")

    return parser


async def run(args: argparse.Namespace) -> None:
    settings = get_settings()
    firestore = None if args.dry_run else FirestoreClient(settings)
    indexer = EmbeddingIndexer(
        gemini=GeminiClient(settings),
        firestore=firestore,
        settings=settings,
        dry_run=args.dry_run,
        skip_existing=args.skip_existing,
        delay_ms=args.delay,
    )

    logger.info(
        "Mode: %s | model: %s (%d dims) | delay: %dms | skip existing: %s",
        "DRY RUN" if args.dry_run else "LIVE",
        settings.embedding_model,
        settings.embedding_dimensions,
        args.delay,
        "yes" if args.skip_existing else "no",
    )

    if args.command == "products":
        await indexer.index_products(args.collection)
    elif args.command == "pages":
        if not settings.jina_api_key:
            logger.warning("JINA_API_KEY is not set, fetching pages directly")
        await indexer.index_pages()
    elif args.command == "documents":
        await indexer.index_documents(args.file, args.locale)
    elif args.command == "purge":
        await indexer.purge()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else get_settings().log_level)

    if args.command == "purge" and not (args.yes or args.dry_run):
        logger.error("Refusing to delete the knowledge base without --yes")
        return 1

    try:
        asyncio.run(run(args))
    except Exception as e:
        logger.exception("Indexer failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
