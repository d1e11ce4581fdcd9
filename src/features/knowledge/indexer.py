"""Offline embedding indexer for the `project-knowledge` collection."""

import asyncio
import logging
from enum import Enum
from typing import Any

from src.config import Settings
from src.core.errors import AuthError, RateLimitedError
from src.core.firestore import FirestoreClient
from src.core.gemini import GeminiClient

from .chunking import RecursiveChunking
from .documents import find_documents, load_document_chunks
from .models import LOCALES, ChunkMetadata, IndexStats, Locale, PageToScrape
from .pages import PAGES_TO_SCRAPE, PageReader, scrape_page
from .products import create_product_chunk, load_collections

logger = logging.getLogger(__name__)

EMBED_MAX_RETRIES = 3
EMBED_BACKOFF_BASE_MS = 1000
EMBED_BACKOFF_CAP_MS = 30000


def embed_backoff_ms(attempt: int) -> int:
    """Delay before retrying a rate-limited embedding call (attempt counts from 1)."""
    return min(EMBED_BACKOFF_BASE_MS * 2 ** attempt, EMBED_BACKOFF_CAP_MS)


class UploadOutcome(str, Enum):
    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


class EmbeddingIndexer:
    """
    Embed knowledge chunks and write them to Firestore.

    Per-unit failures (one chunk, one page, one document) are logged and
    counted, and the run continues. Credential failures abort the run.
    """

    def __init__(
        self,
        gemini: GeminiClient,
        firestore: FirestoreClient | None,
        settings: Settings,
        dry_run: bool = False,
        skip_existing: bool = False,
        delay_ms: int = 100,
        reader: PageReader | None = None,
    ):
        self.gemini = gemini
        self.firestore = firestore
        self.settings = settings
        self.dry_run = dry_run
        self.skip_existing = skip_existing
        self.delay_ms = delay_ms
        self.chunker = RecursiveChunking()
        self.reader = reader or PageReader(
            api_key=settings.jina_api_key,
            reader_base_url=settings.reader_base_url,
        )

        if not dry_run and firestore is None:
            raise ValueError("A Firestore client is required unless running with dry_run")

    async def _pause(self, factor: int = 1) -> None:
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms * factor / 1000)

    async def embed_with_retry(self, text: str, max_retries: int = EMBED_MAX_RETRIES) -> list[float]:
        """
        Embed one chunk text, backing off only on rate limits.

        Raises:
            RateLimitedError: Still rate limited after the last attempt
            ValueError: The vector has the wrong dimensionality
        """
        for attempt in range(1, max_retries + 1):
            try:
                vectors = await self.gemini.embed_documents([text])
                break
            except RateLimitedError:
                if attempt >= max_retries:
                    raise
                delay_ms = embed_backoff_ms(attempt)
                logger.warning(
                    "Rate limit hit, retrying in %dms (attempt %d/%d)",
                    delay_ms,
                    attempt,
                    max_retries,
                )
                await asyncio.sleep(delay_ms / 1000)

        embedding = vectors[0]
        expected = self.settings.embedding_dimensions
        if len(embedding) != expected:
            raise ValueError(f"Embedding has {len(embedding)} dimensions, expected {expected}")
        return embedding

    async def _exists(self, chunk: ChunkMetadata) -> bool:
        """Lookup failures count as "not existing"."""
        try:
            return await self.firestore.chunk_exists(chunk.source_id, chunk.locale)
        except Exception as e:
            logger.warning("Failed to check if %s exists: %s", chunk.source_id, e)
            return False

    async def upload_chunk(self, chunk: ChunkMetadata) -> UploadOutcome:
        """
        Embed and store one chunk.

        With skip_existing, a chunk whose sourceId and locale are already
        stored is skipped before embedding. In dry-run mode the embedding is
        computed but nothing is written.
        """
        title = chunk.source_title[:50]
        if self.skip_existing and self.firestore is not None and await self._exists(chunk):
            logger.info("Skipped (exists): %s [%s]", title, chunk.locale)
            return UploadOutcome.SKIPPED

        embedding = await self.embed_with_retry(chunk.text)

        if self.dry_run:
            logger.info("[DRY RUN] Would upload: %s (%d dims)", title, len(embedding))
            return UploadOutcome.DRY_RUN

        doc_id = await self.firestore.add_chunk(chunk.to_firestore(), embedding)
        logger.info("Uploaded %s: %s [%s]", doc_id, title, chunk.locale)
        return UploadOutcome.UPLOADED

    async def _upload_counted(self, chunk: ChunkMetadata, stats: IndexStats) -> None:
        stats.total += 1
        try:
            outcome = await self.upload_chunk(chunk)
        except AuthError:
            raise
        except Exception as e:
            stats.failed += 1
            logger.error("Failed to upload %s [%s]: %s", chunk.source_id, chunk.locale, e)
            return

        if outcome == UploadOutcome.UPLOADED:
            stats.uploaded += 1
        elif outcome == UploadOutcome.SKIPPED:
            stats.skipped += 1

    async def index_products(self, collection_filter: str | None = None) -> IndexStats:
        """Index every product once per locale."""
        stats = IndexStats()
        collections = load_collections(self.settings.collections_dir, collection_filter)

        for name, collection in collections.items():
            logger.info("Collection: %s (%d products)", name, len(collection.products))
            for product in collection.products:
                for locale in LOCALES:
                    try:
                        chunk = create_product_chunk(
                            product, locale, self.settings.firebase_storage_bucket
                        )
                    except ValueError as e:
                        stats.total += 1
                        stats.failed += 1
                        logger.error("Failed to build %s [%s]: %s", product.sku, locale, e)
                        continue
                    await self._upload_counted(chunk, stats)
                await self._pause()

        self.log_summary("Product embedding", stats)
        return stats

    async def index_pages(self, pages: list[PageToScrape] | None = None) -> IndexStats:
        """Scrape, chunk and index the marketing pages."""
        stats = IndexStats()
        pages = PAGES_TO_SCRAPE if pages is None else pages

        for page in pages:
            chunks = await scrape_page(
                self.reader, page, self.chunker, self.settings.site_base_url
            )
            logger.info("%s: %d chunks", page.url, len(chunks))
            for chunk in chunks:
                await self._upload_counted(chunk, stats)
                await self._pause()
            await self._pause(2)

        self.log_summary("Page embedding", stats)
        return stats

    async def index_documents(
        self,
        pattern: str,
        locale_override: Locale | None = None,
    ) -> IndexStats:
        """
        Index custom documents matching `pattern` under the docs directory.

        Raises:
            FileNotFoundError: No document matches the pattern
        """
        paths = find_documents(self.settings.docs_dir, pattern)
        if not paths:
            raise FileNotFoundError(
                f"No documents found matching '{pattern}' in {self.settings.docs_dir}"
            )
        logger.info("Found %d document(s) to process", len(paths))

        stats = IndexStats()
        for path in paths:
            chunks = load_document_chunks(
                path, self.settings.docs_dir, locale_override, self.chunker
            )
            logger.info("%s: %d chunks", path.name, len(chunks))
            for chunk in chunks:
                await self._upload_counted(chunk, stats)
                await self._pause()

        self.log_summary("Document embedding", stats)
        return stats

    async def purge(self) -> dict[str, Any]:
        """Delete every chunk of the knowledge collection."""
        if self.dry_run:
            logger.info("[DRY RUN] Would delete all documents in %s", self.settings.knowledge_collection)
            return {"total_deleted": 0, "batches": 0, "elapsed_seconds": 0.0}

        result = await self.firestore.delete_all_chunks()
        logger.info(
            "Deleted %d documents in %d batches (%.2fs)",
            result["total_deleted"],
            result["batches"],
            result["elapsed_seconds"],
        )
        return result

    def log_summary(self, name: str, stats: IndexStats) -> None:
        if self.dry_run:
            logger.info("%s done (dry run): would have uploaded %d chunks", name, stats.total - stats.failed)
        else:
            logger.info(
                "%s done: uploaded=%d skipped=%d failed=%d total=%d",
                name,
                stats.uploaded,
                stats.skipped,
                stats.failed,
                stats.total,
            )
