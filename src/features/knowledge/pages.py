"""Marketing pages indexed into the knowledge base and the reader-service client."""

import asyncio
import logging
from typing import Any

import httpx

from src.core.errors import MalformedResponseError, RateLimitedError, UpstreamError, classify_error

from .chunking import RecursiveChunking
from .extractor import HTMLExtractor
from .models import LOCALES, ChunkMetadata, ContentType, PageToScrape, PageType

logger = logging.getLogger(__name__)

SITE_URL = "https://ecovibefloors.com"

PAGE_COLLECTIONS = ("hybrid-wood", "oak", "click-vinyl", "glue-down-vinyl")

EDUCATIONAL_PATHS = {
    "hybrid-wood": "hybrid-wood/what-is-hybrid-wood",
    "oak": "oak/what-is-oak-flooring",
    "click-vinyl": "click-vinyl/what-is-click-vinyl",
    "glue-down-vinyl": "glue-down-vinyl/what-is-glue-down-vinyl",
}

PAGES_TO_SCRAPE: list[PageToScrape] = [
    # Home pages
    *(
        PageToScrape(url=f"{SITE_URL}/{locale}", locale=locale, type=PageType.HOME)
        for locale in LOCALES
    ),
    # Collection overview pages
    *(
        PageToScrape(
            url=f"{SITE_URL}/{locale}/{collection}",
            locale=locale,
            type=PageType.COLLECTION,
            category=collection,
        )
        for collection in PAGE_COLLECTIONS
        for locale in LOCALES
    ),
    # Educational pages
    *(
        PageToScrape(
            url=f"{SITE_URL}/{locale}/{EDUCATIONAL_PATHS[collection]}",
            locale=locale,
            type=PageType.EDUCATIONAL,
            category=collection,
        )
        for collection in PAGE_COLLECTIONS
        for locale in LOCALES
    ),
]

MAX_FETCH_ATTEMPTS = 3
BACKOFF_BASE_MS = 5000
BACKOFF_CAP_MS = 60000


def fetch_backoff_ms(attempt: int) -> int:
    """Delay before retrying a rate-limited fetch (attempt counts from 1)."""
    return min(BACKOFF_BASE_MS * 2 ** attempt, BACKOFF_CAP_MS)


class PageReader:
    """
    Fetch the rendered text of a page.

    With an API key pages go through the reader service, which returns the
    page as markdown. Without one the page HTML is fetched directly and
    reduced to text locally.
    """

    def __init__(
        self,
        api_key: str = "",
        reader_base_url: str = "https://r.jina.ai",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.reader_base_url = reader_base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout
        self.extractor = HTMLExtractor()

    async def fetch(self, url: str, max_attempts: int = MAX_FETCH_ATTEMPTS) -> dict[str, Any]:
        """
        Fetch a page, backing off on rate limits.

        Returns:
            Dict with title and content

        Raises:
            RateLimitedError: Still rate limited after the last attempt
            UpstreamError: Any other fetch or parse failure
        """
        for attempt in range(1, max_attempts + 1):
            try:
                return await self._fetch_once(url)
            except RateLimitedError:
                if attempt >= max_attempts:
                    raise
                delay_ms = fetch_backoff_ms(attempt)
                logger.warning(
                    "Rate limited fetching %s, retrying in %dms (attempt %d/%d)",
                    url,
                    delay_ms,
                    attempt,
                    max_attempts,
                )
                await asyncio.sleep(delay_ms / 1000)
        raise AssertionError("unreachable")

    async def _fetch_once(self, url: str) -> dict[str, Any]:
        if self.api_key:
            target = f"{self.reader_base_url}/{url}"
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Accept": "application/json",
            }
        else:
            target = url
            headers = {
                "User-Agent": "Mozilla/5.0 (compatible; EcoVibe-Indexer/1.0)",
                "Accept": "text/html,application/xhtml+xml",
            }

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(target, headers=headers, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise classify_error(e) from e

        if not self.api_key:
            return self.extractor.extract(response.text)
        return self._parse_reader_response(response)

    @staticmethod
    def _parse_reader_response(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected reader response: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise MalformedResponseError("Reader response has no page content")
        return {"title": data.get("title"), "content": data["content"]}


def page_to_chunks(
    page: PageToScrape,
    scraped: dict[str, Any],
    chunker: RecursiveChunking | None = None,
    site_base_url: str = SITE_URL,
) -> list[ChunkMetadata]:
    """Split a fetched page into chunks keyed `{type}-{locale}-{index}`."""
    chunker = chunker or RecursiveChunking()
    page_type = PageType(page.type).value
    title = scraped.get("title") or page.url
    source_url = page.url.replace(site_base_url, "") or "/"

    return [
        ChunkMetadata(
            text=text,
            locale=page.locale,
            content_type=ContentType.PAGE,
            category=page.category or "general",
            source_id=f"{page_type}-{page.locale}-{index}",
            source_url=source_url,
            source_title=title,
        )
        for index, text in enumerate(chunker.split(scraped.get("content") or ""))
    ]


async def scrape_page(
    reader: PageReader,
    page: PageToScrape,
    chunker: RecursiveChunking | None = None,
    site_base_url: str = SITE_URL,
) -> list[ChunkMetadata]:
    """Fetch and chunk one page; failures are logged and yield no chunks."""
    logger.info("Scraping %s", page.url)
    try:
        scraped = await reader.fetch(page.url)
    except UpstreamError as e:
        logger.error("Failed to scrape %s: %s", page.url, e)
        return []
    return page_to_chunks(page, scraped, chunker, site_base_url)
