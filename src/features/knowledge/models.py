"""Pydantic models for the knowledge base."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Locale = Literal["en", "bg"]

LOCALES: tuple[Locale, ...] = ("en", "bg")


class ContentType(str, Enum):
    """Kind of source a chunk was derived from."""
    PRODUCT = "product"
    PAGE = "page"
    DOCUMENT = "document"


class ChunkMetadata(BaseModel):
    """A knowledge chunk before it is embedded and stored."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    text: str
    locale: Locale
    content_type: ContentType = Field(alias="contentType")
    category: str
    source_id: str = Field(alias="sourceId")
    source_url: str = Field(alias="sourceUrl")
    source_title: str = Field(alias="sourceTitle")

    # Product-specific fields
    product_sku: str | None = Field(default=None, alias="productSku")
    price: float | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    product_data: str | None = Field(default=None, alias="productData")

    def to_firestore(self) -> dict:
        """Document fields, camelCase as stored in `project-knowledge`."""
        return self.model_dump(by_alias=True)


class KnowledgeChunk(ChunkMetadata):
    """A stored chunk with its embedding."""

    id: str
    embedding: list[float]
    created_at: datetime | None = Field(default=None, alias="createdAt")


class VectorSearchResult(BaseModel):
    """A chunk returned by vector search, with cosine similarity."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    text: str
    locale: Locale
    content_type: ContentType = Field(alias="contentType")
    category: str = "general"
    source_id: str = Field(default="", alias="sourceId")
    source_url: str = Field(default="", alias="sourceUrl")
    source_title: str = Field(default="", alias="sourceTitle")
    product_sku: str | None = Field(default=None, alias="productSku")
    price: float | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    similarity: float | None = Field(default=None, ge=-1.0, le=1.0)

    @property
    def is_product(self) -> bool:
        return self.content_type == ContentType.PRODUCT.value


class RetrievalContext(BaseModel):
    """Top-K results for one query, best match first."""

    query: str
    locale: Locale
    results: list[VectorSearchResult] = []

    @property
    def is_empty(self) -> bool:
        return not self.results


class PageType(str, Enum):
    """Marketing page kinds scraped into the knowledge base."""
    HOME = "home"
    COLLECTION = "collection"
    EDUCATIONAL = "educational"


class PageToScrape(BaseModel):
    """A marketing page to fetch through the reader service."""
    url: str
    locale: Locale
    type: PageType
    category: str = "general"


class IndexStats(BaseModel):
    """Counters for one indexer run."""
    total: int = 0
    uploaded: int = 0
    skipped: int = 0
    failed: int = 0
