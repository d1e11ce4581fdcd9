"""Product catalogue loading and rendering for the knowledge base."""

import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from .models import LOCALES, ChunkMetadata, ContentType, Locale

logger = logging.getLogger(__name__)

# Indexing order of the product collections
COLLECTIONS = ("hybrid-wood", "click-vinyl", "glue-down-vinyl", "oak")

STORAGE_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media"


class LocalizedProduct(BaseModel):
    """Per-locale product texts."""

    model_config = ConfigDict(extra="allow")

    name: str
    description: str | None = None
    features: list[str] = Field(default_factory=list)


class Warranty(BaseModel):
    residential: str
    commercial: str


class Dimensions(BaseModel):
    """Dimensions in mm, stored as numeric strings or numbers."""

    length: str | float | None = None
    width: str | float | None = None
    thickness: str | float | None = None


class Performance(BaseModel):
    model_config = ConfigDict(extra="allow")

    underfloor_heating_code: str | None = Field(default=None, alias="underfloorHeatingCode")
    water_resistance_code: str | None = Field(default=None, alias="waterResistanceCode")


class Certifications(BaseModel):
    model_config = ConfigDict(extra="allow")

    warranty: str | Warranty | None = None
    country_code: str | None = Field(default=None, alias="countryCode")


class Specifications(BaseModel):
    model_config = ConfigDict(extra="allow")

    dimensions: Dimensions | None = None
    performance: Performance | None = None
    certifications: Certifications | None = None


class Product(BaseModel):
    """
    A catalogue product.

    Fields the assistant does not read are kept (`extra="allow"`) so the full
    record can be stored alongside the chunk.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sku: str
    slug: str
    collection: str
    pattern: str
    installation_system: str = Field(alias="installationSystem")
    price: float
    images: list[str] = Field(default_factory=list)
    i18n: dict[str, LocalizedProduct]
    specifications: Specifications | None = None

    def localized(self, locale: Locale) -> LocalizedProduct:
        """
        Raises:
            ValueError: The product has no translation for `locale`
        """
        if locale not in self.i18n:
            raise ValueError(f"Product {self.sku} has no '{locale}' translation")
        return self.i18n[locale]


class ProductCollection(BaseModel):
    """Contents of one `collections/<name>.json` file."""

    metadata: dict[str, Any] = Field(default_factory=dict)
    products: list[Product] = Field(default_factory=list)


def load_collection(path: str | Path) -> ProductCollection:
    """Read and validate a collection file."""
    with open(path, encoding="utf-8") as f:
        return ProductCollection.model_validate(json.load(f))


def load_collections(
    collections_dir: str | Path,
    collection_filter: str | None = None,
) -> dict[str, ProductCollection]:
    """
    Load the product collections in indexing order.

    Args:
        collections_dir: Directory holding `<name>.json` files
        collection_filter: Only load this collection

    Returns:
        Collection name -> collection

    Raises:
        ValueError: Unknown collection filter
        FileNotFoundError: A collection file is missing
    """
    if collection_filter and collection_filter not in COLLECTIONS:
        raise ValueError(
            f"Unknown collection '{collection_filter}', expected one of {', '.join(COLLECTIONS)}"
        )

    names = [collection_filter] if collection_filter else list(COLLECTIONS)
    loaded = {}
    for name in names:
        path = Path(collections_dir) / f"{name}.json"
        loaded[name] = load_collection(path)
        logger.info("Loaded collection %s (%d products)", name, len(loaded[name].products))
    return loaded


def storage_image_url(bucket: str, collection: str, pattern: str, sku: str, image: str) -> str:
    """Public Firebase Storage URL of a full-size product image."""
    path = f"products/{collection}/{pattern}/{sku}/full/{image}"
    return STORAGE_URL.format(bucket=bucket, path=quote(path, safe=""))


def _number(value: Any) -> str:
    """Render a number the way it is written in the catalogue (45.0 -> 45)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def product_to_natural_language(product: Product, locale: Locale) -> str:
    """
    Deterministic text description of a product, used as the chunk text.

    Covers name, SKU, price, collection, installation system, description,
    features and the dimensions/performance/certification specifications.
    """
    data = product.localized(locale)
    parts = [
        f"Product: {data.name} (SKU: {product.sku})",
        f"Price: €{_number(product.price)}",
        f"Category: {product.collection}",
        f"Installation: {product.installation_system}",
        "",
    ]

    if data.description:
        parts.append(data.description)
        parts.append("")

    if data.features:
        parts.append("Key Features:")
        parts.extend(f"• {feature}" for feature in data.features)
        parts.append("")

    specs = product.specifications
    if specs:
        if specs.dimensions:
            dims = specs.dimensions
            parts.append("Specifications:")
            if dims.length:
                parts.append(f"• Length: {_number(dims.length)} mm")
            if dims.width:
                parts.append(f"• Width: {_number(dims.width)} mm")
            if dims.thickness:
                parts.append(f"• Thickness: {_number(dims.thickness)} mm")

        if specs.performance:
            if specs.performance.underfloor_heating_code:
                parts.append(f"• Underfloor heating: {specs.performance.underfloor_heating_code}")
            if specs.performance.water_resistance_code:
                parts.append(f"• Water resistance: {specs.performance.water_resistance_code}")

        if specs.certifications:
            warranty = specs.certifications.warranty
            if isinstance(warranty, Warranty):
                parts.append(
                    f"• Warranty: {warranty.residential} (residential), "
                    f"{warranty.commercial} (commercial)"
                )
            elif warranty:
                parts.append(f"• Warranty: {warranty}")
            if specs.certifications.country_code:
                parts.append(f"• Made in: {specs.certifications.country_code}")

    return "\n".join(parts).strip()


def create_product_chunk(product: Product, locale: Locale, storage_bucket: str) -> ChunkMetadata:
    """One chunk per product and locale, keyed by SKU."""
    data = product.localized(locale)
    image_url = None
    if product.images:
        image_url = storage_image_url(
            storage_bucket, product.collection, product.pattern, product.sku, product.images[0]
        )

    return ChunkMetadata(
        text=product_to_natural_language(product, locale),
        locale=locale,
        content_type=ContentType.PRODUCT,
        category=product.collection,
        source_id=product.sku,
        source_url=f"/{locale}/{product.collection}/{product.pattern}/{product.slug}",
        source_title=data.name,
        product_sku=product.sku,
        price=product.price,
        image_url=image_url,
        product_data=product.model_dump_json(by_alias=True, exclude_none=True),
    )


def create_product_chunks(product: Product, storage_bucket: str) -> list[ChunkMetadata]:
    """Chunks for every locale, English first."""
    return [create_product_chunk(product, locale, storage_bucket) for locale in LOCALES]
