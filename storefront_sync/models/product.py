"""
Product data models.

Pure data classes for representing extracted product information.
No business logic beyond variant derivation, which is a property of the
data shape itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class Platform(str, Enum):
    """Commerce platform a storefront runs on."""
    SHOPIFY = "shopify"
    WOOCOMMERCE = "woocommerce"
    MAGENTO = "magento"
    PRESTASHOP = "prestashop"
    GENERIC = "generic"


@dataclass(frozen=True)
class SiteProfile:
    """Platform classification of a storefront, produced once per run."""
    platform: Platform
    confidence: float
    signals: tuple = ()


@dataclass
class ProductVariant:
    """One color/size combination of a product."""
    id: str
    color: Optional[str] = None
    size: Optional[str] = None
    price: Optional[Decimal] = None
    image_url: Optional[str] = None
    sku: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id}
        if self.color:
            data["color"] = self.color
        if self.size:
            data["size"] = self.size
        if self.price is not None:
            data["price"] = str(self.price)
        if self.image_url:
            data["imageUrl"] = self.image_url
        if self.sku:
            data["sku"] = self.sku
        return data


@dataclass
class ExtractedProduct:
    """
    A product reconstructed from a storefront page.

    Field Groups:
    - Identity: external_id (unique within one vendor batch), product_url, sku
    - Required: name, price
    - Content: description, brand, category
    - Media: image_url (first accepted image), image_urls (all, deduplicated)
    - Options: colors, sizes and the variants derived from them
    - Physical: stock, weight, dimensions, attributes
    - Metadata: extraction_tier, quality_score, missing_fields
    """

    # Required fields
    external_id: str
    name: str
    price: Decimal

    # Content
    description: str = ""
    brand: str = ""
    category: str = ""
    sku: str = ""

    # Links and media
    product_url: str = ""
    image_url: str = ""
    image_urls: List[str] = field(default_factory=list)

    # Options
    colors: List[str] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)
    variants: List[ProductVariant] = field(default_factory=list)

    # Physical / misc
    stock: Optional[int] = None
    weight: Optional[float] = None
    dimensions: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    # Extraction metadata
    extraction_tier: str = ""
    quality_score: int = 0
    missing_fields: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate required fields after initialization."""
        if not self.name or not self.name.strip():
            raise ValueError("Product name is required")
        if self.price is None or self.price <= 0:
            raise ValueError(f"Product price must be > 0 (got {self.price!r})")
        if not self.external_id:
            raise ValueError("Product external_id is required")

    def rebuild_variants(self) -> None:
        """Re-derive variants from the current colors and sizes."""
        self.variants = build_variants(
            self.external_id, self.colors, self.sizes, self.price
        )


def build_variants(
    external_id: str,
    colors: List[str],
    sizes: List[str],
    price: Optional[Decimal],
) -> List[ProductVariant]:
    """
    Derive variants from the color and size axes.

    Both axes populated gives the full cross product, one axis gives a
    single-axis list, neither gives no variants. Every variant carries
    the base price.

    Example:
        >>> [v.id for v in build_variants("p1", ["Red"], ["S", "M"], Decimal("5"))]
        ['p1-0-0', 'p1-0-1']
    """
    variants: List[ProductVariant] = []

    if colors:
        for ci, color in enumerate(colors):
            if sizes:
                for si, size in enumerate(sizes):
                    variants.append(ProductVariant(
                        id=f"{external_id}-{ci}-{si}",
                        color=color,
                        size=size,
                        price=price,
                    ))
            else:
                variants.append(ProductVariant(
                    id=f"{external_id}-{ci}",
                    color=color,
                    price=price,
                ))
    elif sizes:
        for si, size in enumerate(sizes):
            variants.append(ProductVariant(
                id=f"{external_id}-size-{si}",
                size=size,
                price=price,
            ))

    return variants
