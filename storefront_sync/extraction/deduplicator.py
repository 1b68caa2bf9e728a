"""
Product Deduplicator

Removes duplicate products from one extraction batch and makes external
ids unique within it.

Key priority:
1. Canonical product URL (fragment and trailing slash removed)
2. (name, price) when the product has no URL

The first product seen with a key wins; later ones are dropped and logged.
"""

import logging
from typing import List
from urllib.parse import urlparse, urlunparse

from ..common.text_utils import clean_text
from ..models import ExtractedProduct

logger = logging.getLogger(__name__)


def canonical_url(url: str) -> str:
    """
    Normalize a product URL for comparison.

    Example:
        >>> canonical_url("HTTPS://Shop.example.com/products/robe/#reviews")
        'https://shop.example.com/products/robe'
    """
    if not url:
        return ""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip('/')
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, ''))


class Deduplicator:
    """First-wins deduplication for an extraction batch."""

    def dedup_key(self, product: ExtractedProduct) -> tuple:
        if product.product_url:
            return ('url', canonical_url(product.product_url))
        return ('name_price', clean_text(product.name).lower(), product.price)

    def deduplicate(self, products: List[ExtractedProduct], vendor_id: str = "") -> List[ExtractedProduct]:
        """
        Drop duplicates and assign unique external ids.

        Args:
            products: Products in extraction order
            vendor_id: Vendor id for log lines

        Returns:
            New list of unique products, extraction order kept
        """
        seen = {}
        unique_products: List[ExtractedProduct] = []

        for product in products:
            key = self.dedup_key(product)
            if key in seen:
                logger.info("Dropped duplicate vendor=%s external_id=%s (same %s as %s)",
                            vendor_id, product.external_id, key[0], seen[key])
                continue
            seen[key] = product.external_id
            unique_products.append(product)

        self.ensure_unique_ids(unique_products, vendor_id)
        return unique_products

    def ensure_unique_ids(self, products: List[ExtractedProduct], vendor_id: str = "") -> None:
        """Suffix repeated external ids with -2, -3, ... (variant ids follow)."""
        used = set()
        for product in products:
            original = product.external_id
            candidate = original
            suffix = 2
            while candidate in used:
                candidate = f"{original}-{suffix}"
                suffix += 1
            if candidate != original:
                logger.info("Renamed external id vendor=%s %s -> %s", vendor_id, original, candidate)
                product.external_id = candidate
                product.rebuild_variants()
            used.add(candidate)
