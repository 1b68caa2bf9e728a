"""
Generic Strategy

Used for unknown platforms, and for Magento and PrestaShop with their own
selector families tried before the generic ones.

Tiers, in order:
1. StructuredData - schema.org JSON-LD Product / ItemList
2. ScriptJSON     - other JSON script blocks
3. DomHeuristic   - generic selector candidates

Single-product pages are told apart from listings by a weighted score
(add-to-cart control, a single dominant heading, an image gallery, variant
selectors) compared against a configurable threshold.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List

from ...models import Platform
from ..tiers import DomHeuristic, ScriptJSON, StructuredData, Tier
from .base import PlatformStrategy

if TYPE_CHECKING:
    from ...browser.page import PageSnapshot

logger = logging.getLogger(__name__)


class GenericStrategy(PlatformStrategy):
    """Extraction for storefronts without a dedicated strategy."""

    platform = Platform.GENERIC

    def page_signals(self, snapshot: PageSnapshot) -> Dict[str, bool]:
        """Which product-page signals the page shows."""
        soup = snapshot.soup

        add_to_cart = []
        for selector in self.sel('add_to_cart'):
            add_to_cart.extend(soup.select(selector))

        return {
            # Listings repeat the control on every card
            'add_to_cart': 0 < len(add_to_cart) < 3,
            'single_heading': len(soup.find_all(['h1', 'h2'])) < 3,
            'gallery': any(soup.select_one(s) is not None for s in self.sel('gallery')),
            'variant_selector': any(soup.select_one(s) is not None for s in self.sel('variant_selector')),
        }

    def product_page_score(self, snapshot: PageSnapshot) -> int:
        weights = self.settings.product_page_weights
        signals = self.page_signals(snapshot)
        return sum(weights.get(name, 0) for name, present in signals.items() if present)

    def is_product_page(self, snapshot: PageSnapshot) -> bool:
        score = self.product_page_score(snapshot)
        is_product = score >= self.settings.product_page_threshold
        logger.debug("Product page score for %s: %d (threshold %d)",
                     snapshot.url, score, self.settings.product_page_threshold)
        return is_product

    def tiers(self, snapshot: PageSnapshot, single_product: bool) -> List[Tier]:
        return [
            Tier(StructuredData, lambda: self.jsonld_products(snapshot, single_product)),
            Tier(ScriptJSON, lambda: self.script_json_products(snapshot, single_product)),
            Tier(DomHeuristic, lambda: self.dom_products(snapshot, single_product)),
        ]
