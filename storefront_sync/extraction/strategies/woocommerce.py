"""
WooCommerce Strategy

WooCommerce publishes no platform global with catalog data, so there is
no platform-native tier. Tiers, in order:
1. ScriptJSON   - JSON script blocks, including the JSON-LD WooCommerce
   prints on product pages
2. DomHeuristic - WooCommerce template markup (.product_title,
   .woocommerce-Price-amount, .variations selects, li.product cards)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from ...models import Platform
from ..tiers import DomHeuristic, ScriptJSON, Tier
from .base import PlatformStrategy

if TYPE_CHECKING:
    from ...browser.page import PageSnapshot


class WooCommerceStrategy(PlatformStrategy):
    """Extraction for WooCommerce storefronts."""

    platform = Platform.WOOCOMMERCE

    def is_product_page(self, snapshot: PageSnapshot) -> bool:
        body = snapshot.soup.find('body')
        return body is not None and 'single-product' in (body.get('class') or [])

    def tiers(self, snapshot: PageSnapshot, single_product: bool) -> List[Tier]:
        return [
            Tier(ScriptJSON, lambda: self.script_json_products(snapshot, single_product)),
            Tier(DomHeuristic, lambda: self.dom_products(snapshot, single_product)),
        ]
