"""
Shopify Strategy

Tiers, in order:
1. StructuredData - ShopifyAnalytics.meta (meta.product on product pages,
   meta.products on collections). Prices are in cents.
2. ScriptJSON     - theme product JSON islands (product.js / product.json shapes)
3. DomHeuristic   - theme markup (Dawn, Debut and similar selectors)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ...common.constants import COLOR_KEYWORDS, SIZE_KEYWORDS
from ...models import ExtractedProduct, Platform
from .. import fields
from ..parsers import AnalyticsDataParser, ShopifyDataParser
from ..tiers import DomHeuristic, ScriptJSON, StructuredData, Tier
from .base import PlatformStrategy

if TYPE_CHECKING:
    from ...browser.page import PageSnapshot


class ShopifyStrategy(PlatformStrategy):
    """Extraction for Shopify storefronts."""

    platform = Platform.SHOPIFY

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.shopify_parser = ShopifyDataParser()

    def is_product_page(self, snapshot: PageSnapshot) -> bool:
        return '/products/' in snapshot.path

    def tiers(self, snapshot: PageSnapshot, single_product: bool) -> List[Tier]:
        return [
            Tier(StructuredData, lambda: self.analytics_products(snapshot, single_product)),
            Tier(ScriptJSON, lambda: self.script_json_products(snapshot, single_product)),
            Tier(DomHeuristic, lambda: self.dom_products(snapshot, single_product)),
        ]

    def _analytics_meta(self, snapshot: PageSnapshot) -> Dict[str, Any]:
        meta = snapshot.globals.get('shopify_analytics_meta')
        if not isinstance(meta, dict):
            meta = AnalyticsDataParser().extract_shopify_meta(snapshot.html)
        return meta or {}

    def analytics_products(self, snapshot: PageSnapshot, single_product: bool) -> List[ExtractedProduct]:
        meta = self._analytics_meta(snapshot)
        single = meta.get('product') if isinstance(meta.get('product'), dict) else None
        many = [p for p in meta.get('products') or [] if isinstance(p, dict)]

        if single_product or not many:
            candidates = [single] if single else []
            is_single = True
        else:
            candidates = many
            is_single = False

        vendor = ""
        page = meta.get('page')
        if isinstance(page, dict):
            vendor = page.get('vendor') or ""

        products = []
        for candidate in candidates:
            product = self.product_from_shopify(candidate, snapshot, is_single, StructuredData.tier, vendor)
            if product is not None:
                products.append(product)
        return products

    def product_from_json(self, obj: Dict[str, Any], snapshot: PageSnapshot,
                          single_product: bool) -> Optional[ExtractedProduct]:
        return self.product_from_shopify(obj, snapshot, single_product, ScriptJSON.tier)

    def product_from_shopify(self, data: Dict[str, Any], snapshot: PageSnapshot, single_product: bool,
                             tier: str, vendor: str = "") -> Optional[ExtractedProduct]:
        """Map one Shopify product object; collection items link to /products/{handle}."""
        parser = self.shopify_parser
        settings = self.settings

        name = fields.clean_name(parser.extract_name(data), settings.max_name_length)
        price = parser.extract_price(data)
        if single_product:
            product_url = snapshot.url.split('?')[0].split('#')[0]
        else:
            product_url = parser.product_url(data, snapshot.origin)

        colors, sizes = fields.option_axes(
            parser.extract_options(data), COLOR_KEYWORDS, SIZE_KEYWORDS, settings.max_option_length,
        )
        sku = parser.extract_sku(data)

        return fields.build_product(
            name=name,
            price=price,
            external_id=fields.make_external_id(
                platform_id=parser.extract_id(data) or data.get('handle'),
                product_url=product_url, sku=sku, name=name, price=price,
            ),
            tier=tier,
            image_urls=parser.extract_images(data, snapshot.url, settings.json_max_depth),
            colors=colors,
            sizes=sizes,
            description=parser.extract_description(data),
            brand=parser.extract_vendor(data) or vendor,
            category=parser.extract_type(data),
            sku=sku,
            product_url=product_url,
            stock=parser.extract_stock(data),
            weight=parser.extract_weight(data),
        )
