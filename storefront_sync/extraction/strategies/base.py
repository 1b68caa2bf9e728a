"""
Platform Strategy Base

A strategy knows how to tell a product page from a listing page on its
platform and which tiers to try, in which order. The tier implementations
shared by every platform live here:

- JSON-LD product nodes (schema.org)
- product-shaped objects in JSON script blocks
- DOM heuristics over prioritized selector candidates, for both listing
  cards and single-product pages
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from bs4 import Tag

from ...common.config_loader import PipelineSettings, get_selector_list
from ...common.constants import COLOR_KEYWORDS, SIZE_KEYWORDS
from ...common.text_utils import clean_text, strip_html
from ...models import ExtractedProduct, Platform
from .. import fields
from ..parsers import ScriptJSONParser, StructuredDataParser
from ..tiers import DomHeuristic, ScriptJSON, StructuredData, Tier, TierResult, first_success

if TYPE_CHECKING:
    from ...browser.page import PageSnapshot

logger = logging.getLogger(__name__)


class PlatformStrategy(ABC):
    """
    Extraction strategy for one platform family.

    Subclasses define is_product_page() and tiers(); extract() runs the
    tiers through first_success().
    """

    platform: Platform = Platform.GENERIC

    def __init__(self, settings: PipelineSettings, selectors: Dict[str, Dict[str, List[str]]],
                 family: Optional[str] = None):
        self.settings = settings
        self.selectors = selectors
        self.family = family or self.platform.value
        self.jsonld_parser = StructuredDataParser()
        self.script_parser = ScriptJSONParser(max_depth=settings.json_max_depth)

    def sel(self, field_name: str) -> List[str]:
        """Selector candidates for a field: this family's first, then generic."""
        return get_selector_list(self.selectors, self.family, field_name)

    @abstractmethod
    def is_product_page(self, snapshot: PageSnapshot) -> bool:
        """True if the page shows a single product rather than a listing."""

    @abstractmethod
    def tiers(self, snapshot: PageSnapshot, single_product: bool) -> List[Tier]:
        """Ordered tiers for this page."""

    def extract(self, snapshot: PageSnapshot, single_product: bool = False) -> TierResult:
        """
        Extract products from a page.

        Args:
            snapshot: Loaded page
            single_product: Force detail-page extraction (used by enrichment)

        Returns:
            TierResult of the first tier that produced products
        """
        single = single_product or self.is_product_page(snapshot)
        logger.debug("%s strategy on %s (single_product=%s)", self.family, snapshot.url, single)
        return first_success(self.tiers(snapshot, single), single_product=single)

    # --- Tier: JSON-LD -----------------------------------------------------

    def jsonld_products(self, snapshot: PageSnapshot, single_product: bool) -> List[ExtractedProduct]:
        nodes = self.jsonld_parser.parse(snapshot.soup)
        products = []
        for node in nodes:
            product = self.product_from_jsonld(node, snapshot, StructuredData.tier, single_product)
            if product is not None:
                products.append(product)
                if single_product:
                    break
        return products

    def product_from_jsonld(self, node: Dict[str, Any], snapshot: PageSnapshot, tier: str,
                            single_product: bool) -> Optional[ExtractedProduct]:
        parser = self.jsonld_parser
        name = fields.clean_name(parser.extract_name(node), self.settings.max_name_length)
        price = parser.extract_price(node, self.settings.price_decimal_separator)
        url = parser.extract_url(node)
        product_url = snapshot.url if single_product and not url else fields.resolve_url(url, snapshot.url)
        sku = fields.clean_sku(parser.extract_sku(node))
        axes = parser.extract_option_axes(node)

        return fields.build_product(
            name=name,
            price=price,
            external_id=fields.make_external_id(
                platform_id=parser.extract_id(node), product_url=product_url,
                sku=sku, name=name, price=price,
            ),
            tier=tier,
            image_urls=parser.extract_images(node, snapshot.url),
            colors=[c for c in axes["colors"] if fields.is_acceptable_option(c, self.settings.max_option_length)],
            sizes=[s for s in axes["sizes"] if fields.is_acceptable_option(s, self.settings.max_option_length)],
            description=parser.extract_description(node),
            brand=parser.extract_brand(node),
            category=fields.clean_category(parser.extract_category(node)),
            sku=sku,
            product_url=product_url,
            stock=parser.extract_stock(node),
        )

    # --- Tier: script JSON -------------------------------------------------

    def script_json_products(self, snapshot: PageSnapshot, single_product: bool) -> List[ExtractedProduct]:
        blocks = self.script_parser.parse(snapshot.soup)
        candidates = self.script_parser.find_products(blocks)
        products = []
        for candidate in candidates:
            if '@type' in candidate:
                product = self.product_from_jsonld(candidate, snapshot, ScriptJSON.tier, single_product)
            else:
                product = self.product_from_json(candidate, snapshot, single_product)
            if product is not None:
                products.append(product)
                if single_product:
                    break
        return products

    def product_from_json(self, obj: Dict[str, Any], snapshot: PageSnapshot,
                          single_product: bool) -> Optional[ExtractedProduct]:
        """Map a loosely structured product object (theme or page-builder JSON)."""
        decimal_separator = self.settings.price_decimal_separator
        name = fields.clean_name(obj.get('title') or obj.get('name') or "", self.settings.max_name_length)

        price = None
        offers = obj.get('offers')
        price_range = obj.get('priceRange')
        for value in (
            obj.get('price'),
            obj.get('price_min'),
            offers.get('price') if isinstance(offers, dict) else None,
            (price_range.get('minVariantPrice') or {}).get('amount') if isinstance(price_range, dict) else None,
        ):
            if isinstance(value, dict):
                value = value.get('amount')
            price = fields.to_decimal(value, decimal_separator)
            if price is not None:
                break

        url = obj.get('url') or obj.get('link') or ""
        product_url = snapshot.url if single_product and not url else fields.resolve_url(url, snapshot.url)
        brand = obj.get('brand') or obj.get('vendor') or ""
        if isinstance(brand, dict):
            brand = brand.get('name', "")
        sku = fields.clean_sku(str(obj.get('sku') or ""))

        return fields.build_product(
            name=name,
            price=price,
            external_id=fields.make_external_id(
                platform_id=obj.get('id'), product_url=product_url, sku=sku, name=name, price=price,
            ),
            tier=ScriptJSON.tier,
            image_urls=fields.find_image_urls(obj, snapshot.url, self.settings.json_max_depth),
            description=strip_html(str(obj.get('description') or "")),
            brand=clean_text(brand),
            category=fields.clean_category(str(obj.get('category') or obj.get('type') or "")),
            sku=sku,
            product_url=product_url,
        )

    # --- Tier: DOM heuristics ----------------------------------------------

    def dom_products(self, snapshot: PageSnapshot, single_product: bool) -> List[ExtractedProduct]:
        if single_product:
            product = self.product_from_detail(snapshot)
            return [product] if product is not None else []
        return self.products_from_listing(snapshot)

    def find_containers(self, snapshot: PageSnapshot) -> List[Tag]:
        """
        Listing cards: the first container selector that matches anything.

        Nested matches are dropped so a card and its inner wrapper are not
        both extracted. Falls back to the parents of product links.
        """
        soup = snapshot.soup
        for selector in self.sel('listing_container'):
            matches = soup.select(selector)
            if matches:
                match_ids = {id(m) for m in matches}
                containers = [m for m in matches if not any(id(p) in match_ids for p in m.parents)]
                logger.debug("Listing containers: %d via %r", len(containers), selector)
                return containers[: self.settings.max_products]

        containers: List[Tag] = []
        seen = set()
        for selector in self.sel('product_anchor'):
            for anchor in soup.select(selector):
                parent = anchor.parent
                if parent is not None and parent.name != '[document]' and id(parent) not in seen:
                    seen.add(id(parent))
                    containers.append(parent)
            if containers:
                logger.debug("Listing containers: %d via product links %r", len(containers), selector)
                break
        return containers[: self.settings.max_products]

    def products_from_listing(self, snapshot: PageSnapshot) -> List[ExtractedProduct]:
        products = []
        for container in self.find_containers(snapshot):
            product = self.product_from_card(container, snapshot)
            if product is not None:
                products.append(product)
        return products

    def product_from_card(self, container: Tag, snapshot: PageSnapshot) -> Optional[ExtractedProduct]:
        settings = self.settings
        name = fields.extract_name(container, self.sel('card_name'), settings.max_name_length)
        price = fields.extract_price(container, self.sel('card_price'), settings.price_decimal_separator)
        product_url = fields.extract_link(container, self.sel('listing_link'), snapshot.url)
        sku = fields.extract_sku(container, self.sel('sku'))

        return fields.build_product(
            name=name,
            price=price,
            external_id=fields.make_external_id(
                element=container, product_url=product_url, sku=sku, name=name, price=price,
            ),
            tier=DomHeuristic.tier,
            image_urls=fields.extract_images(container, self.sel('card_image'), snapshot.url),
            colors=fields.extract_option_values(
                container, self.sel('color'), COLOR_KEYWORDS, max_length=settings.max_option_length,
            ),
            sizes=fields.extract_option_values(
                container, self.sel('size'), SIZE_KEYWORDS, max_length=settings.max_option_length,
            ),
            brand=fields.extract_brand(container, self.sel('brand')),
            sku=sku,
            product_url=product_url,
        )

    def detail_product_id(self, snapshot: PageSnapshot) -> str:
        """Platform product id from add-to-cart forms and similar markers."""
        for selector in self.sel('product_id'):
            element = snapshot.soup.select_one(selector)
            if element is None:
                continue
            value = element.get('data-product-id') or element.get('value')
            if value and str(value).strip():
                return str(value).strip()
        return ""

    def product_from_detail(self, snapshot: PageSnapshot) -> Optional[ExtractedProduct]:
        soup = snapshot.soup
        settings = self.settings
        name = fields.extract_name(soup, self.sel('name'), settings.max_name_length)
        price = fields.extract_price(soup, self.sel('price'), settings.price_decimal_separator)
        sku = fields.extract_sku(soup, self.sel('sku'))

        canonical = soup.find('link', rel='canonical')
        product_url = snapshot.url
        if canonical is not None and canonical.get('href'):
            product_url = fields.resolve_url(canonical['href'], snapshot.url)

        return fields.build_product(
            name=name,
            price=price,
            external_id=fields.make_external_id(
                platform_id=self.detail_product_id(snapshot) or None,
                product_url=product_url, sku=sku, name=name, price=price,
            ),
            tier=DomHeuristic.tier,
            image_urls=fields.extract_images(soup, self.sel('image'), snapshot.url),
            colors=fields.extract_option_values(
                soup, self.sel('color'), COLOR_KEYWORDS, self.sel('color_container'),
                settings.max_option_length,
            ),
            sizes=fields.extract_option_values(
                soup, self.sel('size'), SIZE_KEYWORDS, self.sel('size_container'),
                settings.max_option_length,
            ),
            description=fields.extract_description(soup, self.sel('description')),
            brand=fields.extract_brand(soup, self.sel('brand')),
            category=fields.extract_category(soup, self.sel('category')),
            sku=sku,
            product_url=product_url,
        )
