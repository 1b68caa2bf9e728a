"""
Structured Data Parser

Extracts product information from JSON-LD structured data (schema.org).
This is the highest priority source on generic storefronts as it's
explicitly structured by the website for search engines.

Supported schema types: Product, ProductGroup, IndividualProduct, either
at the top level, inside an @graph, or as items of an ItemList.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from ...common.text_utils import clean_text, strip_html
from ...errors import ParseError
from ..fields import normalize_image_url, to_decimal, unique
from .script_json import decode_json_block

logger = logging.getLogger(__name__)


class StructuredDataParser:
    """
    Parses JSON-LD structured data from HTML pages.

    JSON-LD is embedded in <script type="application/ld+json"> tags and
    contains schema.org structured data for products.

    Usage:
        parser = StructuredDataParser()
        nodes = parser.parse(soup)
        for node in nodes:
            name = parser.extract_name(node)
            price = parser.extract_price(node)
    """

    SUPPORTED_TYPES = ('Product', 'ProductGroup', 'IndividualProduct')

    def parse(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        """
        Extract every product node from the page's JSON-LD blocks.

        Args:
            soup: BeautifulSoup object of the page

        Returns:
            List of product dicts in document order (empty if none)
        """
        products: List[Dict[str, Any]] = []

        for script in soup.find_all('script', type='application/ld+json'):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = decode_json_block(raw)
            except ParseError as e:
                logger.warning("Skipping JSON-LD block: %s", e)
                continue
            products.extend(self._collect(data))

        return products

    def _collect(self, data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, list):
            found = []
            for item in data:
                found.extend(self._collect(item))
            return found

        if not isinstance(data, dict):
            return []

        if self._is_product(data):
            return [data]

        if '@graph' in data:
            return self._collect(data['@graph'])

        if self._has_type(data, 'ItemList'):
            found = []
            for element in data.get('itemListElement') or []:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    element = element['item']
                if isinstance(element, dict) and self._is_product(element):
                    found.append(element)
            return found

        return []

    def _has_type(self, data: Dict[str, Any], type_name: str) -> bool:
        node_type = data.get('@type')
        if isinstance(node_type, list):
            return type_name in node_type
        return node_type == type_name

    def _is_product(self, data: Dict[str, Any]) -> bool:
        return any(self._has_type(data, t) for t in self.SUPPORTED_TYPES)

    def extract_name(self, data: Dict[str, Any]) -> str:
        if not data:
            return ""
        return clean_text(data.get("name", ""))

    def _offers(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        offers = data.get("offers") or []
        if isinstance(offers, dict):
            # AggregateOffer may nest the individual offers
            nested = offers.get("offers")
            offers = [offers] + (nested if isinstance(nested, list) else [])
        return [o for o in offers if isinstance(o, dict)]

    def extract_price(self, data: Dict[str, Any], decimal_separator: Optional[str] = None) -> Optional[Decimal]:
        """
        Extract current price from structured data.

        Args:
            data: Product node
            decimal_separator: Optional decimal separator override

        Returns:
            Positive Decimal or None
        """
        if not data:
            return None

        for offer in self._offers(data):
            for key in ("price", "lowPrice"):
                price = to_decimal(offer.get(key), decimal_separator)
                if price is not None:
                    return price
            spec = offer.get("priceSpecification")
            if isinstance(spec, list) and spec:
                spec = spec[0]
            if isinstance(spec, dict):
                price = to_decimal(spec.get("price"), decimal_separator)
                if price is not None:
                    return price

        for variant in self._variants(data):
            price = self.extract_price(variant, decimal_separator)
            if price is not None:
                return price

        return None

    def extract_stock(self, data: Dict[str, Any]) -> Optional[int]:
        """Inventory level if published, 0 when marked out of stock, else None."""
        for offer in self._offers(data):
            level = offer.get("inventoryLevel")
            if isinstance(level, dict):
                level = level.get("value")
            if isinstance(level, (int, float)):
                return int(level)
            availability = str(offer.get("availability", ""))
            if availability.endswith(("OutOfStock", "SoldOut")):
                return 0
        return None

    def extract_images(self, data: Dict[str, Any], base_url: str = "") -> List[str]:
        """
        Extract all image URLs from structured data.

        Args:
            data: Product node
            base_url: URL used to resolve relative references

        Returns:
            Absolute image URLs (may be empty)
        """
        if not data:
            return []

        image = data.get("image")
        if not isinstance(image, list):
            image = [image]

        urls = []
        for item in image:
            if isinstance(item, dict):
                item = item.get("url") or item.get("contentUrl")
            if isinstance(item, str):
                urls.append(normalize_image_url(item, base_url))
        return unique(urls)

    def extract_brand(self, data: Dict[str, Any]) -> str:
        """
        Extract brand name from structured data.

        Args:
            data: Product node

        Returns:
            Brand name or empty string
        """
        if not data:
            return ""

        brand_data = data.get("brand")
        if isinstance(brand_data, dict):
            return clean_text(brand_data.get("name", ""))
        elif isinstance(brand_data, str):
            return clean_text(brand_data)

        return ""

    def extract_sku(self, data: Dict[str, Any]) -> str:
        if not data:
            return ""
        sku = data.get("sku") or data.get("mpn")
        return str(sku) if sku else ""

    def extract_description(self, data: Dict[str, Any]) -> str:
        if not data:
            return ""
        return strip_html(str(data.get("description") or ""))

    def extract_category(self, data: Dict[str, Any]) -> str:
        if not data:
            return ""
        category = data.get("category")
        if isinstance(category, dict):
            category = category.get("name", "")
        return clean_text(category) if isinstance(category, str) else ""

    def extract_url(self, data: Dict[str, Any]) -> str:
        if not data:
            return ""
        url = data.get("url") or data.get("@id") or ""
        return url if isinstance(url, str) and url.startswith(("http", "/")) else ""

    def extract_id(self, data: Dict[str, Any]) -> str:
        for key in ("productID", "productGroupID", "sku"):
            value = data.get(key)
            if value:
                return str(value)
        return ""

    def _variants(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        variants = data.get("hasVariant") or []
        if isinstance(variants, dict):
            variants = [variants]
        return [v for v in variants if isinstance(v, dict)]

    def extract_option_axes(self, data: Dict[str, Any]) -> Dict[str, List[str]]:
        """
        Colors and sizes from the node and its hasVariant list.

        Returns:
            {'colors': [...], 'sizes': [...]}
        """
        colors: List[str] = []
        sizes: List[str] = []
        for node in [data] + self._variants(data):
            color = node.get("color")
            size = node.get("size")
            if isinstance(size, dict):
                size = size.get("name")
            if isinstance(color, str):
                colors.append(clean_text(color))
            if isinstance(size, str):
                sizes.append(clean_text(size))
        return {"colors": unique(colors), "sizes": unique(sizes)}
