"""
Shopify Data Parser

Reads product information out of the JSON shapes Shopify themes embed:
- ShopifyAnalytics.meta.product / meta.products (analytics global)
- product.js style objects (prices in cents, options as names)
- product.json style objects (prices as decimal strings, options with values)

Prices given as integers are cents; decimal strings are used as-is.
"""

import re
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from ...common.text_utils import clean_text, strip_html
from ..fields import find_image_urls, normalize_image_url, to_decimal, unique


class ShopifyDataParser:
    """
    Parses one Shopify product object.

    Usage:
        parser = ShopifyDataParser()
        name = parser.extract_name(product)
        price = parser.extract_price(product)
        options = parser.extract_options(product)
    """

    def extract_name(self, product: Dict[str, Any]) -> str:
        """
        Extract the product title.

        Analytics meta objects carry no title; the first variant's name
        ("Title - Variant") is used instead, minus its variant suffix.
        """
        if not product:
            return ""

        title = product.get("title") or product.get("name")
        if title:
            return clean_text(title)

        variants = self._variants(product)
        if variants:
            name = clean_text(variants[0].get("name", ""))
            public_title = clean_text(variants[0].get("public_title") or "")
            if public_title and name.endswith(" - " + public_title):
                name = name[: -len(" - " + public_title)]
            return name

        return ""

    def to_price(self, value: Any) -> Optional[Decimal]:
        """Integers (and digit-only strings) are cents; anything else is parsed as a price."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
            cents = Decimal(str(value).strip())
            return cents / 100 if cents > 0 else None
        return to_decimal(value)

    def extract_price(self, product: Dict[str, Any]) -> Optional[Decimal]:
        if not product:
            return None

        for key in ("price", "price_min"):
            price = self.to_price(product.get(key))
            if price is not None:
                return price

        for variant in self._variants(product):
            price = self.to_price(variant.get("price"))
            if price is not None:
                return price

        return None

    def extract_options(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Normalize product options to [{'name': ..., 'values': [...]}].

        Handles options given with their values, and options given as bare
        names whose values live on the variants (option1..option3).
        """
        options = product.get("options_with_values") or product.get("options") or []
        normalized = []
        variants = self._variants(product)

        for index, option in enumerate(options):
            if isinstance(option, dict):
                name = option.get("name", "")
                values = option.get("values") or []
            elif isinstance(option, str):
                name = option
                values = self._variant_option_values(variants, index)
            else:
                continue
            normalized.append({"name": name, "values": [str(v) for v in values]})

        return normalized

    def _variant_option_values(self, variants: List[Dict[str, Any]], index: int) -> List[str]:
        values = []
        for variant in variants:
            value = variant.get(f"option{index + 1}")
            if value is None and isinstance(variant.get("options"), list) and len(variant["options"]) > index:
                value = variant["options"][index]
            if value:
                values.append(str(value))
        return unique(values)

    def extract_images(self, product: Dict[str, Any], base_url: str = "", max_depth: int = 12) -> List[str]:
        """
        Collect image URLs from images, featured_image and media entries.

        Falls back to a bounded walk of the whole object.
        """
        candidates: List[Any] = []
        for key in ("featured_image", "image"):
            candidates.append(product.get(key))
        candidates.extend(product.get("images") or [])
        candidates.extend(product.get("media") or [])

        urls = []
        for item in candidates:
            if isinstance(item, dict):
                item = item.get("src") or item.get("url") or (item.get("preview_image") or {}).get("src")
            if isinstance(item, str):
                urls.append(normalize_image_url(item, base_url))

        urls = unique(urls)
        if not urls:
            urls = find_image_urls(product, base_url, max_depth)
        return urls

    def extract_description(self, product: Dict[str, Any]) -> str:
        return strip_html(str(product.get("description") or product.get("body_html") or ""))

    def extract_vendor(self, product: Dict[str, Any]) -> str:
        return clean_text(product.get("vendor") or "")

    def extract_type(self, product: Dict[str, Any]) -> str:
        return clean_text(product.get("type") or product.get("product_type") or "")

    def extract_sku(self, product: Dict[str, Any]) -> str:
        sku = product.get("sku")
        if not sku:
            for variant in self._variants(product):
                if variant.get("sku"):
                    sku = variant["sku"]
                    break
        return re.sub(r'[^\w-]', '', str(sku)) if sku else ""

    def extract_id(self, product: Dict[str, Any]) -> str:
        product_id = product.get("id") or product.get("product_id")
        return str(product_id) if product_id else ""

    def extract_stock(self, product: Dict[str, Any]) -> Optional[int]:
        quantities = [
            v.get("inventory_quantity") for v in self._variants(product)
            if isinstance(v.get("inventory_quantity"), int)
        ]
        if quantities:
            return max(0, sum(quantities))
        if product.get("available") is False:
            return 0
        return None

    def extract_weight(self, product: Dict[str, Any]) -> Optional[float]:
        """Weight in grams from the first variant that declares one."""
        for variant in self._variants(product):
            grams = variant.get("weight") or variant.get("grams")
            if isinstance(grams, (int, float)) and grams > 0:
                return float(grams)
        return None

    def product_url(self, product: Dict[str, Any], origin: str) -> str:
        """Absolute product URL, built from the handle when the object has no url."""
        url = product.get("url")
        if isinstance(url, str) and url:
            return urljoin(origin + "/", url)
        handle = product.get("handle")
        if handle:
            return f"{origin}/products/{handle}"
        return ""

    def _variants(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [v for v in product.get("variants") or [] if isinstance(v, dict)]
