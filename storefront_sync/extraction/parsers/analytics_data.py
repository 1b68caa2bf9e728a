"""
Analytics Data Parser

Recovers platform globals from inline JavaScript when no browser is
available to evaluate them.

Shopify themes publish the product catalog for analytics as:
    var meta = {"product": {...}, "page": {...}};
    for (var attr in meta) { window.ShopifyAnalytics.meta[attr] = meta[attr]; }

Other platforms are only detected by presence, never parsed.
"""

import json
import re
from typing import Any, Dict

# Start of a Shopify analytics meta assignment; the object itself is
# decoded with raw_decode so nested braces are handled by the JSON parser.
META_PATTERN = re.compile(r'(?:var\s+meta|ShopifyAnalytics\.meta)\s*=\s*(?=\{)')

SHOPIFY_PATTERN = re.compile(r'\bShopify\.(?:shop|theme|routes|locale)\b|window\.Shopify\s*=')
MAGE_PATTERN = re.compile(r'["\']mage/|\bMagento_\w+|\bMage\.Cookies\b')
PRESTASHOP_PATTERN = re.compile(r'\bvar\s+prestashop\s*=|window\.prestashop\b')
WOOCOMMERCE_PATTERN = re.compile(r'\bwoocommerce_params\b|\bwc_add_to_cart_params\b')


class AnalyticsDataParser:
    """
    Parses inline analytics globals from page HTML.

    Usage:
        parser = AnalyticsDataParser()
        page_globals = parser.parse(html)
        meta = page_globals["shopify_analytics_meta"]
    """

    def parse(self, html: str) -> Dict[str, Any]:
        """
        Build the same globals dictionary a browser session would capture.

        Args:
            html: Raw HTML string of the page

        Returns:
            Dict with 'shopify', 'mage', 'prestashop', 'woocommerce' presence
            flags and 'shopify_analytics_meta' (dict or None)
        """
        html = html or ""
        return {
            "shopify": bool(SHOPIFY_PATTERN.search(html)),
            "shopify_analytics_meta": self.extract_shopify_meta(html),
            "mage": bool(MAGE_PATTERN.search(html)),
            "prestashop": bool(PRESTASHOP_PATTERN.search(html)),
            "woocommerce": bool(WOOCOMMERCE_PATTERN.search(html)),
        }

    def extract_shopify_meta(self, html: str) -> Dict[str, Any] | None:
        """
        Extract the ShopifyAnalytics meta object.

        Args:
            html: Raw HTML string of the page

        Returns:
            Parsed meta dict, or None if absent or malformed
        """
        decoder = json.JSONDecoder()

        for match in META_PATTERN.finditer(html or ""):
            try:
                data, _ = decoder.raw_decode(html, match.end())
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict) and ('product' in data or 'products' in data or 'page' in data):
                return data

        return None
