"""
Script JSON Parser

Scans inline JSON script blocks (application/json, application/ld+json)
for product-shaped objects. Themes and page builders often ship the
product they render as a JSON island next to the markup.

Malformed blocks are skipped one by one; a bad block never hides the
good ones after it.
"""

import json
import logging
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from ...errors import ParseError

logger = logging.getLogger(__name__)

JSON_SCRIPT_TYPES = ('application/json', 'application/ld+json')

NAME_KEYS = ('title', 'name')
PRICE_KEYS = ('price', 'price_min', 'offers', 'variants', 'priceRange')


def decode_json_block(raw: str) -> Any:
    """
    Decode one script block.

    Raises:
        ParseError: If the block is not valid JSON
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON at line {e.lineno} column {e.colno}: {e.msg}") from e


class ScriptJSONParser:
    """
    Finds product-shaped objects in JSON script blocks.

    Usage:
        parser = ScriptJSONParser(max_depth=12)
        blocks = parser.parse(soup)
        products = parser.find_products(blocks)
    """

    def __init__(self, max_depth: int = 12):
        self.max_depth = max_depth

    def parse(self, soup: BeautifulSoup) -> List[Any]:
        """
        Decode every JSON script block on the page.

        Args:
            soup: BeautifulSoup object of the page

        Returns:
            Decoded blocks in document order
        """
        blocks = []
        for script in soup.find_all('script', type=lambda t: t in JSON_SCRIPT_TYPES):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                blocks.append(decode_json_block(raw))
            except ParseError as e:
                logger.warning("Skipping JSON script block: %s", e)
        return blocks

    def is_product_shaped(self, obj: Any) -> bool:
        """A dict with a name-like key and a price-like key."""
        if not isinstance(obj, dict):
            return False
        node_type = obj.get('@type')
        if node_type and 'Product' not in str(node_type):
            return False
        has_name = any(isinstance(obj.get(k), str) and obj.get(k).strip() for k in NAME_KEYS)
        has_price = any(obj.get(k) not in (None, '', [], {}) for k in PRICE_KEYS)
        return has_name and has_price

    def find_products(self, blocks: List[Any]) -> List[Dict[str, Any]]:
        """
        Collect product-shaped objects from decoded blocks.

        Explicit `product` / `products` keys win; otherwise the structure is
        walked depth-first, bounded by max_depth and a visited set. Matches
        are not descended into, so variants are not mistaken for products.
        """
        found: List[Dict[str, Any]] = []
        seen = set()

        def add(obj: Any) -> None:
            if self.is_product_shaped(obj) and id(obj) not in seen:
                seen.add(id(obj))
                found.append(obj)

        for block in blocks:
            if isinstance(block, dict) and (block.get('product') or block.get('products')):
                add(block.get('product'))
                for item in block.get('products') or []:
                    add(item)
                continue

            stack = [(block, 0)]
            visited = set()
            while stack:
                node, depth = stack.pop()
                if id(node) in visited:
                    continue
                visited.add(id(node))

                if self.is_product_shaped(node):
                    add(node)
                    continue
                if depth >= self.max_depth:
                    continue
                if isinstance(node, dict):
                    children = list(node.values())
                elif isinstance(node, list):
                    children = node
                else:
                    continue
                for child in reversed(children):
                    if isinstance(child, (dict, list)):
                        stack.append((child, depth + 1))

        return found
