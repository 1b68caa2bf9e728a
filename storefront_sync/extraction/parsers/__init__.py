"""
Specialized parsers for embedded product data.

Each parser handles a specific data source:
- StructuredDataParser: JSON-LD structured data (schema.org)
- ShopifyDataParser: Shopify product objects (analytics meta, product JSON)
- ScriptJSONParser: product-shaped objects in JSON script blocks
- AnalyticsDataParser: platform globals recovered from inline scripts
"""

from .analytics_data import AnalyticsDataParser
from .script_json import ScriptJSONParser
from .shopify_data import ShopifyDataParser
from .structured_data import StructuredDataParser

__all__ = [
    'StructuredDataParser',
    'ShopifyDataParser',
    'ScriptJSONParser',
    'AnalyticsDataParser',
]
