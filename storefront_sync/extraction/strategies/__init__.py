"""Per-platform extraction strategies."""

from .base import PlatformStrategy
from .generic import GenericStrategy
from .shopify import ShopifyStrategy
from .woocommerce import WooCommerceStrategy

__all__ = [
    'PlatformStrategy',
    'ShopifyStrategy',
    'WooCommerceStrategy',
    'GenericStrategy',
]
