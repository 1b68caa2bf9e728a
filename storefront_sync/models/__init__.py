"""
Data models for storefront extraction and catalog sync.

This module contains plain data classes with no pipeline logic.
"""

from .catalog import (
    CatalogRecord,
    ProductSyncResult,
    SyncRun,
    SyncRunState,
    SyncRunSummary,
    Vendor,
)
from .product import (
    ExtractedProduct,
    Platform,
    ProductVariant,
    SiteProfile,
    build_variants,
)

__all__ = [
    'Platform',
    'SiteProfile',
    'ProductVariant',
    'ExtractedProduct',
    'build_variants',
    'Vendor',
    'CatalogRecord',
    'SyncRun',
    'SyncRunState',
    'SyncRunSummary',
    'ProductSyncResult',
]
