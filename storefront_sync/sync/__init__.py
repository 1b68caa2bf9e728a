"""Catalog synchronization: store interface, synchronizer and sync service."""

from .service import SyncService
from .store import CatalogStore, InMemoryCatalogStore
from .synchronizer import CatalogSynchronizer, record_fields

__all__ = [
    'CatalogStore',
    'InMemoryCatalogStore',
    'CatalogSynchronizer',
    'SyncService',
    'record_fields',
]
