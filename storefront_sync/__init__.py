"""
Storefront Catalog Sync

Modules:
    models      - Data models (ExtractedProduct, SyncRun, CatalogRecord)
    common      - Shared utilities (config loader, logging, text helpers)
    browser     - Browser sessions (Playwright, static HTTP) and page snapshots
    extraction  - Platform classification, tiered extraction, enrichment, scoring
    sync        - Catalog store, synchronizer and sync service
"""
