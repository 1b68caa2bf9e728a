"""
Product extraction: platform classification, tiered strategies, field
extractors, enrichment, deduplication and quality scoring.

Import from the submodules directly (e.g. storefront_sync.extraction.pipeline).
"""
