"""
Quality Scorer

Scores how complete each extracted product is, as a weighted checklist.
Advisory only: a low score never blocks a product from syncing, it is
logged and stored with the record.

Default weights (sum to 100):
    name 25, price 25, image 20, description 15, sizes 5,
    category 4, sku 3, brand 3

A product is complete when its score reaches the threshold (default 70).
Adding an optional field never lowers the score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from ..common.config_loader import PipelineSettings
from ..models import ExtractedProduct

logger = logging.getLogger(__name__)


@dataclass
class QualityReport:
    """Score and missing fields for one product."""
    score: int
    is_complete: bool
    missing_fields: List[str] = field(default_factory=list)


class QualityScorer:
    """Weighted completeness checklist."""

    def __init__(self, settings: PipelineSettings):
        self.settings = settings
        self.weights = dict(settings.quality_weights)
        self.threshold = settings.quality_threshold

    def field_checks(self, product: ExtractedProduct) -> Dict[str, bool]:
        """Presence check per scorable field."""
        min_description = self.settings.short_description_length
        checks: Dict[str, Callable[[], bool]] = {
            "name": lambda: bool(product.name and product.name.strip()),
            "price": lambda: product.price is not None and product.price > 0,
            "image": lambda: bool(product.image_url),
            "description": lambda: len(product.description or "") > min_description,
            "sizes": lambda: bool(product.sizes),
            "colors": lambda: bool(product.colors),
            "category": lambda: bool(product.category),
            "sku": lambda: bool(product.sku),
            "brand": lambda: bool(product.brand),
            "product_url": lambda: bool(product.product_url),
        }
        return {name: checks[name]() for name in self.weights if name in checks}

    def score(self, product: ExtractedProduct) -> QualityReport:
        """
        Score one product.

        Args:
            product: Extracted product

        Returns:
            QualityReport with a 0-100 score
        """
        checks = self.field_checks(product)
        total = sum(self.weights[name] for name in checks)
        earned = sum(self.weights[name] for name, present in checks.items() if present)
        score = round(100 * earned / total) if total else 0
        missing = [name for name, present in checks.items() if not present]
        return QualityReport(score=score, is_complete=score >= self.threshold, missing_fields=missing)

    def apply(self, products: List[ExtractedProduct], vendor_id: str = "") -> List[QualityReport]:
        """Score every product, attach the results and log incomplete ones."""
        reports = []
        for product in products:
            report = self.score(product)
            product.quality_score = report.score
            product.missing_fields = list(report.missing_fields)
            if not report.is_complete:
                logger.info("Incomplete product vendor=%s external_id=%s score=%d missing=%s",
                            vendor_id, product.external_id, report.score, report.missing_fields)
            reports.append(report)
        return reports


def missing_data_stats(products: List[ExtractedProduct]) -> Dict[str, int]:
    """Count products lacking each optional field."""
    return {
        "total": len(products),
        "without_description": sum(1 for p in products if not p.description),
        "without_image": sum(1 for p in products if not p.image_url),
        "without_url": sum(1 for p in products if not p.product_url),
        "without_sku": sum(1 for p in products if not p.sku),
        "without_brand": sum(1 for p in products if not p.brand),
        "without_category": sum(1 for p in products if not p.category),
        "without_sizes": sum(1 for p in products if not p.sizes),
    }
