"""
Catalog and sync run models.

CatalogRecord and Vendor mirror what the external catalog store holds.
SyncRun is the state machine for one vendor sync; SyncRunSummary is the
structured result handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from ..errors import InvalidStateTransition


@dataclass
class Vendor:
    """Storefront owner whose site is scraped."""
    id: str
    website_url: str
    store_name: str = ""
    sync_enabled: bool = True
    last_synced_at: Optional[datetime] = None


@dataclass
class CatalogRecord:
    """Persistent product row, keyed by (vendor_id, external_id)."""
    id: str
    vendor_id: str
    external_id: str
    name: str
    price: Decimal
    description: str = ""
    stock: int = 0
    image_url: str = ""
    product_url: str = ""
    sku: str = ""
    brand: str = ""
    category: str = ""
    variants: str = ""          # JSON-serialized list of variants
    weight: Optional[float] = None
    dimensions: str = ""
    attributes: str = ""        # JSON-serialized dict
    quality_score: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SyncRunState(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


_ALLOWED_TRANSITIONS = {
    SyncRunState.PENDING: {SyncRunState.IN_PROGRESS},
    SyncRunState.IN_PROGRESS: {SyncRunState.COMPLETED, SyncRunState.FAILED},
    SyncRunState.COMPLETED: set(),
    SyncRunState.FAILED: set(),
}


@dataclass
class SyncRun:
    """One execution of the pipeline for one vendor."""
    id: str
    vendor_id: str
    state: SyncRunState = SyncRunState.PENDING
    total_items: int = 0
    processed_items: int = 0
    error_count: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.state in (SyncRunState.COMPLETED, SyncRunState.FAILED)

    def transition(self, target: SyncRunState) -> None:
        """Move to `target`, raising InvalidStateTransition if not allowed."""
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidStateTransition(
                f"SyncRun {self.id}: {self.state.value} -> {target.value} not allowed"
            )
        self.state = target


@dataclass
class ProductSyncResult:
    """Outcome of reconciling one extracted product."""
    external_id: str
    status: str                 # "created" | "updated" | "error"
    record_id: str = ""
    message: str = ""


@dataclass
class SyncRunSummary:
    """Structured result of a vendor sync, the only thing callers receive."""
    success: bool
    total_products: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    synced_at: Optional[datetime] = None
    message: str = ""
    run_id: str = ""
    state: Optional[SyncRunState] = None
    cancelled: bool = False
    results: List[ProductSyncResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "totalProducts": self.total_products,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
            "syncedAt": self.synced_at.isoformat() if self.synced_at else None,
            "message": self.message,
            "runId": self.run_id,
            "state": self.state.value if self.state else None,
            "cancelled": self.cancelled,
        }
