"""
Catalog Synchronizer

Reconciles an extracted product batch against the catalog store and owns
the SyncRun state machine:

    PENDING -> IN_PROGRESS -> COMPLETED
                           -> FAILED   (run-fatal errors, zero products,
                                        cancellation)

Per product: look up (vendor_id, external_id), update the record if it
exists, create it otherwise. A store failure is logged and counted as an
error; the batch carries on. The vendor's last-synced timestamp moves
once per run, and only if at least one product made it into the store.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from ..common.cancellation import CancellationToken
from ..common.config_loader import PipelineSettings
from ..models import (
    ExtractedProduct,
    ProductSyncResult,
    SyncRun,
    SyncRunState,
    SyncRunSummary,
)
from .store import CatalogStore

logger = logging.getLogger(__name__)


def record_fields(product: ExtractedProduct) -> Dict[str, Any]:
    """
    Catalog fields written for a product.

    Always written: name, price, description, stock, image_url, product_url,
    quality_score. Optional fields are written only when the product has them,
    so an update never blanks a value the store already holds.
    """
    fields: Dict[str, Any] = {
        "name": product.name,
        "price": product.price,
        "description": product.description,
        "stock": product.stock if product.stock is not None else 0,
        "image_url": product.image_url,
        "product_url": product.product_url,
        "quality_score": product.quality_score,
    }

    if product.sku:
        fields["sku"] = product.sku
    if product.brand:
        fields["brand"] = product.brand
    if product.category:
        fields["category"] = product.category
    if product.variants:
        fields["variants"] = json.dumps([v.to_dict() for v in product.variants], ensure_ascii=False)
    if product.weight is not None:
        fields["weight"] = product.weight
    if product.dimensions:
        fields["dimensions"] = product.dimensions
    if product.attributes:
        fields["attributes"] = json.dumps(product.attributes, ensure_ascii=False)

    return fields


class CatalogSynchronizer:
    """
    Applies extraction batches to a CatalogStore.

    Usage:
        synchronizer = CatalogSynchronizer(store, settings)
        run = synchronizer.begin_run(vendor_id)
        synchronizer.start(run)
        summary = synchronizer.sync_products(run, products)
    """

    def __init__(self, store: CatalogStore, settings: Optional[PipelineSettings] = None):
        self.store = store
        self.settings = settings or PipelineSettings()
        # (vendor_id, external_id) -> [lock, holders]; entries live only while held or awaited
        self._key_locks: Dict[tuple, list] = {}
        self._key_locks_guard = threading.Lock()

    @contextmanager
    def _key_lock(self, vendor_id: str, external_id: str) -> Iterator[None]:
        key = (vendor_id, external_id)
        with self._key_locks_guard:
            entry = self._key_locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._key_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[key]

    # --- run lifecycle -----------------------------------------------------

    def _save(self, run: SyncRun) -> None:
        try:
            self.store.save_run(run)
        except Exception as e:  # run bookkeeping must not abort the sync
            logger.error("Could not save sync run %s vendor=%s: %s", run.id, run.vendor_id, e)

    def begin_run(self, vendor_id: str) -> SyncRun:
        run = SyncRun(id=uuid.uuid4().hex, vendor_id=vendor_id)
        self._save(run)
        return run

    def start(self, run: SyncRun) -> None:
        run.transition(SyncRunState.IN_PROGRESS)
        run.started_at = datetime.now(timezone.utc)
        self._save(run)
        logger.info("Sync run %s started vendor=%s", run.id, run.vendor_id)

    def fail(self, run: SyncRun, message: str, cancelled: bool = False,
             results: Optional[List[ProductSyncResult]] = None) -> SyncRunSummary:
        """Move the run to FAILED and build its summary."""
        if run.state == SyncRunState.PENDING:
            self.start(run)
        run.transition(SyncRunState.FAILED)
        run.completed_at = datetime.now(timezone.utc)
        run.message = message
        self._save(run)
        logger.warning("Sync run %s failed vendor=%s: %s", run.id, run.vendor_id, message)

        results = results or []
        return SyncRunSummary(
            success=False,
            total_products=run.total_items,
            created=sum(1 for r in results if r.status == "created"),
            updated=sum(1 for r in results if r.status == "updated"),
            errors=sum(1 for r in results if r.status == "error"),
            synced_at=run.completed_at,
            message=message,
            run_id=run.id,
            state=run.state,
            cancelled=cancelled,
            results=results,
        )

    # --- per product -------------------------------------------------------

    def sync_product(self, vendor_id: str, product: ExtractedProduct) -> ProductSyncResult:
        """
        Create or update one product. Never raises.

        Writes for the same (vendor_id, external_id) are serialized.
        """
        fields = record_fields(product)
        try:
            with self._key_lock(vendor_id, product.external_id):
                existing = self.store.find_by_external_id(vendor_id, product.external_id)
                if existing is not None:
                    record = self.store.update(existing.id, fields)
                    status = "updated"
                else:
                    record = self.store.create(vendor_id, product.external_id, fields)
                    status = "created"
        except Exception as e:  # any store failure counts as a product error
            logger.error("Store write failed vendor=%s external_id=%s: %s: %s",
                         vendor_id, product.external_id, type(e).__name__, e)
            return ProductSyncResult(external_id=product.external_id, status="error",
                                     message=f"{type(e).__name__}: {e}")

        if product.missing_fields:
            logger.info("Synced with missing fields vendor=%s external_id=%s missing=%s",
                        vendor_id, product.external_id, product.missing_fields)
        return ProductSyncResult(external_id=product.external_id, status=status, record_id=record.id)

    # --- batch -------------------------------------------------------------

    def sync_products(
        self,
        run: SyncRun,
        products: List[ExtractedProduct],
        cancel_token: Optional[CancellationToken] = None,
    ) -> SyncRunSummary:
        """
        Reconcile a batch and finish the run.

        Args:
            run: Run in PENDING or IN_PROGRESS state
            products: Deduplicated, scored products
            cancel_token: Checked before each product, in every worker

        Returns:
            SyncRunSummary (COMPLETED unless cancelled)
        """
        if run.state == SyncRunState.PENDING:
            self.start(run)
        run.total_items = len(products)
        self._save(run)

        if self.settings.sync_workers > 1:
            results, cancelled = self._sync_parallel(run.vendor_id, products, cancel_token)
        else:
            results, cancelled = self._sync_serial(run.vendor_id, products, cancel_token)

        run.processed_items = len(results)
        run.error_count = sum(1 for r in results if r.status == "error")
        succeeded = run.processed_items - run.error_count

        if succeeded > 0:
            try:
                self.store.set_vendor_last_synced(run.vendor_id, datetime.now(timezone.utc))
            except Exception as e:  # timestamp failure must not undo the synced products
                logger.error("Could not update last-synced time vendor=%s: %s", run.vendor_id, e)

        if cancelled:
            return self.fail(
                run,
                f"Sync cancelled after {run.processed_items} of {run.total_items} products",
                cancelled=True,
                results=results,
            )

        run.transition(SyncRunState.COMPLETED)
        run.completed_at = datetime.now(timezone.utc)

        created = sum(1 for r in results if r.status == "created")
        updated = sum(1 for r in results if r.status == "updated")
        run.message = (
            f"Synced {run.total_items} products: {created} created, "
            f"{updated} updated, {run.error_count} errors"
        )
        self._save(run)
        logger.info("Sync run %s completed vendor=%s: %s", run.id, run.vendor_id, run.message)

        return SyncRunSummary(
            success=True,
            total_products=run.total_items,
            created=created,
            updated=updated,
            errors=run.error_count,
            synced_at=run.completed_at,
            message=run.message,
            run_id=run.id,
            state=run.state,
            results=results,
        )

    def _sync_serial(self, vendor_id: str, products: List[ExtractedProduct],
                     cancel_token: Optional[CancellationToken]):
        results = []
        for i, product in enumerate(products, 1):
            if cancel_token is not None and cancel_token.is_cancelled:
                return results, True
            logger.debug("[%d/%d] Syncing vendor=%s external_id=%s", i, len(products), vendor_id, product.external_id)
            results.append(self.sync_product(vendor_id, product))
        return results, False

    def _sync_parallel(self, vendor_id: str, products: List[ExtractedProduct],
                       cancel_token: Optional[CancellationToken]):
        def work(product: ExtractedProduct) -> Optional[ProductSyncResult]:
            # Queued products are skipped once the token is set
            if cancel_token is not None and cancel_token.is_cancelled:
                return None
            return self.sync_product(vendor_id, product)

        with ThreadPoolExecutor(max_workers=self.settings.sync_workers,
                                thread_name_prefix=f"sync-{vendor_id}") as executor:
            outcomes = list(executor.map(work, products))

        results = [r for r in outcomes if r is not None]
        return results, len(results) < len(products)
