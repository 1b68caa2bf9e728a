"""
Sync Service

Entry point for running vendor syncs. Each vendor sync opens one browser
session, extracts the vendor's storefront, closes the session and
reconciles the products with the catalog store.

Syncs run on a fixed-size worker pool; extra requests queue. A vendor can
have only one sync in flight: a second request is answered with a failed
summary instead of starting a parallel run. Callers always get a
SyncRunSummary back, never an exception.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from ..browser.session import BrowserSession, open_session
from ..common.cancellation import CancellationToken
from ..common.config_loader import PipelineSettings, load_pipeline_settings
from ..errors import SessionLaunchFailure, StorefrontSyncError, SyncAlreadyRunning, VendorNotFound
from ..extraction.pipeline import ExtractionPipeline
from ..models import SyncRunSummary
from .store import CatalogStore
from .synchronizer import CatalogSynchronizer

logger = logging.getLogger(__name__)


class SyncService:
    """
    Runs vendor syncs against a catalog store.

    Usage:
        with SyncService(store) as service:
            summary = service.start_sync("vendor-1")
            overview = service.sync_all_vendors()
    """

    def __init__(
        self,
        store: CatalogStore,
        settings: Optional[PipelineSettings] = None,
        selectors: Optional[Dict[str, Dict[str, List[str]]]] = None,
        session_factory: Optional[Callable[[], BrowserSession]] = None,
        session_kind: str = "playwright",
        browser_name: str = "chromium",
    ):
        self.store = store
        self.settings = settings if settings is not None else load_pipeline_settings()
        self.pipeline = ExtractionPipeline(self.settings, selectors)
        self.synchronizer = CatalogSynchronizer(store, self.settings)
        self.session_factory = session_factory or (
            lambda: open_session(self.settings, kind=session_kind, browser_name=browser_name)
        )
        self._executor = ThreadPoolExecutor(max_workers=self.settings.max_workers,
                                            thread_name_prefix="vendor-sync")
        self._active: set = set()
        self._active_lock = threading.Lock()

    def start_sync(self, vendor_id: str, cancel_token: Optional[CancellationToken] = None) -> SyncRunSummary:
        """
        Run one vendor sync in the calling thread.

        Args:
            vendor_id: Vendor to sync
            cancel_token: Optional cooperative cancellation

        Returns:
            SyncRunSummary (success=False for unknown/disabled vendors,
            a sync already in progress, session failures, zero products
            and cancellation)
        """
        vendor = self.store.get_vendor(vendor_id)
        if vendor is None:
            return self._rejected(VendorNotFound(f"Vendor {vendor_id} not found"))
        if not vendor.sync_enabled:
            return self._rejected(VendorNotFound(f"Sync is disabled for vendor {vendor_id}"))
        if not vendor.website_url:
            return self._rejected(VendorNotFound(f"Vendor {vendor_id} has no website URL"))

        with self._active_lock:
            if vendor_id in self._active:
                return self._rejected(SyncAlreadyRunning(f"A sync for vendor {vendor_id} is already in progress"))
            self._active.add(vendor_id)

        try:
            return self._run(vendor.id, vendor.website_url, cancel_token)
        finally:
            with self._active_lock:
                self._active.discard(vendor_id)

    def _rejected(self, error: StorefrontSyncError) -> SyncRunSummary:
        logger.warning("Sync rejected: %s", error)
        return SyncRunSummary(success=False, message=str(error))

    def _run(self, vendor_id: str, url: str, cancel_token: Optional[CancellationToken]) -> SyncRunSummary:
        run = self.synchronizer.begin_run(vendor_id)
        self.synchronizer.start(run)

        try:
            with self.session_factory() as session:
                extraction = self.pipeline.run(session, url, vendor_id, cancel_token)
        except SessionLaunchFailure as e:
            return self.synchronizer.fail(run, f"Browser session could not be started: {e}")
        except StorefrontSyncError as e:
            return self.synchronizer.fail(run, f"Extraction failed: {type(e).__name__}: {e}")
        except Exception as e:  # run boundary: report, never raise
            logger.exception("Unexpected error while extracting vendor=%s", vendor_id)
            return self.synchronizer.fail(run, f"Unexpected error: {type(e).__name__}: {e}")

        if not extraction.products:
            return self.synchronizer.fail(run, f"No products found on {url}")

        return self.synchronizer.sync_products(run, extraction.products, cancel_token)

    def submit_sync(self, vendor_id: str, cancel_token: Optional[CancellationToken] = None) -> "Future[SyncRunSummary]":
        """Queue a vendor sync on the worker pool."""
        return self._executor.submit(self.start_sync, vendor_id, cancel_token)

    def sync_status(self, vendor_id: str) -> Dict[str, Any]:
        """
        Report the vendor's latest sync run.

        Args:
            vendor_id: Vendor to report on

        Returns:
            Dict with status ('idle' when the vendor never ran, otherwise the
            latest run's state), run id, progress counters, last_synced_at and
            the number of catalog records held for the vendor

        Raises:
            VendorNotFound: If the vendor does not exist
        """
        vendor = self.store.get_vendor(vendor_id)
        if vendor is None:
            raise VendorNotFound(f"Vendor {vendor_id} not found")

        run = self.store.latest_run(vendor_id)
        status: Dict[str, Any] = {
            "vendor_id": vendor_id,
            "status": run.state.value if run else "idle",
            "run_id": run.id if run else "",
            "total_items": run.total_items if run else 0,
            "processed_items": run.processed_items if run else 0,
            "error_count": run.error_count if run else 0,
            "started_at": run.started_at if run else None,
            "completed_at": run.completed_at if run else None,
            "message": run.message if run else "",
            "last_synced_at": vendor.last_synced_at,
            "product_count": self.store.count_records(vendor_id),
        }
        return status

    def sync_all_vendors(self) -> Dict[str, Any]:
        """
        Sync every vendor with sync enabled, in parallel up to max_workers.

        Returns:
            {'total_vendors', 'successful_syncs', 'failed_syncs',
             'results': {vendor_id: SyncRunSummary}}
        """
        vendors = self.store.list_vendors(sync_enabled_only=True)
        logger.info("Syncing %d vendor(s)", len(vendors))

        futures = {vendor.id: self.submit_sync(vendor.id) for vendor in vendors}
        results = {vendor_id: future.result() for vendor_id, future in futures.items()}

        successful = sum(1 for summary in results.values() if summary.success)
        overview = {
            "total_vendors": len(vendors),
            "successful_syncs": successful,
            "failed_syncs": len(vendors) - successful,
            "results": results,
        }
        logger.info("All vendors synced: %d ok, %d failed", successful, len(vendors) - successful)
        return overview

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
