"""Tests for storefront_sync/sync/service.py"""

import pytest

from storefront_sync.common.cancellation import CancellationToken
from storefront_sync.errors import SessionLaunchFailure, VendorNotFound
from storefront_sync.models import SyncRunState, Vendor
from storefront_sync.sync.service import SyncService


@pytest.fixture
def opened_sessions():
    return []


@pytest.fixture
def session_factory(make_session, site_pages, opened_sessions):
    """Fresh fake session per sync, remembered so tests can check it was closed."""
    def _factory():
        session = make_session(site_pages)
        opened_sessions.append(session)
        return session
    return _factory


@pytest.fixture
def service(store, settings, selectors, session_factory):
    with SyncService(store, settings, selectors, session_factory=session_factory) as svc:
        yield svc


class TestStartSync:
    def test_happy_path(self, service, store, vendor, opened_sessions):
        summary = service.start_sync(vendor.id)

        assert summary.success is True
        assert summary.state == SyncRunState.COMPLETED
        assert (summary.total_products, summary.created, summary.updated, summary.errors) == (2, 2, 0, 0)
        assert summary.message == "Synced 2 products: 2 created, 0 updated, 0 errors"
        assert store.get_vendor(vendor.id).last_synced_at is not None
        assert {r.external_id for r in store.records_for(vendor.id)} == {"7001", "7002"}
        assert all(s.closed for s in opened_sessions)

    def test_second_run_updates(self, service, vendor):
        service.start_sync(vendor.id)
        summary = service.start_sync(vendor.id)
        assert (summary.created, summary.updated) == (0, 2)

    def test_enriched_fields_are_stored(self, service, store, vendor):
        service.start_sync(vendor.id)
        robe = store.find_by_external_id(vendor.id, "7001")
        assert robe.description == "Robe en lin lavé, coupe ample, poches italiennes."
        assert robe.brand == "Atelier Lina"
        assert '"color": "Rouge"' in robe.variants

    def test_zero_products(self, service, store):
        store.add_vendor(Vendor(id="vendor-9", website_url="https://vide.example.com/"))
        summary = service.start_sync("vendor-9")

        assert summary.success is False
        assert summary.state == SyncRunState.FAILED
        assert summary.message == "No products found on https://vide.example.com/"
        assert store.get_vendor("vendor-9").last_synced_at is None

    def test_unknown_vendor(self, service):
        summary = service.start_sync("nope")
        assert summary.success is False
        assert summary.message == "Vendor nope not found"
        assert summary.state is None

    def test_disabled_vendor(self, service, store, opened_sessions):
        store.add_vendor(Vendor(id="vendor-off", website_url="https://a.example.com", sync_enabled=False))
        summary = service.start_sync("vendor-off")
        assert summary.success is False
        assert "disabled" in summary.message
        assert opened_sessions == []

    def test_vendor_without_url(self, service, store):
        store.add_vendor(Vendor(id="vendor-nourl", website_url=""))
        assert service.start_sync("vendor-nourl").success is False

    def test_session_launch_failure(self, store, settings, selectors, vendor):
        def failing_factory():
            raise SessionLaunchFailure("chromium not installed")

        with SyncService(store, settings, selectors, session_factory=failing_factory) as service:
            summary = service.start_sync(vendor.id)

        assert summary.success is False
        assert summary.state == SyncRunState.FAILED
        assert "chromium not installed" in summary.message
        assert store.get_vendor(vendor.id).last_synced_at is None

    def test_concurrent_request_rejected(self, store, settings, selectors, vendor, make_session, site_pages):
        nested = []

        with SyncService(store, settings, selectors) as service:
            def factory():
                nested.append(service.start_sync(vendor.id))
                return make_session(site_pages)

            service.session_factory = factory
            summary = service.start_sync(vendor.id)

        assert summary.success is True
        assert nested[0].success is False
        assert "already in progress" in nested[0].message

    def test_vendor_released_after_run(self, service, vendor):
        service.start_sync(vendor.id)
        assert service.start_sync(vendor.id).success is True

    def test_cancelled_before_sync(self, service, store, vendor):
        token = CancellationToken()
        token.cancel()
        summary = service.start_sync(vendor.id, cancel_token=token)

        assert summary.success is False
        assert summary.cancelled is True
        assert store.records_for(vendor.id) == []


class TestSyncAllVendors:
    def test_overview(self, service, store):
        store.add_vendor(Vendor(id="vendor-2", website_url="https://atelier-nord.example.com/boutique/"))
        store.add_vendor(Vendor(id="vendor-9", website_url="https://vide.example.com/"))
        store.add_vendor(Vendor(id="vendor-off", website_url="https://a.example.com", sync_enabled=False))

        overview = service.sync_all_vendors()

        assert overview["total_vendors"] == 3
        assert overview["successful_syncs"] == 2
        assert overview["failed_syncs"] == 1
        assert overview["results"]["vendor-9"].success is False
        assert overview["results"]["vendor-2"].created == 3

    def test_submit_sync(self, service, vendor):
        future = service.submit_sync(vendor.id)
        assert future.result().success is True


class TestSyncStatus:
    def test_idle_before_first_run(self, service, vendor):
        status = service.sync_status(vendor.id)
        assert status["status"] == "idle"
        assert status["run_id"] == ""
        assert status["product_count"] == 0
        assert status["last_synced_at"] is None

    def test_after_completed_run(self, service, store, vendor):
        summary = service.start_sync(vendor.id)
        status = service.sync_status(vendor.id)

        assert status["status"] == "COMPLETED"
        assert status["run_id"] == summary.run_id
        assert (status["total_items"], status["processed_items"], status["error_count"]) == (2, 2, 0)
        assert status["product_count"] == 2
        assert status["last_synced_at"] == store.get_vendor(vendor.id).last_synced_at

    def test_in_progress_run_is_visible(self, store, settings, selectors, vendor, make_session, site_pages):
        seen = []

        with SyncService(store, settings, selectors) as service:
            def factory():
                seen.append(service.sync_status(vendor.id))
                return make_session(site_pages)

            service.session_factory = factory
            summary = service.start_sync(vendor.id)

        assert seen[0]["status"] == "IN_PROGRESS"
        assert seen[0]["run_id"] == summary.run_id
        assert seen[0]["completed_at"] is None

    def test_failed_run(self, service, store):
        store.add_vendor(Vendor(id="vendor-9", website_url="https://vide.example.com/"))
        service.start_sync("vendor-9")
        status = service.sync_status("vendor-9")
        assert status["status"] == "FAILED"
        assert status["message"] == "No products found on https://vide.example.com/"

    def test_unknown_vendor(self, service):
        with pytest.raises(VendorNotFound):
            service.sync_status("nope")
