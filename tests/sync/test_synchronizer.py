"""Tests for storefront_sync/sync/synchronizer.py"""

import json
from dataclasses import replace
from decimal import Decimal

import pytest

from storefront_sync.common.cancellation import CancellationToken
from storefront_sync.errors import InvalidStateTransition, StoreWriteError
from storefront_sync.models import ExtractedProduct, SyncRunState
from storefront_sync.sync.store import InMemoryCatalogStore
from storefront_sync.sync.synchronizer import CatalogSynchronizer, record_fields


def make_products(count=3):
    return [
        ExtractedProduct(external_id=f"p-{i}", name=f"Produit {i}", price=Decimal("10.00") + i)
        for i in range(1, count + 1)
    ]


class CancellingStore(InMemoryCatalogStore):
    """Cancels the token once the first record is written."""

    def __init__(self, vendors, token):
        super().__init__(vendors)
        self.token = token

    def create(self, vendor_id, external_id, fields):
        record = super().create(vendor_id, external_id, fields)
        self.token.cancel()
        return record


class TestRecordFields:
    def test_always_written(self, minimal_product):
        fields = record_fields(minimal_product)
        assert fields["name"] == "Robe Lin"
        assert fields["price"] == Decimal("49.90")
        assert fields["stock"] == 0
        assert "sku" not in fields
        assert "variants" not in fields

    def test_optional_fields(self, full_product):
        full_product.rebuild_variants()
        fields = record_fields(full_product)
        assert fields["sku"] == "CL-01"
        assert fields["stock"] == 12
        variants = json.loads(fields["variants"])
        assert len(variants) == 6
        assert variants[0] == {"id": "p-2-0-0", "color": "Blanc", "size": "S", "price": "45.00"}


class TestSyncProducts:
    def test_creates_then_updates(self, store, vendor):
        synchronizer = CatalogSynchronizer(store)
        products = make_products()

        first = synchronizer.sync_products(synchronizer.begin_run(vendor.id), products)
        assert (first.created, first.updated, first.errors) == (3, 0, 0)

        products[0].price = Decimal("9.00")
        second = synchronizer.sync_products(synchronizer.begin_run(vendor.id), products)
        assert (second.created, second.updated, second.errors) == (0, 3, 0)
        assert store.find_by_external_id(vendor.id, "p-1").price == Decimal("9.00")
        assert len(store.records_for(vendor.id)) == 3

    def test_store_failure_counts_as_error(self, make_failing_store, vendor):
        store = make_failing_store({"p-2"})
        summary = CatalogSynchronizer(store).sync_products(
            CatalogSynchronizer(store).begin_run(vendor.id), make_products(),
        )

        assert summary.success is True
        assert summary.state == SyncRunState.COMPLETED
        assert (summary.total_products, summary.created, summary.errors) == (3, 2, 1)
        assert summary.message == "Synced 3 products: 2 created, 0 updated, 1 errors"
        assert [r.status for r in summary.results] == ["created", "error", "created"]
        assert "StoreWriteError" in summary.results[1].message
        assert store.last_synced_calls == 1

    def test_all_failed_keeps_last_synced(self, make_failing_store, vendor):
        store = make_failing_store({"p-1", "p-2", "p-3"})
        synchronizer = CatalogSynchronizer(store)
        summary = synchronizer.sync_products(synchronizer.begin_run(vendor.id), make_products())

        assert summary.state == SyncRunState.COMPLETED
        assert summary.errors == 3
        assert store.last_synced_calls == 0
        assert store.get_vendor(vendor.id).last_synced_at is None

    def test_cancelled_mid_run(self, vendor):
        token = CancellationToken()
        store = CancellingStore([vendor], token)
        synchronizer = CatalogSynchronizer(store)
        run = synchronizer.begin_run(vendor.id)
        summary = synchronizer.sync_products(run, make_products(), cancel_token=token)

        assert summary.success is False
        assert summary.cancelled is True
        assert summary.state == SyncRunState.FAILED
        assert summary.created == 1
        assert run.processed_items == 1
        assert len(store.records_for(vendor.id)) == 1
        assert store.get_vendor(vendor.id).last_synced_at is not None

    def test_parallel_workers(self, store, vendor, settings):
        synchronizer = CatalogSynchronizer(store, replace(settings, sync_workers=4))
        summary = synchronizer.sync_products(synchronizer.begin_run(vendor.id), make_products(8))
        assert summary.created == 8
        assert len(store.records_for(vendor.id)) == 8


class TestRunLifecycle:
    def test_fail_from_pending(self, store, vendor):
        synchronizer = CatalogSynchronizer(store)
        run = synchronizer.begin_run(vendor.id)
        summary = synchronizer.fail(run, "No products found on https://s.example.com")

        assert run.state == SyncRunState.FAILED
        assert run.started_at is not None
        assert summary.success is False
        assert summary.run_id == run.id

    def test_completed_run_cannot_fail(self, store, vendor):
        synchronizer = CatalogSynchronizer(store)
        run = synchronizer.begin_run(vendor.id)
        synchronizer.sync_products(run, make_products(1))
        with pytest.raises(InvalidStateTransition):
            synchronizer.fail(run, "too late")

    def test_cancelled_mid_run_parallel(self, vendor, settings):
        token = CancellationToken()
        store = CancellingStore([vendor], token)
        synchronizer = CatalogSynchronizer(store, replace(settings, sync_workers=2))
        summary = synchronizer.sync_products(synchronizer.begin_run(vendor.id), make_products(50), cancel_token=token)

        assert summary.cancelled is True
        assert summary.success is False
        assert summary.state == SyncRunState.FAILED
        assert 1 <= summary.created < 50
        assert len(store.records_for(vendor.id)) == summary.created

    def test_parallel_without_cancel_is_not_cancelled(self, store, vendor, settings):
        synchronizer = CatalogSynchronizer(store, replace(settings, sync_workers=3))
        summary = synchronizer.sync_products(
            synchronizer.begin_run(vendor.id), make_products(6), cancel_token=CancellationToken(),
        )
        assert summary.cancelled is False
        assert summary.state == SyncRunState.COMPLETED


class TestKeyLocks:
    def test_released_after_each_run(self, store, vendor, settings):
        synchronizer = CatalogSynchronizer(store, replace(settings, sync_workers=4))
        for _ in range(3):
            synchronizer.sync_products(synchronizer.begin_run(vendor.id), make_products(20))
        assert synchronizer._key_locks == {}

    def test_released_after_store_error(self, make_failing_store, vendor):
        synchronizer = CatalogSynchronizer(make_failing_store({"p-1"}))
        synchronizer.sync_product(vendor.id, make_products(1)[0])
        assert synchronizer._key_locks == {}


class TestRunPersistence:
    def test_run_saved_through_lifecycle(self, store, vendor):
        synchronizer = CatalogSynchronizer(store)
        run = synchronizer.begin_run(vendor.id)
        assert store.get_run(run.id).state == SyncRunState.PENDING

        synchronizer.start(run)
        assert store.latest_run(vendor.id).state == SyncRunState.IN_PROGRESS

        summary = synchronizer.sync_products(run, make_products(2))
        saved = store.get_run(summary.run_id)
        assert saved.state == SyncRunState.COMPLETED
        assert (saved.total_items, saved.processed_items, saved.error_count) == (2, 2, 0)
        assert saved.message == summary.message

    def test_failed_run_saved(self, store, vendor):
        synchronizer = CatalogSynchronizer(store)
        run = synchronizer.begin_run(vendor.id)
        synchronizer.fail(run, "No products found on https://s.example.com")
        saved = store.latest_run(vendor.id)
        assert saved.state == SyncRunState.FAILED
        assert saved.completed_at is not None

    def test_save_failure_does_not_abort_sync(self, vendor):
        class NoRunStore(InMemoryCatalogStore):
            def save_run(self, run):
                raise StoreWriteError("runs table missing")

        store = NoRunStore([vendor])
        synchronizer = CatalogSynchronizer(store)
        summary = synchronizer.sync_products(synchronizer.begin_run(vendor.id), make_products(2))
        assert summary.success is True
        assert summary.created == 2
