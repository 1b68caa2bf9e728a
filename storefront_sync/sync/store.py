"""
Catalog Store

Interface to the persistent product catalog, plus a thread-safe in-memory
implementation used by tests and local runs.

Records are keyed by (vendor_id, external_id). The store owns ids and
timestamps; callers pass plain field dictionaries.

Sync runs are saved on every state change so a run in progress can be
reported while it is still going.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..errors import StoreWriteError
from ..models import CatalogRecord, SyncRun, Vendor


class CatalogStore(ABC):
    """Operations the synchronizer needs from a catalog backend."""

    @abstractmethod
    def find_by_external_id(self, vendor_id: str, external_id: str) -> Optional[CatalogRecord]:
        """Existing record for the key, or None."""

    @abstractmethod
    def create(self, vendor_id: str, external_id: str, fields: Dict[str, Any]) -> CatalogRecord:
        """Insert a new record. Raises StoreWriteError on failure."""

    @abstractmethod
    def update(self, record_id: str, fields: Dict[str, Any]) -> CatalogRecord:
        """Overwrite the given fields of a record. Raises StoreWriteError on failure."""

    @abstractmethod
    def set_vendor_last_synced(self, vendor_id: str, when: datetime) -> None:
        """Record the time of the vendor's last successful sync."""

    @abstractmethod
    def get_vendor(self, vendor_id: str) -> Optional[Vendor]:
        """Vendor by id, or None."""

    @abstractmethod
    def list_vendors(self, sync_enabled_only: bool = True) -> List[Vendor]:
        """All vendors, optionally only those with sync enabled."""

    @abstractmethod
    def count_records(self, vendor_id: str) -> int:
        """Number of catalog records held for a vendor."""

    @abstractmethod
    def save_run(self, run: SyncRun) -> None:
        """Insert or replace a sync run, keyed by its id."""

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[SyncRun]:
        """Sync run by id, or None."""

    @abstractmethod
    def latest_run(self, vendor_id: str) -> Optional[SyncRun]:
        """Most recently saved run of a vendor, or None."""


class InMemoryCatalogStore(CatalogStore):
    """
    Dictionary-backed catalog store.

    Safe for concurrent use; returned objects are copies, so callers cannot
    mutate stored state by accident.
    """

    def __init__(self, vendors: Optional[List[Vendor]] = None):
        self._lock = threading.RLock()
        self._records: Dict[str, CatalogRecord] = {}
        self._index: Dict[Tuple[str, str], str] = {}
        self._vendors: Dict[str, Vendor] = {}
        self._runs: Dict[str, SyncRun] = {}
        self._latest_run: Dict[str, str] = {}
        for vendor in vendors or []:
            self.add_vendor(vendor)

    def add_vendor(self, vendor: Vendor) -> None:
        with self._lock:
            self._vendors[vendor.id] = dataclasses.replace(vendor)

    def find_by_external_id(self, vendor_id: str, external_id: str) -> Optional[CatalogRecord]:
        with self._lock:
            record_id = self._index.get((vendor_id, external_id))
            if record_id is None:
                return None
            return dataclasses.replace(self._records[record_id])

    def create(self, vendor_id: str, external_id: str, fields: Dict[str, Any]) -> CatalogRecord:
        now = datetime.now(timezone.utc)
        with self._lock:
            key = (vendor_id, external_id)
            if key in self._index:
                raise StoreWriteError(f"Record already exists for vendor={vendor_id} external_id={external_id}")
            try:
                record = CatalogRecord(
                    id=uuid.uuid4().hex,
                    vendor_id=vendor_id,
                    external_id=external_id,
                    created_at=now,
                    updated_at=now,
                    **fields,
                )
            except TypeError as e:
                raise StoreWriteError(f"Invalid record fields: {e}") from e
            self._records[record.id] = record
            self._index[key] = record.id
            return dataclasses.replace(record)

    def update(self, record_id: str, fields: Dict[str, Any]) -> CatalogRecord:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                raise StoreWriteError(f"No record with id {record_id}")
            try:
                updated = dataclasses.replace(record, updated_at=datetime.now(timezone.utc), **fields)
            except TypeError as e:
                raise StoreWriteError(f"Invalid record fields: {e}") from e
            self._records[record_id] = updated
            return dataclasses.replace(updated)

    def set_vendor_last_synced(self, vendor_id: str, when: datetime) -> None:
        with self._lock:
            vendor = self._vendors.get(vendor_id)
            if vendor is None:
                raise StoreWriteError(f"No vendor with id {vendor_id}")
            vendor.last_synced_at = when

    def get_vendor(self, vendor_id: str) -> Optional[Vendor]:
        with self._lock:
            vendor = self._vendors.get(vendor_id)
            return dataclasses.replace(vendor) if vendor is not None else None

    def list_vendors(self, sync_enabled_only: bool = True) -> List[Vendor]:
        with self._lock:
            return [
                dataclasses.replace(v) for v in self._vendors.values()
                if v.sync_enabled or not sync_enabled_only
            ]

    def records_for(self, vendor_id: str) -> List[CatalogRecord]:
        """All records of a vendor, in creation order."""
        with self._lock:
            return [dataclasses.replace(r) for r in self._records.values() if r.vendor_id == vendor_id]

    def count_records(self, vendor_id: str) -> int:
        with self._lock:
            return sum(1 for key in self._index if key[0] == vendor_id)

    def save_run(self, run: SyncRun) -> None:
        with self._lock:
            if run.id not in self._runs:
                self._latest_run[run.vendor_id] = run.id
            self._runs[run.id] = dataclasses.replace(run)

    def get_run(self, run_id: str) -> Optional[SyncRun]:
        with self._lock:
            run = self._runs.get(run_id)
            return dataclasses.replace(run) if run is not None else None

    def latest_run(self, vendor_id: str) -> Optional[SyncRun]:
        with self._lock:
            run_id = self._latest_run.get(vendor_id)
            return dataclasses.replace(self._runs[run_id]) if run_id is not None else None
