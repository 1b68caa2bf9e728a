#!/usr/bin/env python3
"""
Vendor Sync Script

Syncs the catalogs of a list of vendors into an in-memory catalog store
and prints a per-vendor summary. Vendors are read from a YAML file:

    vendors:
      - id: boutique-lina
        website_url: https://boutique-lina.example.com/collections/all
        store_name: Boutique Lina
      - id: atelier-nord
        website_url: https://atelier-nord.example.com/shop/
        sync_enabled: false

Usage:
    python3 scripts/sync_vendors.py --vendors vendors.yaml
    python3 scripts/sync_vendors.py --vendors vendors.yaml --workers 4
    python3 scripts/sync_vendors.py --vendors vendors.yaml --static --output-json output/sync.json
"""

import argparse
import json
import logging
import os
import sys

import yaml
from dotenv import load_dotenv

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from storefront_sync.common import load_pipeline_settings
from storefront_sync.common.config_loader import apply_env_overrides, browser_from_env
from storefront_sync.common.log_config import setup_logging
from storefront_sync.models import Vendor
from storefront_sync.sync import InMemoryCatalogStore, SyncService

logger = logging.getLogger(__name__)


def load_vendors(path: str) -> list:
    """
    Read vendors from a YAML file.

    Entries without an id or website_url are skipped with a warning.
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    vendors = []
    for entry in data.get('vendors', []):
        if not entry.get('id') or not entry.get('website_url'):
            logger.warning("Skipping vendor entry without id/website_url: %s", entry)
            continue
        vendors.append(Vendor(
            id=str(entry['id']),
            website_url=entry['website_url'],
            store_name=entry.get('store_name', ''),
            sync_enabled=bool(entry.get('sync_enabled', True)),
        ))
    return vendors


def print_summary(overview: dict, store: InMemoryCatalogStore):
    print("\n" + "=" * 60)
    print("SYNC SUMMARY")
    print("=" * 60)
    print(f"Vendors:    {overview['total_vendors']}")
    print(f"Successful: {overview['successful_syncs']}")
    print(f"Failed:     {overview['failed_syncs']}")

    for vendor_id, summary in overview['results'].items():
        status = "OK" if summary.success else "FAILED"
        print(f"\n  [{status:6}] {vendor_id}")
        print(f"           {summary.message}")
        if summary.success:
            records = store.records_for(vendor_id)
            print(f"           {len(records)} record(s) in store")


def main():
    parser = argparse.ArgumentParser(
        description="Sync vendor storefront catalogs"
    )
    parser.add_argument(
        "--vendors",
        required=True,
        help="YAML file listing the vendors to sync"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of vendors synced in parallel (default: from config)"
    )
    parser.add_argument(
        "--static",
        action="store_true",
        help="Fetch raw HTML over HTTP instead of rendering in a browser"
    )
    parser.add_argument(
        "--output-json",
        help="Save the per-vendor summaries as JSON to this path"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show warnings and errors"
    )

    args = parser.parse_args()

    load_dotenv()
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    if not os.path.exists(args.vendors):
        print(f"Error: Vendors file not found: {args.vendors}")
        sys.exit(1)

    vendors = load_vendors(args.vendors)
    if not vendors:
        print("Error: No vendors to sync")
        sys.exit(1)

    settings = apply_env_overrides(load_pipeline_settings())
    if args.workers:
        settings.max_workers = args.workers

    store = InMemoryCatalogStore(vendors)

    print("=" * 60)
    print("VENDOR SYNC")
    print("=" * 60)
    print(f"Vendors file: {args.vendors}")
    print(f"Vendors:      {len(vendors)} ({sum(1 for v in vendors if v.sync_enabled)} enabled)")
    print(f"Workers:      {settings.max_workers}")
    print(f"Session:      {'static HTTP' if args.static else browser_from_env()}")
    print("=" * 60)

    with SyncService(
        store,
        settings,
        session_kind="static" if args.static else "playwright",
        browser_name=browser_from_env(),
    ) as service:
        overview = service.sync_all_vendors()

    print_summary(overview, store)

    if args.output_json:
        output_dir = os.path.dirname(args.output_json)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        output_data = {
            "total_vendors": overview['total_vendors'],
            "successful_syncs": overview['successful_syncs'],
            "failed_syncs": overview['failed_syncs'],
            "results": {vendor_id: summary.to_dict() for vendor_id, summary in overview['results'].items()},
        }
        with open(args.output_json, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
        print(f"\nResults saved to: {args.output_json}")

    sys.exit(0 if overview['failed_syncs'] == 0 else 1)


if __name__ == "__main__":
    main()
