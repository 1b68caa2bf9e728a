#!/usr/bin/env python3
"""
Storefront Extraction

Extracts the products from one storefront page (home, collection or
product page) and prints a per-field report. The platform is detected
from the page.

Usage:
    python3 extract_site.py --url https://shop.example.com/collections/all
    python3 extract_site.py --url https://shop.example.com/products/robe --static
    python3 extract_site.py --url https://shop.example.com --output-json output/shop.json
"""

import argparse
import json
import os
import sys

from dotenv import load_dotenv

from storefront_sync.browser import open_session
from storefront_sync.common import load_pipeline_settings, setup_logging
from storefront_sync.common.config_loader import apply_env_overrides, browser_from_env
from storefront_sync.errors import SessionLaunchFailure, StorefrontSyncError
from storefront_sync.extraction.pipeline import ExtractionPipeline, ExtractionResult
from storefront_sync.sync.synchronizer import record_fields


def print_report(result: ExtractionResult, quality_threshold: int):
    """Print the extraction report."""

    print("\n" + "="*80)
    print("EXTRACTION REPORT")
    print("="*80)

    profile = result.profile
    print(f"\nURL: {result.url}")
    print(f"Platform: {profile.platform.value} (confidence {profile.confidence:.1f})")
    if profile.signals:
        print(f"Signals: {', '.join(profile.signals)}")
    print(f"Page: {'single product' if result.single_product else 'listing'}")
    print(f"Tier: {result.tier or 'none'}")
    print(f"Products: {len(result.products)}")

    for idx, product in enumerate(result.products, 1):
        print("\n" + "-"*80)
        name = product.name if len(product.name) <= 70 else f"{product.name[:70]}..."
        print(f"{idx}. {name}")
        print("-"*80)

        fields = [
            ("External ID", product.external_id),
            ("Price", str(product.price)),
            ("SKU", product.sku),
            ("Brand", product.brand),
            ("Category", product.category),
            ("Product URL", product.product_url),
            ("Image", product.image_url),
            ("Description", f"{len(product.description)} characters" if product.description else ""),
            ("Colors", ", ".join(product.colors)),
            ("Sizes", ", ".join(product.sizes)),
        ]

        for label, value in fields:
            status = "OK" if value else "MISSING"
            print(f"  [{status:7}] {label:15} {value or 'MISSING'}")

        print(f"\n  Images: {len(product.image_urls)}  Variants: {len(product.variants)}")
        marker = "OK" if product.quality_score >= quality_threshold else "LOW"
        print(f"  Quality: {product.quality_score}/100 [{marker}]")

    if result.products:
        stats = result.stats
        print("\n" + "-"*80)
        print("MISSING DATA")
        print("-"*80)
        for key in ("without_description", "without_image", "without_url", "without_sku",
                    "without_brand", "without_category", "without_sizes"):
            label = key.replace("without_", "").title()
            print(f"  {label:15} {stats.get(key, 0)}/{stats.get('total', 0)}")

    print("\n" + "="*80)


def main():
    parser = argparse.ArgumentParser(
        description="Extract the products on a storefront page"
    )
    parser.add_argument(
        "--url",
        required=True,
        help="Storefront URL"
    )
    parser.add_argument(
        "--static",
        action="store_true",
        help="Fetch the raw HTML over HTTP instead of rendering in a browser"
    )
    parser.add_argument(
        "--output-json",
        help="Save the extracted products as JSON to this path"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only show warnings and errors"
    )

    args = parser.parse_args()

    load_dotenv()
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    settings = apply_env_overrides(load_pipeline_settings())
    pipeline = ExtractionPipeline(settings)

    print(f"Extracting from: {args.url}")

    try:
        with open_session(settings, kind="static" if args.static else "playwright",
                          browser_name=browser_from_env()) as session:
            result = pipeline.run(session, args.url)

        print_report(result, settings.quality_threshold)

        if args.output_json:
            output_data = {
                "url": result.url,
                "platform": result.profile.platform.value,
                "tier": result.tier,
                "products": [
                    {"externalId": product.external_id, **record_fields(product)}
                    for product in result.products
                ],
            }
            output_dir = os.path.dirname(args.output_json)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)
            with open(args.output_json, 'w', encoding='utf-8') as f:
                json.dump(output_data, f, indent=2, ensure_ascii=False, default=str)
            print(f"\nResults saved to: {args.output_json}")

        sys.exit(0 if result.products else 1)

    except SessionLaunchFailure as e:
        print(f"\nBrowser could not be started: {e}")
        sys.exit(2)
    except StorefrontSyncError as e:
        print(f"\nExtraction failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
