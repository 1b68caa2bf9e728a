"""
Site Classifier

Decides which commerce platform a storefront runs on. Checks run in strict
priority and the first match wins:

1. URL heuristics (hosting domains, configured overrides) - confidence 1.0
2. In-page global objects                                  - confidence 0.9
3. Markup signatures (script/link URLs, body classes,
   generator meta)                                         - confidence 0.7
4. Generic fallback                                        - confidence 0.0

Platforms are checked in order shopify, woocommerce, magento, prestashop
within each step. Classification is deterministic and side-effect free.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..errors import ClassificationAmbiguous
from ..models import Platform, SiteProfile

logger = logging.getLogger(__name__)

PLATFORM_ORDER = (
    Platform.SHOPIFY,
    Platform.WOOCOMMERCE,
    Platform.MAGENTO,
    Platform.PRESTASHOP,
)

# Hosting domains that identify the platform without loading the page
HOSTING_DOMAINS = {
    Platform.SHOPIFY: ("myshopify.com", "shopify.com"),
}

# Keys of the globals dict captured by the browser session
GLOBAL_KEYS = {
    Platform.SHOPIFY: "shopify",
    Platform.WOOCOMMERCE: "woocommerce",
    Platform.MAGENTO: "mage",
    Platform.PRESTASHOP: "prestashop",
}

# Substrings looked for in <script src> and <link href> URLs
ASSET_MARKERS = {
    Platform.SHOPIFY: ("cdn.shopify.com", "shopify"),
    Platform.WOOCOMMERCE: ("woocommerce", "wc-blocks"),
    Platform.MAGENTO: ("mage/", "magento"),
    Platform.PRESTASHOP: ("prestashop", "/themes/classic/"),
}

# Body classes; a class counts when it contains the marker
BODY_CLASS_MARKERS = {
    Platform.SHOPIFY: ("template-product", "template-collection"),
    Platform.WOOCOMMERCE: ("woocommerce",),
    Platform.MAGENTO: ("magento", "catalog-product-view", "catalog-category-view"),
    Platform.PRESTASHOP: ("prestashop",),
}

GENERATOR_MARKERS = {
    Platform.SHOPIFY: "shopify",
    Platform.WOOCOMMERCE: "woocommerce",
    Platform.MAGENTO: "magento",
    Platform.PRESTASHOP: "prestashop",
}


class SiteClassifier:
    """
    Classifies a page snapshot into a SiteProfile.

    Usage:
        classifier = SiteClassifier(url_overrides={"shop.example.com": "shopify"})
        profile = classifier.classify(snapshot.url, snapshot.soup, snapshot.globals)
    """

    def __init__(self, url_overrides: Optional[Dict[str, str]] = None):
        self.url_overrides = {
            fragment.lower(): Platform(platform)
            for fragment, platform in (url_overrides or {}).items()
        }

    def classify(self, url: str, soup: BeautifulSoup, page_globals: Optional[Dict] = None) -> SiteProfile:
        """
        Classify a loaded page.

        Args:
            url: Page URL (after redirects)
            soup: Parsed page HTML
            page_globals: Platform globals captured from the page

        Returns:
            SiteProfile with platform, confidence and matched signals
        """
        match = self.classify_url(url)
        if match:
            return self._profile(url, *match, confidence=1.0)

        match = self.check_globals(page_globals or {})
        if match:
            return self._profile(url, *match, confidence=0.9)

        match = self.check_markup(soup)
        if match:
            return self._profile(url, *match, confidence=0.7)

        logger.info("%s: %s", url, ClassificationAmbiguous("no platform signature matched, using generic"))
        return SiteProfile(platform=Platform.GENERIC, confidence=0.0, signals=())

    def _profile(self, url: str, platform: Platform, signals: List[str], confidence: float) -> SiteProfile:
        logger.info("Classified %s as %s (confidence=%.1f, signals=%s)", url, platform.value, confidence, signals)
        return SiteProfile(platform=platform, confidence=confidence, signals=tuple(signals))

    def classify_url(self, url: str) -> Optional[Tuple[Platform, List[str]]]:
        """URL-only check; no page evaluation."""
        host = (urlparse(url).hostname or "").lower()
        if not host:
            return None

        for fragment, platform in self.url_overrides.items():
            if fragment in host:
                return platform, [f"url-override:{fragment}"]

        for platform, domains in HOSTING_DOMAINS.items():
            for domain in domains:
                if host == domain or host.endswith("." + domain):
                    return platform, [f"host:{domain}"]

        return None

    def check_globals(self, page_globals: Dict) -> Optional[Tuple[Platform, List[str]]]:
        """Presence of platform global objects captured from the page."""
        for platform in PLATFORM_ORDER:
            key = GLOBAL_KEYS[platform]
            if page_globals.get(key):
                return platform, [f"global:{key}"]
        if page_globals.get("shopify_analytics_meta"):
            return Platform.SHOPIFY, ["global:ShopifyAnalytics.meta"]
        return None

    def check_markup(self, soup: BeautifulSoup) -> Optional[Tuple[Platform, List[str]]]:
        """Script/link URLs, body classes and the generator meta tag."""
        asset_urls = [
            (tag.get("src") or tag.get("href") or "").lower()
            for tag in soup.find_all(["script", "link"])
        ]
        body = soup.find("body")
        body_classes = [c.lower() for c in (body.get("class") or [])] if body is not None else []
        generator = soup.find("meta", attrs={"name": "generator"})
        generator_text = (generator.get("content") or "").lower() if generator is not None else ""

        for platform in PLATFORM_ORDER:
            signals = []

            for marker in ASSET_MARKERS[platform]:
                if any(marker in url for url in asset_urls):
                    signals.append(f"asset:{marker}")
                    break

            for marker in BODY_CLASS_MARKERS[platform]:
                if any(marker in cls for cls in body_classes):
                    signals.append(f"body-class:{marker}")
                    break

            if GENERATOR_MARKERS[platform] in generator_text:
                signals.append(f"generator:{generator_text}")

            if platform == Platform.WOOCOMMERCE and soup.select_one(".woocommerce") is not None:
                signals.append("markup:.woocommerce")

            if signals:
                return platform, signals

        return None
