"""
Extraction Pipeline

Runs the extraction half of a sync for one storefront URL:

    load page -> classify -> prepare page -> dispatch -> deduplicate
    -> enrich (listing pages only) -> score

Navigation timeouts degrade: whatever the page shows at that point is
extracted. Only session failures propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from ..browser.session import prepare_page
from ..common.cancellation import CancellationToken
from ..common.config_loader import (
    PipelineSettings,
    get_selector_list,
    load_pipeline_settings,
    load_selectors,
)
from ..errors import NavigationTimeout
from ..models import ExtractedProduct, SiteProfile
from .classifier import SiteClassifier
from .deduplicator import Deduplicator
from .dispatcher import ExtractionDispatcher
from .enrichment import EnrichmentPass
from .quality import QualityScorer, missing_data_stats

if TYPE_CHECKING:
    from ..browser.session import BrowserSession

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Products and audit data from one storefront page."""
    url: str
    profile: SiteProfile
    products: List[ExtractedProduct] = field(default_factory=list)
    tier: str = ""
    single_product: bool = False
    stats: Dict[str, int] = field(default_factory=dict)


class ExtractionPipeline:
    """
    Extraction for one storefront URL over an open session.

    Usage:
        pipeline = ExtractionPipeline()
        with open_session(pipeline.settings) as session:
            result = pipeline.run(session, "https://shop.example.com/collections/all")
    """

    def __init__(self, settings: Optional[PipelineSettings] = None,
                 selectors: Optional[Dict[str, Dict[str, List[str]]]] = None):
        self.settings = settings if settings is not None else load_pipeline_settings()
        self.selectors = selectors if selectors is not None else load_selectors()
        self.classifier = SiteClassifier(self.settings.platform_url_overrides)
        self.dispatcher = ExtractionDispatcher(self.settings, self.selectors)
        self.enrichment = EnrichmentPass(self.dispatcher, self.settings)
        self.deduplicator = Deduplicator()
        self.scorer = QualityScorer(self.settings)

    def load(self, session: BrowserSession, url: str) -> None:
        """Navigate and wait for the network to settle, degrading on timeouts."""
        try:
            session.navigate(url, wait_until="domcontentloaded")
        except NavigationTimeout as e:
            logger.warning("Continuing with partially loaded page: %s", e)
        try:
            session.wait_for_network_idle()
        except NavigationTimeout as e:
            logger.info("Network did not settle on %s: %s", url, e)

    def run(
        self,
        session: BrowserSession,
        url: str,
        vendor_id: str = "",
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExtractionResult:
        """
        Extract, deduplicate, enrich and score the products on `url`.

        Args:
            session: Open browser session
            url: Storefront page (home, collection or product page)
            vendor_id: Vendor id for log lines
            cancel_token: Checked between enrichment products

        Returns:
            ExtractionResult (possibly with no products)

        Raises:
            SessionError: If the session itself fails
        """
        self.load(session, url)
        snapshot = session.snapshot()
        profile = self.classifier.classify(snapshot.url or url, snapshot.soup, snapshot.globals)

        prepare_page(session, self.settings, get_selector_list(self.selectors, profile.platform.value, 'cookie_banner'))
        snapshot = session.snapshot()

        tier_result = self.dispatcher.dispatch(snapshot, profile)
        products = self.deduplicator.deduplicate(tier_result.products, vendor_id)

        if products and not tier_result.single_product:
            products = self.enrichment.run(session, products, profile, vendor_id, cancel_token)

        self.scorer.apply(products, vendor_id)
        stats = missing_data_stats(products)
        if products:
            logger.info(
                "Missing data vendor=%s: description=%d image=%d url=%d sku=%d brand=%d category=%d (of %d)",
                vendor_id, stats["without_description"], stats["without_image"], stats["without_url"],
                stats["without_sku"], stats["without_brand"], stats["without_category"], stats["total"],
            )

        return ExtractionResult(
            url=snapshot.url or url,
            profile=profile,
            products=products,
            tier=tier_result.tier,
            single_product=tier_result.single_product,
            stats=stats,
        )
