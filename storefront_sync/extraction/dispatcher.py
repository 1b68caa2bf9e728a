"""
Extraction Dispatcher

Routes a classified page to its platform strategy:
- shopify     -> ShopifyStrategy
- woocommerce -> WooCommerceStrategy
- magento     -> GenericStrategy with the 'magento' selector family first
- prestashop  -> GenericStrategy with the 'prestashop' selector family first
- generic     -> GenericStrategy

Every product leaving the dispatcher has a non-empty name and a positive
price (enforced where products are built).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List

from ..common.config_loader import PipelineSettings
from ..models import Platform, SiteProfile
from .strategies import GenericStrategy, PlatformStrategy, ShopifyStrategy, WooCommerceStrategy
from .tiers import TierResult

if TYPE_CHECKING:
    from ..browser.page import PageSnapshot

logger = logging.getLogger(__name__)


class ExtractionDispatcher:
    """
    Picks and runs the strategy for a SiteProfile.

    Usage:
        dispatcher = ExtractionDispatcher(settings, selectors)
        result = dispatcher.dispatch(snapshot, profile)
        for product in result.products:
            ...
    """

    STRATEGIES = {
        Platform.SHOPIFY: ShopifyStrategy,
        Platform.WOOCOMMERCE: WooCommerceStrategy,
    }

    def __init__(self, settings: PipelineSettings, selectors: Dict[str, Dict[str, List[str]]]):
        self.settings = settings
        self.selectors = selectors
        self._strategies: Dict[Platform, PlatformStrategy] = {}

    def strategy_for(self, profile: SiteProfile) -> PlatformStrategy:
        """Strategy instance for the profile's platform (created once, then reused)."""
        platform = profile.platform
        if platform not in self._strategies:
            strategy_class = self.STRATEGIES.get(platform, GenericStrategy)
            self._strategies[platform] = strategy_class(self.settings, self.selectors, family=platform.value)
        return self._strategies[platform]

    def dispatch(self, snapshot: PageSnapshot, profile: SiteProfile, single_product: bool = False) -> TierResult:
        """
        Extract products from a loaded page.

        Args:
            snapshot: Loaded page
            profile: Platform classification of the site
            single_product: Force detail-page extraction (enrichment)

        Returns:
            TierResult (NotFound when no tier produced anything)
        """
        strategy = self.strategy_for(profile)
        result = strategy.extract(snapshot, single_product=single_product)

        if result.found:
            logger.info("Extracted %d product(s) from %s via %s/%s",
                        len(result.products), snapshot.url, strategy.family, result.tier)
        else:
            logger.warning("No products found on %s (%s strategy, tried %s)",
                           snapshot.url, strategy.family, ", ".join(getattr(result, 'tried', ())))
        return result
