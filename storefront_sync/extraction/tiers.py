"""
Extraction Tiers

A strategy is an ordered list of tiers. Each tier returns a TierResult,
a tagged union of:

- StructuredData: platform-native embedded data (analytics globals, JSON-LD)
- ScriptJSON:     product-shaped objects in JSON script blocks
- DomHeuristic:   CSS selector heuristics over the rendered markup
- NotFound:       nothing usable

first_success() runs the tiers in order and returns the first result
that carries products. Results from different tiers are never merged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Type

from ..errors import ParseError
from ..models import ExtractedProduct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierResult:
    """Products found by one tier, and whether the page was a product page."""
    products: List[ExtractedProduct] = field(default_factory=list)
    single_product: bool = False

    tier = "base"

    @property
    def found(self) -> bool:
        return bool(self.products)


@dataclass(frozen=True)
class StructuredData(TierResult):
    tier = "structured_data"


@dataclass(frozen=True)
class ScriptJSON(TierResult):
    tier = "script_json"


@dataclass(frozen=True)
class DomHeuristic(TierResult):
    tier = "dom_heuristic"


@dataclass(frozen=True)
class NotFound(TierResult):
    """No tier produced a product. `tried` lists the tiers attempted."""
    tried: tuple = ()

    tier = "not_found"


@dataclass(frozen=True)
class Tier:
    """One extraction attempt: a result kind and the function producing its products."""
    kind: Type[TierResult]
    extract: Callable[[], List[ExtractedProduct]]

    @property
    def name(self) -> str:
        return self.kind.tier


def first_success(tiers: Sequence[Tier], single_product: bool = False) -> TierResult:
    """
    Run tiers in order, stopping at the first one that yields products.

    A tier that raises ParseError, or a ValueError, KeyError, TypeError or
    ArithmeticError from malformed data, counts as empty; the next tier runs.

    Args:
        tiers: Ordered tiers
        single_product: Whether the page is a single-product page

    Returns:
        The first non-empty TierResult, or NotFound
    """
    tried = []
    for tier in tiers:
        tried.append(tier.name)
        try:
            products = tier.extract()
        except (ParseError, ValueError, KeyError, TypeError, ArithmeticError) as e:
            logger.warning("Tier %s failed: %s: %s", tier.name, type(e).__name__, e)
            continue

        if products:
            logger.debug("Tier %s produced %d product(s)", tier.name, len(products))
            return tier.kind(products=list(products), single_product=single_product)

        logger.debug("Tier %s found nothing", tier.name)

    return NotFound(single_product=single_product, tried=tuple(tried))
