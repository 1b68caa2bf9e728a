"""
Configuration Loader

Loads YAML configuration files for pipeline settings (timeouts, limits,
scoring weights, classifier thresholds) and CSS selector candidates.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


def _get_config_dir() -> Path:
    """Get the config directory path."""
    # Try relative to this file first
    module_dir = Path(__file__).parent.parent.parent
    config_dir = module_dir / 'config'

    if config_dir.exists():
        return config_dir

    # Try current working directory
    cwd_config = Path.cwd() / 'config'
    if cwd_config.exists():
        return cwd_config

    raise FileNotFoundError(
        f"Config directory not found. Tried: {config_dir}, {cwd_config}"
    )


def load_config(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of the config file (e.g., 'pipeline.yaml')

    Returns:
        Parsed YAML content as dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    config_path = _get_config_dir() / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _default_page_weights() -> Dict[str, int]:
    return {
        "add_to_cart": 2,
        "single_heading": 1,
        "gallery": 1,
        "variant_selector": 1,
    }


def _default_quality_weights() -> Dict[str, int]:
    return {
        "name": 25,
        "price": 25,
        "image": 20,
        "description": 15,
        "sizes": 5,
        "category": 4,
        "sku": 3,
        "brand": 3,
    }


@dataclass
class PipelineSettings:
    """
    Tunable constants for one pipeline run.

    Every value has a default so a partial pipeline.yaml (or none at all)
    still yields a usable configuration.
    """

    # Browser / timeouts (milliseconds)
    headless: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    navigation_timeout_ms: int = 60000
    network_idle_timeout_ms: int = 30000
    selector_wait_timeout_ms: int = 10000
    settle_delay_ms: int = 1000
    enrichment_navigation_timeout_ms: int = 30000
    enrichment_network_idle_timeout_ms: int = 10000

    # Extraction limits
    max_products: int = 20
    enrichment_limit: int = 5
    short_description_length: int = 20
    max_option_length: int = 40
    max_name_length: int = 100
    json_max_depth: int = 12

    # Generic single-product page classifier
    product_page_threshold: int = 3
    product_page_weights: Dict[str, int] = field(default_factory=_default_page_weights)

    # Quality scoring
    quality_threshold: int = 70
    quality_weights: Dict[str, int] = field(default_factory=_default_quality_weights)

    # Price parsing: None lets price-parser infer the decimal separator
    price_decimal_separator: Optional[str] = None

    # Site classification: domain fragment -> platform name
    platform_url_overrides: Dict[str, str] = field(default_factory=dict)

    # Concurrency
    max_workers: int = 2
    sync_workers: int = 1


def load_pipeline_settings(config: Optional[Dict[str, Any]] = None) -> PipelineSettings:
    """
    Build PipelineSettings from pipeline.yaml (or an already-loaded dict).

    Unknown keys are ignored; missing keys keep their defaults.

    Args:
        config: Parsed config dict (if None, loads from config/pipeline.yaml)

    Returns:
        PipelineSettings instance
    """
    if config is None:
        config = load_config('pipeline.yaml')

    known = {f.name for f in fields(PipelineSettings)}
    values: Dict[str, Any] = {}

    # pipeline.yaml groups keys by section; flatten one level
    for key, value in config.items():
        if isinstance(value, dict) and key not in known:
            for sub_key, sub_value in value.items():
                if sub_key in known:
                    values[sub_key] = sub_value
        elif key in known:
            values[key] = value

    settings = PipelineSettings(**values)

    # Partial weight maps extend the defaults rather than replace them
    if 'product_page_weights' in values:
        settings.product_page_weights = {**_default_page_weights(), **values['product_page_weights']}
    if 'quality_weights' in values:
        settings.quality_weights = {**_default_quality_weights(), **values['quality_weights']}

    return settings


def load_selectors() -> Dict[str, Dict[str, List[str]]]:
    """
    Load CSS selector candidates.

    Returns:
        Dictionary mapping a selector family ('generic', 'shopify',
        'woocommerce', 'magento', 'prestashop') to a mapping of logical
        field name to an ordered list of selectors

    Example:
        {
            'generic': {'name': ['h1.product-title', 'h1', ...], ...},
            'shopify': {'listing_container': ['.grid__item', ...], ...},
        }
    """
    config = load_config('selectors.yaml')
    return config.get('selectors', {})


def get_selector_list(
    selectors: Dict[str, Dict[str, List[str]]],
    family: str,
    field_name: str,
) -> List[str]:
    """
    Return the selector candidates for a field.

    The platform family's own candidates come first, followed by the
    'generic' candidates it does not already list.

    Args:
        selectors: Output of load_selectors()
        family: Platform family name
        field_name: Logical field (e.g., 'name', 'price')

    Returns:
        Ordered list of CSS selectors (possibly empty)
    """
    result = list(selectors.get(family, {}).get(field_name, []))
    if family != 'generic':
        for selector in selectors.get('generic', {}).get(field_name, []):
            if selector not in result:
                result.append(selector)
    return result


_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def apply_env_overrides(settings: PipelineSettings, environ: Optional[Dict[str, str]] = None) -> PipelineSettings:
    """
    Apply environment overrides (usually loaded from .env by the scripts).

    STOREFRONT_HEADLESS=false shows the browser window.

    Args:
        settings: Settings to update in place
        environ: Environment mapping (defaults to os.environ)

    Returns:
        The same settings object
    """
    environ = os.environ if environ is None else environ
    headless = environ.get('STOREFRONT_HEADLESS')
    if headless is not None and headless.strip():
        settings.headless = headless.strip().lower() not in _FALSE_VALUES
    return settings


def browser_from_env(environ: Optional[Dict[str, str]] = None) -> str:
    """Playwright browser type from STOREFRONT_BROWSER (default 'chromium')."""
    environ = os.environ if environ is None else environ
    return (environ.get('STOREFRONT_BROWSER') or 'chromium').strip().lower()
