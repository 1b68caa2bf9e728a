"""
Field Extractors

Pure functions that pull one logical field out of a BeautifulSoup element
(a product card, or the whole document on a detail page). Every function
takes an ordered list of candidate selectors; the first selector that
yields a usable value wins.

Also home to build_product(), the hard gate every extraction tier goes
through: a product without a name or a positive price is never built.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import Tag
from price_parser import Price

from ..common.constants import (
    BREADCRUMB_ROOTS,
    CURRENCY_SYMBOLS,
    PLACEHOLDER_IMAGE_PATTERNS,
    PLACEHOLDER_OPTIONS,
)
from ..common.text_utils import clean_text, short_hash, slugify
from ..models import ExtractedProduct, build_variants

logger = logging.getLogger(__name__)

# A number as it appears in a price: grouped thousands first, then plain
_AMOUNT = r"\d{1,3}(?:[ \u00a0\u202f.,']\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?"
_CURRENCY = f"[{re.escape(CURRENCY_SYMBOLS)}]"
CURRENCY_AMOUNT_RE = re.compile(rf"{_CURRENCY}\s?(?:{_AMOUNT})|(?:{_AMOUNT})\s?{_CURRENCY}")

# Uppercase reference codes glued into card titles (e.g. "ROBE LIN 24SS0113")
REFERENCE_CODE_RE = re.compile(r'\b(?=[A-Z0-9]*\d)[A-Z0-9]{5,}\b')

# Names that are really image file names
IMAGE_FILENAME_RE = re.compile(
    r'^(?:IMG|DSC|DSCN|P)[_-]?\d+(?:\.\w{3,4})?$|^\d+\.(?:jpe?g|png|webp|gif)$',
    re.IGNORECASE,
)

IMAGE_EXT_RE = re.compile(r'\.(?:jpe?g|png|webp|gif|avif)(?:\?|$)', re.IGNORECASE)
SKU_PREFIX_RE = re.compile(r'^\s*(?:SKU|R[ée]f(?:[ée]rence)?|Ref(?:erence)?|Art(?:icle)?)\s*[:.#°n]*\s*', re.IGNORECASE)
BREADCRUMB_SPLIT_RE = re.compile(r'\s*[>»›/|]\s*')

IMAGE_ATTRS = (
    'src',
    'data-src',
    'data-lazy-src',
    'data-original',
    'srcset',
    'data-srcset',
    'data-zoom-image',
)

OPTION_DATA_ATTRS = (
    'data-value',
    'data-color',
    'data-size',
    'data-option-value',
    'aria-label',
    'value',
)

PRODUCT_ID_ATTRS = ('data-product-id', 'data-id', 'data-product_id')


# --- generic helpers -------------------------------------------------------

def unique(values: Iterable[str]) -> List[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def element_text(element: Tag) -> str:
    """Visible text of an element, or its `content` attribute for meta tags."""
    if element.name == 'meta':
        return clean_text(element.get('content', ''))
    return clean_text(element.get_text(" ", strip=True))


def select_text(element: Tag, selectors: List[str]) -> str:
    """Text of the first element, under the first matching selector, that has any."""
    for selector in selectors:
        for match in element.select(selector):
            text = element_text(match)
            if text:
                return text
    return ""


# --- name ------------------------------------------------------------------

def clean_name(raw: str, max_length: int = 100) -> str:
    """
    Remove price fragments, reference codes and stray punctuation from a name.

    Example:
        >>> clean_name("Robe Lin 24SS0113 - 49,90 €")
        'Robe Lin'
    """
    name = clean_text(raw)
    if not name:
        return ""

    name = CURRENCY_AMOUNT_RE.sub(' ', name)
    name = REFERENCE_CODE_RE.sub(' ', name)
    name = clean_text(name)
    name = re.sub(r'^[\W_]+|[^\w)\]]+$', '', name)

    if IMAGE_FILENAME_RE.match(name):
        return ""

    return name[:max_length].strip()


def extract_name(element: Tag, selectors: List[str], max_length: int = 100) -> str:
    """
    Extract a product name.

    Falls back to the first image's alt text, then to the first lines of
    the element's text.

    Args:
        element: Product container or document
        selectors: Ordered name selector candidates
        max_length: Maximum name length

    Returns:
        Cleaned name or empty string
    """
    for selector in selectors:
        for match in element.select(selector):
            name = clean_name(element_text(match), max_length)
            if name:
                return name

    img = element.find('img', alt=True)
    if img is not None:
        name = clean_name(img.get('alt', ''), max_length)
        if name:
            return name

    lines = element.get_text("\n", strip=True).split("\n")
    for line in lines[:3]:
        name = clean_name(line[:max_length], max_length)
        if name:
            return name

    return ""


# --- price -----------------------------------------------------------------

def parse_price(text: Any, decimal_separator: Optional[str] = None) -> Optional[Decimal]:
    """
    Parse a price string into a Decimal.

    Thousand separators are resolved by price-parser; a configured
    decimal separator overrides its guess.

    Returns:
        Positive Decimal, or None when no amount is found or it is zero

    Example:
        >>> parse_price("1.234,56 €")
        Decimal('1234.56')
    """
    text = clean_text(text)
    if not text:
        return None

    amount = Price.fromstring(text, decimal_separator=decimal_separator).amount
    if amount is None or not amount.is_finite() or amount <= 0:
        return None
    return amount


def to_decimal(value: Any, decimal_separator: Optional[str] = None) -> Optional[Decimal]:
    """Convert a JSON price (number or string) to a positive Decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        return amount if amount.is_finite() and amount > 0 else None
    return parse_price(value, decimal_separator)


def find_price_in_text(text: str, decimal_separator: Optional[str] = None) -> Optional[Decimal]:
    """Scan free text for the first amount written next to a currency symbol."""
    for match in CURRENCY_AMOUNT_RE.finditer(text or ""):
        price = parse_price(match.group(0), decimal_separator)
        if price is not None:
            return price
    return None


def extract_price(element: Tag, selectors: List[str],
                  decimal_separator: Optional[str] = None) -> Optional[Decimal]:
    """
    Extract the current price.

    Order: candidate selectors (a sale price in <ins> wins over the
    element's full text), then data-price attributes, then a raw scan of
    the element text for a currency-adjacent number.

    Returns:
        Positive Decimal, or None
    """
    for selector in selectors:
        for match in element.select(selector):
            sale = match.find('ins')
            candidates = [
                match.get('content'),
                match.get('data-price'),
                element_text(sale) if sale is not None else None,
                element_text(match),
            ]
            for candidate in candidates:
                price = parse_price(candidate, decimal_separator)
                if price is not None:
                    return price

    holders = [element] + element.select('[data-price], [data-price-amount], [data-product-price]')
    for holder in holders:
        for attr in ('data-price', 'data-price-amount', 'data-product-price'):
            price = parse_price(holder.get(attr), decimal_separator)
            if price is not None:
                return price

    return find_price_in_text(element.get_text(" ", strip=True), decimal_separator)


# --- images ----------------------------------------------------------------

def is_placeholder_image(url: str) -> bool:
    """True for data: URIs and lazy-load placeholders such as blank.gif."""
    lowered = (url or "").strip().lower()
    if not lowered or lowered.startswith('data:'):
        return True
    filename = urlparse(lowered).path.rsplit('/', 1)[-1]
    return any(pattern in filename for pattern in PLACEHOLDER_IMAGE_PATTERNS)


def normalize_image_url(value: str, base_url: str = "") -> str:
    """
    Resolve an image reference to an absolute URL, or "" if unusable.

    Protocol-relative URLs get https:, Shopify width templates are filled in.
    """
    url = (value or "").strip()
    if not url or is_placeholder_image(url):
        return ""

    url = url.replace('{width}', '1024')
    if url.startswith('//'):
        return 'https:' + url
    if base_url:
        return urljoin(base_url, url)
    return url


def _first_srcset_candidate(srcset: str) -> str:
    first = srcset.split(',')[0].strip()
    return first.split(' ')[0] if first else ""


def image_url_from_tag(tag: Tag, base_url: str = "") -> str:
    """First accepted image URL from an <img> (or meta/link) tag."""
    attrs = IMAGE_ATTRS if tag.name == 'img' else IMAGE_ATTRS + ('content', 'href')
    for attr in attrs:
        value = tag.get(attr)
        if not value:
            continue
        if attr.endswith('srcset'):
            value = _first_srcset_candidate(value)
        url = normalize_image_url(value, base_url)
        if url:
            return url
    return ""


def extract_images(element: Tag, selectors: List[str], base_url: str = "") -> List[str]:
    """
    Extract all accepted image URLs under the first selector that yields any.

    Returns:
        Absolute URLs, exact duplicates removed, document order kept
    """
    for selector in selectors:
        tags = element.select(selector)
        if element.name == 'img' and not tags:
            tags = [element]
        urls = unique(image_url_from_tag(tag, base_url) for tag in tags)
        if urls:
            return urls
    return []


# --- colors / sizes --------------------------------------------------------

def is_acceptable_option(value: str, max_length: int = 40) -> bool:
    """Reject empty, overlong and "Choose an option" style values."""
    if not value or len(value) >= max_length:
        return False
    lowered = value.lower().strip(' :.')
    if lowered in PLACEHOLDER_OPTIONS:
        return False
    if lowered.startswith(('choose ', 'choisir ', 'select ', 'sélectionne')):
        return False
    return not set(lowered) <= set('-_ ')


def option_value(element: Tag) -> str:
    """Visible text, then title, then the first populated data attribute."""
    text = element_text(element)
    if text:
        return text
    title = clean_text(element.get('title', ''))
    if title:
        return title
    for attr in OPTION_DATA_ATTRS:
        value = clean_text(element.get(attr, ''))
        if value:
            return value
    return ""


def _values_from_selectors(element: Tag, selectors: List[str], max_length: int) -> List[str]:
    for selector in selectors:
        values = unique(
            value for value in (option_value(match) for match in element.select(selector))
            if is_acceptable_option(value, max_length)
        )
        if values:
            return values
    return []


def select_label(select: Tag, root: Tag) -> str:
    """Everything that names a <select>: attributes, <label for>, table row header."""
    parts = [
        select.get('name', ''),
        select.get('id', ''),
        select.get('data-option-name', ''),
        select.get('data-attribute_name', ''),
        select.get('aria-label', ''),
    ]

    select_id = select.get('id')
    if select_id:
        label = root.find('label', attrs={'for': select_id})
        if label is not None:
            parts.append(label.get_text(" ", strip=True))

    row = select.find_parent('tr')
    if row is not None:
        header = row.find(['th', 'label'])
        if header is not None:
            parts.append(header.get_text(" ", strip=True))

    wrapper = select.find_parent(['fieldset', 'div'])
    if wrapper is not None:
        legend = wrapper.find(['legend', 'label'], recursive=False)
        if legend is not None:
            parts.append(legend.get_text(" ", strip=True))

    return " ".join(str(p) for p in parts).lower()


def _values_from_labeled_selects(element: Tag, keywords: Iterable[str], max_length: int) -> List[str]:
    keywords = tuple(keywords)
    for select in element.find_all('select'):
        label = select_label(select, element)
        if not any(keyword in label for keyword in keywords):
            continue
        values = unique(
            value for value in (option_value(opt) for opt in select.find_all('option'))
            if is_acceptable_option(value, max_length)
        )
        if values:
            return values
    return []


def extract_option_values(
    element: Tag,
    swatch_selectors: List[str],
    keywords: Iterable[str],
    container_selectors: List[str] = (),
    max_length: int = 40,
) -> List[str]:
    """
    Extract one option axis (colors or sizes).

    Tries swatch/option selectors, then <select> elements whose label
    matches one of `keywords`, then generic variant containers.

    Returns:
        Distinct values in first-seen order
    """
    values = _values_from_selectors(element, swatch_selectors, max_length)
    if not values:
        values = _values_from_labeled_selects(element, keywords, max_length)
    if not values:
        values = _values_from_selectors(element, list(container_selectors), max_length)
    return values


# --- category / sku / brand / description / link ---------------------------

def clean_category(text: str) -> str:
    """
    Normalize a breadcrumb trail and drop its root.

    Example:
        >>> clean_category("Accueil > Femme > Robes")
        'Femme > Robes'
    """
    parts = [p for p in BREADCRUMB_SPLIT_RE.split(clean_text(text)) if p]
    while parts and parts[0].lower() in BREADCRUMB_ROOTS:
        parts.pop(0)
    return " > ".join(parts)


def extract_category(element: Tag, selectors: List[str]) -> str:
    """Category path from breadcrumbs or category links."""
    for selector in selectors:
        for match in element.select(selector):
            items = match.find_all('li') or match.find_all('a')
            if items:
                text = " > ".join(element_text(item) for item in items)
            else:
                text = element_text(match)
            category = clean_category(text)
            if category:
                return category
    return ""


def clean_sku(text: str) -> str:
    """Strip an "SKU:" style label and anything that is not a word char or hyphen."""
    return re.sub(r'[^\w-]', '', SKU_PREFIX_RE.sub('', clean_text(text)))


def extract_sku(element: Tag, selectors: List[str]) -> str:
    for selector in selectors:
        for match in element.select(selector):
            sku = clean_sku(match.get('data-sku') or element_text(match))
            if sku:
                return sku
    return ""


def extract_brand(element: Tag, selectors: List[str]) -> str:
    for selector in selectors:
        for match in element.select(selector):
            brand = element_text(match)
            if not brand:
                nested = match.find(attrs={'itemprop': 'name'})
                brand = element_text(nested) if nested is not None else ""
            if brand and len(brand) < 60:
                return brand
    return ""


def extract_description(element: Tag, selectors: List[str]) -> str:
    return select_text(element, selectors)


def resolve_url(url: str, base_url: str = "") -> str:
    """Absolute URL for a link found on `base_url`; protocol-relative links get https:."""
    url = (url or "").strip()
    if not url:
        return ""
    if url.startswith('//'):
        return 'https:' + url
    return urljoin(base_url, url) if base_url else url


def extract_link(element: Tag, selectors: List[str], base_url: str = "") -> str:
    """Absolute product URL from the container (or the container itself if it is a link)."""
    candidates = [element] if element.name == 'a' else []
    for selector in selectors:
        candidates.extend(element.select(selector))

    for anchor in candidates:
        href = (anchor.get('href') or "").strip()
        if not href or href.startswith(('#', 'javascript:', 'mailto:', 'tel:')):
            continue
        return urljoin(base_url, href) if base_url else href
    return ""


# --- identifiers -----------------------------------------------------------

def url_slug(url: str) -> str:
    """Last path segment of a URL without extension ("/products/red-dress" -> "red-dress")."""
    if not url:
        return ""
    segments = [s for s in urlparse(url).path.split('/') if s]
    if not segments:
        return ""
    return re.sub(r'\.(?:html?|php|aspx?)$', '', segments[-1], flags=re.IGNORECASE)


def element_product_id(element: Optional[Tag]) -> str:
    """data-product-id / data-id on the element or its first descendant carrying one."""
    if element is None:
        return ""
    for attr in PRODUCT_ID_ATTRS:
        value = element.get(attr)
        if not value:
            nested = element.find(attrs={attr: True})
            value = nested.get(attr) if nested is not None else ""
        if value:
            return clean_text(value)
    return ""


def make_external_id(
    platform_id: Any = None,
    element: Optional[Tag] = None,
    product_url: str = "",
    sku: str = "",
    name: str = "",
    price: Optional[Decimal] = None,
) -> str:
    """
    Stable identifier for a product within one vendor.

    Priority: platform id, data-product-id / data-id, URL slug, SKU,
    then a name slug with a short hash of name and price. The same
    product always gets the same id across runs.
    """
    if platform_id not in (None, ""):
        return str(platform_id)

    candidate = element_product_id(element) or url_slug(product_url) or sku
    if candidate:
        return candidate

    return f"{slugify(name)[:50] or 'product'}-{short_hash(name, price)}"


# --- bounded JSON walking --------------------------------------------------

def iter_json_nodes(data: Any, max_depth: int = 12) -> Iterator[Tuple[str, Any]]:
    """
    Yield (key, value) for every node of a JSON structure.

    Bounded by `max_depth` and by a visited-id set, so cyclic or very deep
    objects captured from page globals cannot run away.
    """
    stack: List[Tuple[str, Any, int]] = [("", data, 0)]
    visited = set()

    while stack:
        key, value, depth = stack.pop()
        yield key, value

        if depth >= max_depth or not isinstance(value, (dict, list)):
            continue
        if id(value) in visited:
            continue
        visited.add(id(value))

        if isinstance(value, dict):
            children = list(value.items())
        else:
            children = [(key, item) for item in value]

        for child_key, child in reversed(children):
            stack.append((str(child_key), child, depth + 1))


def find_image_urls(data: Any, base_url: str = "", max_depth: int = 12) -> List[str]:
    """All image-looking URL strings inside a JSON blob."""
    urls = []
    for _, value in iter_json_nodes(data, max_depth):
        if isinstance(value, str) and IMAGE_EXT_RE.search(value):
            urls.append(normalize_image_url(value, base_url))
    return unique(urls)


# --- the gate --------------------------------------------------------------

def build_product(
    name: str,
    price: Optional[Decimal],
    external_id: str,
    tier: str,
    image_urls: Optional[List[str]] = None,
    colors: Optional[List[str]] = None,
    sizes: Optional[List[str]] = None,
    **fields: Any,
) -> Optional[ExtractedProduct]:
    """
    Build an ExtractedProduct, or None if it fails the hard gate.

    A product needs a non-empty name and a positive price. Colors, sizes
    and images are de-duplicated; variants are derived from colors x sizes.

    Args:
        name: Cleaned product name
        price: Parsed price (None when absent)
        external_id: Stable identifier
        tier: Name of the extraction tier producing this record
        image_urls: Accepted image URLs in order
        colors: Color option values
        sizes: Size option values
        **fields: Any other ExtractedProduct field

    Returns:
        ExtractedProduct or None
    """
    name = clean_text(name)
    if not name or price is None or price <= 0:
        logger.debug("Rejected candidate (name=%r, price=%r, tier=%s)", name, price, tier)
        return None

    image_urls = unique(image_urls or [])
    if not fields.get('image_url') and image_urls:
        fields['image_url'] = image_urls[0]
    if fields.get('image_url') and fields['image_url'] not in image_urls:
        image_urls.insert(0, fields['image_url'])

    product = ExtractedProduct(
        external_id=external_id,
        name=name,
        price=price,
        image_urls=image_urls,
        colors=unique(colors or []),
        sizes=unique(sizes or []),
        extraction_tier=tier,
        **fields,
    )
    product.variants = build_variants(product.external_id, product.colors, product.sizes, product.price)
    return product


def option_axes(options: List[Dict[str, Any]], color_keywords: Iterable[str],
                size_keywords: Iterable[str], max_length: int = 40) -> Tuple[List[str], List[str]]:
    """
    Split named option lists into (colors, sizes).

    Args:
        options: [{'name': 'Couleur', 'values': ['Rouge', 'Bleu']}, ...]
        color_keywords: Substrings identifying a color axis
        size_keywords: Substrings identifying a size axis
        max_length: Maximum accepted value length

    Returns:
        Tuple of (colors, sizes)
    """
    colors: List[str] = []
    sizes: List[str] = []
    for option in options:
        option_name = clean_text(option.get('name', '')).lower()
        values = [clean_text(v) for v in option.get('values') or []]
        values = [v for v in values if is_acceptable_option(v, max_length)]
        if any(keyword in option_name for keyword in color_keywords):
            colors.extend(values)
        elif any(keyword in option_name for keyword in size_keywords):
            sizes.extend(values)
    return unique(colors), unique(sizes)
