"""
Text Utilities

Helper functions for text processing and cleanup.
"""

import hashlib
import re

_TAG_RE = re.compile(r'<\/?[^>]+(>|$)')
_SLUG_RE = re.compile(r'[^a-z0-9]+')


def clean_text(text) -> str:
    """Collapse whitespace and strip. Non-strings are converted first."""
    if not text:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return ' '.join(text.split()).strip()


def strip_html(html: str) -> str:
    """
    Remove HTML tags and normalize whitespace.

    Example:
        >>> strip_html("<p>Soft <b>cotton</b></p>")
        'Soft cotton'
    """
    if not html:
        return ""
    return clean_text(_TAG_RE.sub(' ', html))


def slugify(text: str) -> str:
    """
    Lowercase ASCII slug with hyphens.

    Example:
        >>> slugify("Robe d'été Rouge")
        'robe-d-t-rouge'
    """
    return _SLUG_RE.sub('-', text.lower()).strip('-')


def short_hash(*parts) -> str:
    """Stable 8-character hash of the given parts."""
    joined = "|".join(str(p) for p in parts)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()[:8]
