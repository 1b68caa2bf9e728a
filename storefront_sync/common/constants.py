"""
Shared constants for the project.

This module contains application-wide constants that should have a single source of truth.
"""

# Currency symbols recognised next to a price amount
CURRENCY_SYMBOLS = "€$£"

# Option labels that mean "nothing selected" rather than a real value
PLACEHOLDER_OPTIONS = frozenset({
    "choose", "choose an option", "select", "select an option", "choisir",
    "choisir une option", "--", "-", "default title",
})

# Option-name keywords used to tell color axes from size axes
COLOR_KEYWORDS = ("couleur", "color", "colour", "coloris")
SIZE_KEYWORDS = ("taille", "size", "pointure")

# Image file names or URL fragments that mark a placeholder, not a product photo
PLACEHOLDER_IMAGE_PATTERNS = (
    "placeholder",
    "blank.gif",
    "spacer",
    "no-image",
    "no_image",
    "noimage",
    "loading",
    "lazy-load",
    "transparent.png",
    "pixel.gif",
)

# Breadcrumb roots stripped from category paths
BREADCRUMB_ROOTS = ("home", "accueil", "start", "inicio")
