"""
Fixed Catalog Taxonomy.

Theme taxonomy, color palette and keyword lists shared by the
heuristic parser, the vision classifier prompt and the validators.
Order matters: themes are scanned in THEME_TAXONOMY order and the
first keyword hit wins.
"""

from typing import Dict, Tuple

THEME_TAXONOMY: Tuple[str, ...] = (
    "ANIMALS",
    "FLOWERS",
    "HISTORICAL",
    "ARCHITECTURE",
    "TRANSPORT",
    "HOLIDAYS",
    "SPACE",
    "SPORTS",
)

COLOR_PALETTE: Tuple[str, ...] = (
    "BLACK",
    "WHITE",
    "GRAY",
    "BROWN",
    "RED",
    "ORANGE",
    "YELLOW",
    "GREEN",
    "BLUE",
    "PURPLE",
    "PINK",
    "GOLD",
    "SILVER",
)

THEME_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "ANIMALS": ("animal", "bird", "cat", "dog", "horse", "wildlife", "fauna"),
    "FLOWERS": ("flower", "rose", "tulip", "orchid", "flora", "botanical"),
    "HISTORICAL": ("historic", "history", "president", "war", "founder", "anniversary"),
    "ARCHITECTURE": ("building", "bridge", "cathedral", "architecture", "monument"),
    "TRANSPORT": ("train", "car", "ship", "plane", "transport", "locomotive", "rail"),
    "HOLIDAYS": ("christmas", "holiday", "new year", "easter", "festive", "celebration"),
    "SPACE": ("space", "moon", "mars", "rocket", "astronaut", "galaxy"),
    "SPORTS": ("sport", "olympic", "soccer", "baseball", "basketball", "tennis"),
}

# A "forever" stamp is catalogued at the current first-class rate
FOREVER_FACE_VALUE = "78c"

MAX_COLORS = 5
MAX_THEME_TAGS = 12
MAX_NAME_LENGTH = 120
MIN_YEAR = 1800
MAX_YEAR = 2100

REVIEW_THRESHOLD = 0.75
