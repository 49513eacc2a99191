"""
Token canonicalization and keyword extraction.

Color and style tokens are mapped through synonym tables to one canonical
key before comparison, so "navy", "navy blue", "dark navy blue" and
"#000080" all compare equal. Either-direction substring containment is
kept only as a fallback when a token is not in the table.

Example:
    >>> colors_match("dark navy blue", "#000080")
    True
    >>> colors_match("navy", "blue")
    False
"""

import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from personalizer.domain.entities.outfit import OutfitCandidate


# Canonical color key -> representative hex
COLOR_HEX: Dict[str, str] = {
    "black": "#000000",
    "white": "#FFFFFF",
    "gray": "#808080",
    "red": "#FF0000",
    "blue": "#0000FF",
    "green": "#008000",
    "yellow": "#FFFF00",
    "orange": "#FFA500",
    "purple": "#800080",
    "pink": "#FFC0CB",
    "brown": "#A52A2A",
    "navy": "#000080",
    "beige": "#F5F5DC",
    "cream": "#FFFDD0",
    "coral": "#FF7F50",
    "khaki": "#F0E68C",
    "olive": "#808000",
    "maroon": "#800000",
    "burgundy": "#800020",
    "ivory": "#FFFFF0",
    "teal": "#008080",
    "gold": "#FFD700",
    "silver": "#C0C0C0",
    "mustard": "#FFDB58",
    "lavender": "#E6E6FA",
}

# Multi-word and alternate spellings -> canonical key
COLOR_SYNONYMS: Dict[str, str] = {
    "navy blue": "navy",
    "dark navy": "navy",
    "dark navy blue": "navy",
    "midnight blue": "navy",
    "midnight navy": "navy",
    "grey": "gray",
    "light gray": "gray",
    "light grey": "gray",
    "charcoal gray": "gray",
    "charcoal grey": "gray",
    "off white": "ivory",
    "creme": "cream",
    "wine": "burgundy",
    "olive green": "olive",
    "blush pink": "pink",
    "baby pink": "pink",
    "scarlet": "red",
    "mustard yellow": "mustard",
    "golden": "gold",
}

HEX_TO_COLOR: Dict[str, str] = {hex_value: name for name, hex_value in COLOR_HEX.items()}

STYLE_KEYWORDS = (
    "casual", "formal", "business", "smart", "elegant", "minimalist", "bohemian",
    "ethnic", "fusion", "streetwear", "vintage", "modern", "classic", "contemporary",
    "traditional", "trendy", "chic", "sporty", "edgy", "romantic", "preppy",
)

STYLE_SYNONYMS: Dict[str, str] = {
    "boho": "bohemian",
    "minimal": "minimalist",
    "street": "streetwear",
    "street style": "streetwear",
    "retro": "vintage",
    "athleisure": "sporty",
    "athletic": "sporty",
    "timeless": "classic",
}

FIT_KEYWORDS = ("oversized", "fitted", "tailored", "loose", "relaxed", "slim", "regular")
PATTERN_KEYWORDS = ("solid", "floral", "geometric", "striped", "printed", "plain", "abstract")
FABRIC_KEYWORDS = ("cotton", "linen", "silk", "wool", "polyester", "denim", "leather", "chiffon")

_WHITESPACE = re.compile(r"[\s_-]+")


def _clean(token: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", (token or "").strip().lower())


def _expand_hex(token: str) -> str:
    digits = token.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"


def canonical_color(token: Optional[str]) -> Optional[str]:
    """
    Map a color token to its canonical key.

    Returns:
        The canonical key, or None when the token is not in the table.
    """
    cleaned = _clean(token)
    if not cleaned:
        return None
    if cleaned.startswith("#"):
        return HEX_TO_COLOR.get(_expand_hex(cleaned))
    if cleaned in COLOR_HEX:
        return cleaned
    return COLOR_SYNONYMS.get(cleaned)


def color_key(token: Optional[str]) -> str:
    """Canonical key when known, else the cleaned token itself."""
    return canonical_color(token) or _clean(token)


def color_hex(token: Optional[str]) -> Optional[str]:
    """Hex value of a color token, if it is a hex code or a known name."""
    cleaned = _clean(token)
    if cleaned.startswith("#"):
        return _expand_hex(cleaned)
    key = canonical_color(cleaned)
    return COLOR_HEX.get(key) if key else None


def canonical_style(token: Optional[str]) -> Optional[str]:
    cleaned = _clean(token)
    if not cleaned:
        return None
    if cleaned in STYLE_KEYWORDS:
        return cleaned
    return STYLE_SYNONYMS.get(cleaned)


def style_key(token: Optional[str]) -> str:
    return canonical_style(token) or _clean(token)


def _substring_match(a: str, b: str) -> bool:
    return a in b or b in a


def colors_match(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two color tokens.

    Known tokens compare by canonical key; when either side is unknown
    the cleaned tokens are compared by containment in either direction.
    Empty tokens never match.
    """
    left, right = _clean(a), _clean(b)
    if not left or not right:
        return False
    left_key, right_key = canonical_color(left), canonical_color(right)
    if left_key and right_key:
        return left_key == right_key
    return _substring_match(left_key or left, right_key or right)


def styles_match(a: Optional[str], b: Optional[str]) -> bool:
    left, right = _clean(a), _clean(b)
    if not left or not right:
        return False
    left_key, right_key = canonical_style(left), canonical_style(right)
    if left_key and right_key:
        return left_key == right_key
    return _substring_match(left_key or left, right_key or right)


def features_match(dimension: str, a: Optional[str], b: Optional[str]) -> bool:
    """Dispatch to the comparison used for a blocklist dimension."""
    if dimension == "colors":
        return colors_match(a, b)
    if dimension == "styles":
        return styles_match(a, b)
    return bool(_clean(a)) and _clean(a) == _clean(b)


def feature_key(dimension: str, token: Optional[str]) -> str:
    if dimension == "colors":
        return color_key(token)
    if dimension == "styles":
        return style_key(token)
    return _clean(token)


def extract_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Return the keywords contained in the lowercased text, in table order."""
    lowered = (text or "").lower()
    return [keyword for keyword in keywords if keyword in lowered]


def extract_style_keywords(text: str) -> List[str]:
    return extract_keywords(text, STYLE_KEYWORDS)


def extract_fit_keywords(text: str) -> List[str]:
    return extract_keywords(text, FIT_KEYWORDS)


def extract_pattern_keywords(text: str) -> List[str]:
    return extract_keywords(text, PATTERN_KEYWORDS)


def extract_fabric_keywords(text: str) -> List[str]:
    return extract_keywords(text, FABRIC_KEYWORDS)


_COLOR_PHRASES = sorted(list(COLOR_HEX) + list(COLOR_SYNONYMS), key=len, reverse=True)


def extract_item_colors(items: Sequence[str]) -> List[str]:
    """
    Extract canonical colors named in item descriptions.

    Longer phrases are consumed first, so "navy blue shirt" yields only
    "navy".
    """
    found: List[str] = []
    for item in items:
        remaining = f" {_clean(item)} "
        for phrase in _COLOR_PHRASES:
            needle = f" {phrase} "
            if needle in remaining:
                found.append(canonical_color(phrase))
                remaining = remaining.replace(needle, " ")
    return list(dict.fromkeys(found))


def outfit_colors(colors: Sequence[str], items: Sequence[str] = ()) -> List[str]:
    """Explicit palette when present, else colors named in the items."""
    explicit = [c for c in colors if _clean(c)]
    if explicit:
        return list(dict.fromkeys(explicit))
    return extract_item_colors(items)


def outfit_styles(style: str, text: str = "") -> List[str]:
    """Canonical style tokens from the style label plus description keywords."""
    styles: List[str] = []
    if _clean(style):
        styles.append(style_key(style))
    styles.extend(extract_style_keywords(text))
    return list(dict.fromkeys(styles))


def candidate_colors(candidate: OutfitCandidate) -> List[str]:
    return outfit_colors(candidate.colors, candidate.items)


def candidate_styles(candidate: OutfitCandidate) -> List[str]:
    return outfit_styles(candidate.style, candidate.text)


def combination_key(colors: Sequence[str]) -> str:
    """Order-independent fingerprint of a color combination."""
    keys = {color_key(c) for c in colors if _clean(c)}
    return "|".join(sorted(keys))


def occasion_bucket(occasion: Optional[str]) -> str:
    """Map a free-text occasion onto office/party/ethnic/casual."""
    text = _clean(occasion)
    if any(word in text for word in ("office", "work", "business")):
        return "office"
    if any(word in text for word in ("party", "wedding", "event")):
        return "party"
    if any(word in text for word in ("ethnic", "traditional", "festive")):
        return "ethnic"
    return "casual"


def season_for(month: int) -> str:
    """
    Season of a calendar month.

    June-September is monsoon, April-May summer, everything else winter.
    """
    if 6 <= month <= 9:
        return "monsoon"
    if 4 <= month <= 5:
        return "summer"
    return "winter"


def season_at(moment: datetime) -> str:
    return season_for(moment.month)
