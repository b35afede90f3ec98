"""Address text canonicalisation.

Vietnamese delivery addresses arrive with a mix of abbreviations (``Q.5``,
``P.12``, ``TP.HCM``), optional diacritics and inconsistent punctuation. The
helpers here turn that text into a stable form for geocoding queries and a
lowercase ASCII form for cache keys and containment checks.

All functions are pure and ``normalize``/``normalize_key`` are idempotent.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

from ...models.domain import AddressQuery

_PARENTHETICAL = re.compile(r"\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")
_COMMA_RUN = re.compile(r"\s*,(?:\s*,)*\s*")
_EDGE_PUNCTUATION = " \t,;:.-"

# Order matters: city abbreviations containing "HCM" are handled before the bare
# "TP" marker, and the bare marker before single-letter ward/district markers.
_ABBREVIATIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bĐHQG\b", re.IGNORECASE), "Đại học Quốc gia"),
    (re.compile(r"\bTP\.?\s*HCM\b", re.IGNORECASE), "Hồ Chí Minh"),
    (re.compile(r"\bHCM\b", re.IGNORECASE), "Hồ Chí Minh"),
    (re.compile(r"\bTP(?:\.\s*|\s+)", re.IGNORECASE), "Thành phố "),
    (re.compile(r"\bTX\.\s*", re.IGNORECASE), "Thị xã "),
    (re.compile(r"\bP\.\s*", re.IGNORECASE), "Phường "),
    (re.compile(r"\bQ\.\s*", re.IGNORECASE), "Quận "),
)

_STROKE_LETTERS = str.maketrans({"Đ": "D", "đ": "d"})
_KEY_MAX_PASSES = 8

_STREET_KEYWORDS = (
    "duong",
    "street",
    "hem",
    "ngo",
    "alley",
    "chung cu",
    "toa",
    "building",
    "khu pho",
    "khu dan cu",
)
_POI_KEYWORDS = (
    "vincom",
    "dai hoc",
    "benh vien",
    "khu cong nghe cao",
    "suoi tien",
    "metro",
    "ga",
    "tram",
)

_TRAILING_ADMIN_SEGMENTS = (
    re.compile(r",\s*(?:việt\s*nam|viet\s*nam)\s*$", re.IGNORECASE),
    re.compile(r",\s*(?:p\.|phường|p(?=\s))\s*[^,]+", re.IGNORECASE),
    re.compile(r",\s*(?:q\.|quận|q(?=\s))\s*[^,]+", re.IGNORECASE),
    re.compile(r",\s*(?:tp\.?|thành\s*phố)\s+[^,]+", re.IGNORECASE),
    re.compile(r",\s*(?:huyện|tỉnh)\s+[^,]+", re.IGNORECASE),
    re.compile(r",\s*(?:tp\.?\s*hcm|tp\.?\s*ho\s*chi\s*minh|tphcm|hcm|hồ\s*chí\s*minh)\s*$", re.IGNORECASE),
)


def normalize(text: Optional[str]) -> str:
    """Canonicalise raw address text for geocoding queries."""
    if not text or not text.strip():
        return ""

    value = unicodedata.normalize("NFC", text).strip()
    value = _PARENTHETICAL.sub(" ", value)
    for pattern, replacement in _ABBREVIATIONS:
        value = pattern.sub(replacement, value)

    value = _WHITESPACE.sub(" ", value)
    value = _COMMA_RUN.sub(", ", value)
    return value.strip(_EDGE_PUNCTUATION)


def remove_diacritics(text: Optional[str]) -> str:
    """Strip combining marks (NFD, drop marks, NFC) and fold đ/Đ to d/D."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped).translate(_STROKE_LETTERS)


def normalize_key(text: Optional[str]) -> str:
    """Lowercase ASCII form used for cache keys and containment checks, never for display.

    Folding can uncover an abbreviation (``Ṕ.5`` becomes ``P.5``), so folding and
    expansion repeat until the key is stable.
    """
    key = remove_diacritics(normalize(text)).lower()
    for _ in range(_KEY_MAX_PASSES):
        folded = remove_diacritics(normalize(key)).lower()
        if folded == key:
            break
        key = folded
    return key


def is_too_vague(text: Optional[str], min_length: int = 25) -> bool:
    """Return True when the text cannot plausibly resolve to a precise point.

    An address passes if it carries a house number, a street or point-of-interest
    keyword, or is at least ``min_length`` characters long.
    """
    key = normalize_key(text)
    if not key:
        return True

    padded = f" {re.sub(r'[^a-z0-9]+', ' ', key)} "
    has_number = any(ch.isdigit() for ch in key)
    has_street = any(f" {keyword} " in padded for keyword in _STREET_KEYWORDS)
    has_poi = any(f" {keyword} " in padded for keyword in _POI_KEYWORDS)
    return not (has_number or has_street or has_poi or len(key) >= min_length)


def clean_detail_address(text: Optional[str]) -> str:
    """Drop parentheticals and administrative/country tail segments from a detail address."""
    if not text or not text.strip():
        return ""

    value = _PARENTHETICAL.sub(" ", text.strip())
    for pattern in _TRAILING_ADMIN_SEGMENTS:
        value = pattern.sub("", value)

    value = _WHITESPACE.sub(" ", value)
    value = _COMMA_RUN.sub(", ", value)
    return value.strip(" ,")


def _mentions(full: str, part: str) -> bool:
    if not full or not part:
        return False
    return normalize_key(part) in normalize_key(full)


def compose_address(query: AddressQuery) -> str:
    """Join a detail address with its ward/district/province hints.

    A hint is appended only when the detail text does not already mention it.
    """
    detail = clean_detail_address(query.text)
    parts = [detail] if detail else []
    for hint in (query.ward, query.district, query.province):
        if hint and hint.strip() and not _mentions(detail, hint):
            parts.append(hint.strip())
    return normalize(", ".join(parts))

