"""Alternative query strings for a single address, most specific first."""

from __future__ import annotations

import re
from typing import Optional

from ...config import settings
from .normalizer import normalize, normalize_key, remove_diacritics

_WARD_OR_DISTRICT = re.compile(r"^(?:phuong|p|quan|q|huyen|thi xa|tx|xa|thi tran)\b")
_CITY_MARKER = re.compile(r"^(?:thanh pho|tp|tinh)\b")
_LEADING_HOUSE_NUMBER = re.compile(r"^\s*\d+[a-z]?(?:\s*[-/\\]\s*\d+[a-z]?)*\s*[-/\\]?\s*", re.IGNORECASE)


def strip_administrative(address: str, keep_city: Optional[str] = None) -> str:
    """Remove ward/district/city segments from a comma separated address.

    Segments naming ``keep_city`` survive so the main city is not lost.
    """
    city_key = normalize_key(keep_city) if keep_city else ""
    kept: list[str] = []
    for part in (segment.strip() for segment in address.split(",")):
        if not part:
            continue
        key = normalize_key(part)
        if _WARD_OR_DISTRICT.match(key):
            continue
        if city_key and city_key in key:
            kept.append(part)
            continue
        if _CITY_MARKER.match(key):
            continue
        kept.append(part)
    return ", ".join(kept)


def remove_leading_house_number(text: str) -> str:
    return _LEADING_HOUSE_NUMBER.sub("", text.strip(), count=1).strip()


def _with_suffixes(base: str, *suffixes: str) -> str:
    """Append each suffix unless the base already mentions it."""
    if not base:
        return ""
    value = base
    for suffix in suffixes:
        if suffix and normalize_key(suffix) not in normalize_key(value):
            value = f"{value}, {suffix}"
    return value


def build_candidates(
    address: Optional[str],
    *,
    country_suffix: Optional[str] = None,
    default_city: Optional[str] = None,
    cap: Optional[int] = None,
) -> list[str]:
    """Build deduplicated query candidates for ``address``.

    Order: normalized + country, normalized alone, administrative segments
    stripped + default city + country, the same without the leading house
    number, and finally the diacritic-free normalized + country.
    """
    country = settings.country_suffix if country_suffix is None else country_suffix
    city = settings.default_city if default_city is None else default_city
    limit = settings.candidate_cap if cap is None else cap

    normalized = normalize(address)
    if not normalized or limit <= 0:
        return []

    candidates: list[str] = []
    seen: set[str] = set()

    def add(value: str) -> None:
        value = value.strip().strip(",").strip()
        if not value:
            return
        marker = value.casefold()
        if marker in seen:
            return
        seen.add(marker)
        candidates.append(value)

    stripped = strip_administrative(normalized, keep_city=city)
    without_number = remove_leading_house_number(stripped)

    add(_with_suffixes(normalized, country))
    add(normalized)
    add(_with_suffixes(stripped, city, country))
    add(_with_suffixes(without_number, city, country))
    add(remove_diacritics(_with_suffixes(normalized, country)))

    return candidates[:limit]
