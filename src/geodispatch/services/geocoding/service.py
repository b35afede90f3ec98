"""Geocoding orchestration: normalisation, caches and candidate fallback."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Sequence

from ...config import settings
from ...models.domain import AddressQuery, Stop
from ..geospatial import parse_lat_lng
from .cache import GeocodeCache, make_key, reverse_key
from .candidates import build_candidates
from .nominatim_client import NominatimClient
from .normalizer import compose_address, is_too_vague, normalize
from .rate_gate import RateGate
from .results import GeocodeError, GeocodeErrorKind, GeocodeResult, ReverseResult

logger = logging.getLogger(__name__)

RECENTLY_FAILED_MESSAGE = (
    "This address failed to geocode recently. Add more detail "
    "(house number and street, or a building name) and try again."
)
TOO_VAGUE_MESSAGE = (
    "Address is too vague to locate precisely. Add a house number and street, "
    "or a specific building or landmark name."
)
MAX_DEBUG_MESSAGES = 2
PENDING_POLL_SECONDS = 0.05


@dataclass(slots=True)
class _PendingLookup:
    done: threading.Event = field(default_factory=threading.Event)
    result: GeocodeResult | None = None


@dataclass(slots=True)
class CoordinateFill:
    stops: list[Stop]
    filled: int = 0
    skipped: int = 0
    debug: list[str] = field(default_factory=list)


class GeocodingService:
    """Resolves addresses to coordinates through a shared cache and rate-limited client."""

    def __init__(
        self,
        client: NominatimClient,
        cache: GeocodeCache,
        country_suffix: str | None = None,
        default_city: str | None = None,
        max_candidates_to_try: int | None = None,
        candidate_cap: int | None = None,
        too_vague_min_length: int | None = None,
        default_timeout_seconds: float | None = None,
        alternate_result_limit: int | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.country_suffix = settings.country_suffix if country_suffix is None else country_suffix
        self.default_city = settings.default_city if default_city is None else default_city
        self.max_candidates_to_try = (
            settings.max_candidates_to_try if max_candidates_to_try is None else max_candidates_to_try
        )
        self.candidate_cap = settings.candidate_cap if candidate_cap is None else candidate_cap
        self.too_vague_min_length = (
            settings.too_vague_min_length if too_vague_min_length is None else too_vague_min_length
        )
        self.default_timeout_seconds = (
            settings.geocode_timeout_seconds if default_timeout_seconds is None else default_timeout_seconds
        )
        self.alternate_result_limit = (
            settings.alternate_result_limit if alternate_result_limit is None else alternate_result_limit
        )
        self._pending: dict[str, _PendingLookup] = {}
        self._pending_lock = threading.Lock()

    def candidates(self, address: str) -> list[str]:
        return build_candidates(
            address,
            country_suffix=self.country_suffix,
            default_city=self.default_city,
            cap=self.candidate_cap,
        )

    def geocode_with_fallback(
        self,
        address: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        limit: int = 1,
    ) -> GeocodeResult:
        """Try the first candidates, each restricted to the default country and then unrestricted.

        Returns the first success, otherwise the last non-empty error seen. ``limit``
        is the provider result count per query; the first parseable result wins.
        """
        if not address or not address.strip():
            return GeocodeResult.failure(GeocodeErrorKind.EMPTY_INPUT, "Empty address")

        per_try = self.default_timeout_seconds if timeout is None else timeout
        last_error = GeocodeError(GeocodeErrorKind.NO_RESULT, "No result")
        for candidate in self.candidates(address)[: self.max_candidates_to_try]:
            for restricted in (True, False):
                result = self.client.forward(
                    candidate,
                    country_restricted=restricted,
                    timeout=per_try,
                    cancel=cancel,
                    limit=limit,
                )
                if result.ok:
                    logger.debug("Geocoded candidate %r (country restricted=%s)", candidate, restricted)
                    return result
                if result.error is None:
                    continue
                if result.error.message:
                    last_error = result.error
                if result.error.kind in (GeocodeErrorKind.CANCELLED, GeocodeErrorKind.FORBIDDEN):
                    return result
        return GeocodeResult(error=last_error)

    def resolve(
        self,
        address: str,
        namespace: str = "addr",
        key_parts: Sequence[str] = (),
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> GeocodeResult:
        return self.resolve_query(
            AddressQuery(text=address),
            namespace=namespace,
            key_parts=key_parts,
            timeout=timeout,
            cancel=cancel,
        )

    def resolve_query(
        self,
        query: AddressQuery,
        namespace: str = "addr",
        key_parts: Sequence[str] = (),
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> GeocodeResult:
        """Resolve an address (with optional hints) consulting both caches first."""
        literal = parse_lat_lng(query.text)
        if literal is not None:
            return GeocodeResult.success(literal)

        hints = (query.ward, query.district, query.province)
        has_hints = any(hint and hint.strip() for hint in hints)
        text = compose_address(query) if has_hints else normalize(query.text)
        if not text:
            return GeocodeResult.failure(GeocodeErrorKind.EMPTY_INPUT, "Empty address")

        key_fields = [*key_parts, text]
        if has_hints:
            key_fields.extend([query.province or "", query.district or "", query.ward or ""])
        key = make_key(namespace, *key_fields)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Geocode cache hit for %s", key)
            return GeocodeResult.success(cached)
        if self.cache.get_failure(key):
            return GeocodeResult.failure(GeocodeErrorKind.RECENTLY_FAILED, RECENTLY_FAILED_MESSAGE)

        if is_too_vague(text, self.too_vague_min_length):
            self.cache.mark_failed(key)
            return GeocodeResult.failure(GeocodeErrorKind.TOO_VAGUE, TOO_VAGUE_MESSAGE)

        # A hinted query is a single composed guess, so collect alternates for it.
        limit = self.alternate_result_limit if has_hints else 1
        return self._lookup_once(key, text, limit, timeout, cancel)

    def _lookup_once(
        self,
        key: str,
        text: str,
        limit: int,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> GeocodeResult:
        """Run at most one provider lookup per key at a time.

        Callers arriving while a lookup for the same key is running wait for it and
        share its result. If that lookup was cancelled by its own caller or raised,
        the next waiter runs the lookup itself.
        """
        while True:
            with self._pending_lock:
                pending = self._pending.get(key)
                leader = pending is None
                if leader:
                    pending = self._pending[key] = _PendingLookup()

            if leader:
                try:
                    pending.result = self._geocode_and_cache(key, text, limit, timeout, cancel)
                    return pending.result
                finally:
                    with self._pending_lock:
                        self._pending.pop(key, None)
                    pending.done.set()

            while not pending.done.wait(PENDING_POLL_SECONDS):
                if cancel is not None and cancel.is_set():
                    return GeocodeResult.failure(GeocodeErrorKind.CANCELLED, "Cancelled while waiting for a lookup.")
            shared = pending.result
            if shared is not None and not (shared.error and shared.error.kind is GeocodeErrorKind.CANCELLED):
                logger.debug("Shared in-flight lookup for %s", key)
                return shared

    def _geocode_and_cache(
        self,
        key: str,
        text: str,
        limit: int,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> GeocodeResult:
        # Another lookup for this key may have finished since the caller checked the cache.
        cached = self.cache.get(key)
        if cached is not None:
            return GeocodeResult.success(cached)
        if self.cache.get_failure(key):
            return GeocodeResult.failure(GeocodeErrorKind.RECENTLY_FAILED, RECENTLY_FAILED_MESSAGE)

        result = self.geocode_with_fallback(text, timeout=timeout, cancel=cancel, limit=limit)
        if result.ok:
            self.cache.put(key, result.coordinate)
            logger.info("Resolved %r to %s", text, result.coordinate.as_query())
        elif result.error is not None and not result.error.kind.transient:
            self.cache.mark_failed(key)
            logger.info("Could not resolve %r: %s", text, result.error.message)
        return result

    def reverse(
        self,
        lat: float,
        lng: float,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> ReverseResult:
        key = reverse_key(lat, lng)
        cached = self.cache.get_reverse(key)
        if cached is not None:
            return ReverseResult.success(cached)

        result = self.client.reverse(lat, lng, timeout=timeout, cancel=cancel)
        if result.ok:
            display = normalize(result.display_name)
            self.cache.put_reverse(key, display)
            return ReverseResult.success(display)
        return result

    def ensure_coordinates(
        self,
        stops: Sequence[Stop],
        limit: int | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> CoordinateFill:
        """Geocode stops missing a coordinate, at most ``limit`` per call.

        Returns new Stop values; the input sequence is not modified.
        """
        cap = settings.max_stops_to_geocode if limit is None else limit
        updated = list(stops)
        missing = [
            index
            for index, stop in enumerate(updated)
            if stop.coordinate is None and stop.address_text and stop.address_text.strip()
        ]
        fill = CoordinateFill(stops=updated, skipped=max(0, len(missing) - cap))

        for index in missing[:cap]:
            if cancel is not None and cancel.is_set():
                break
            stop = updated[index]
            result = self.resolve(stop.address_text, timeout=timeout, cancel=cancel)
            if result.ok:
                updated[index] = replace(stop, coordinate=result.coordinate)
                fill.filled += 1
            elif len(fill.debug) < MAX_DEBUG_MESSAGES:
                message = result.error.message if result.error else "No result"
                fill.debug.append(f"[{stop.id}] {message}")
        return fill


@lru_cache()
def get_geocoding_service() -> GeocodingService:
    """Process-wide service instance sharing one cache and one rate gate."""
    gate = RateGate(min_interval_seconds=settings.min_request_interval_seconds)
    cache = GeocodeCache(negative_ttl_seconds=settings.negative_cache_ttl_seconds)
    return GeocodingService(client=NominatimClient(gate=gate), cache=cache)
