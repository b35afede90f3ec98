"""HTTP client for a Nominatim-compatible geocoding provider."""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable, Optional, TypeVar, Union

import httpx

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import is_valid_lat_lng
from .rate_gate import RateGate, Sleeper, wait_or_cancel
from .results import GeocodeErrorKind, GeocodeResult, ReverseResult

logger = logging.getLogger(__name__)

BODY_SNIPPET_LENGTH = 160
REVERSE_ZOOM = 18

ResultT = TypeVar("ResultT", GeocodeResult, ReverseResult)


def _truncate(body: str, limit: int = BODY_SNIPPET_LENGTH) -> str:
    flattened = body.replace("\r", " ").replace("\n", " ").strip()
    return flattened[:limit]


def _parse_decimal(value: Any) -> float | None:
    """Parse a decimal string independent of locale. Returns None when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _coordinate_from_item(item: Any) -> GeocodeResult:
    if not isinstance(item, dict) or "lat" not in item or "lon" not in item:
        return GeocodeResult.failure(GeocodeErrorKind.MALFORMED_RESPONSE, "Result is missing lat/lon fields.")

    lat = _parse_decimal(item["lat"])
    if lat is None:
        return GeocodeResult.failure(GeocodeErrorKind.PARSE_FAILURE, "Could not parse latitude.")
    lng = _parse_decimal(item["lon"])
    if lng is None:
        return GeocodeResult.failure(GeocodeErrorKind.PARSE_FAILURE, "Could not parse longitude.")
    if not is_valid_lat_lng(lat, lng):
        return GeocodeResult.failure(GeocodeErrorKind.PARSE_FAILURE, f"Coordinate out of range: {lat},{lng}")
    return GeocodeResult.success(Coordinate(lat, lng))


def _parse_search(payload: Any) -> GeocodeResult:
    if not isinstance(payload, list):
        return GeocodeResult.failure(GeocodeErrorKind.MALFORMED_RESPONSE, "Expected a JSON array of results.")
    if not payload:
        return GeocodeResult.failure(GeocodeErrorKind.NO_RESULT, "No result")

    first_error: Optional[GeocodeResult] = None
    for item in payload:
        result = _coordinate_from_item(item)
        if result.ok:
            return result
        first_error = first_error or result
    return first_error


def _parse_reverse(payload: Any) -> ReverseResult:
    if not isinstance(payload, dict):
        return ReverseResult.failure(GeocodeErrorKind.MALFORMED_RESPONSE, "Expected a JSON object.")
    display = payload.get("display_name")
    if isinstance(display, str) and display.strip():
        return ReverseResult.success(display.strip())
    message = payload.get("error") if isinstance(payload.get("error"), str) else "No display_name"
    return ReverseResult.failure(GeocodeErrorKind.NO_RESULT, message)


class NominatimClient:
    """Forward and reverse geocoding through the shared :class:`RateGate`.

    Every call holds a gate permit for its whole duration, including the
    rate-limit backoff, so only one provider request is in flight process-wide.
    """

    def __init__(
        self,
        gate: RateGate,
        base_url: str | None = None,
        user_agent: str | None = None,
        contact_email: str | None = None,
        accept_language: str | None = None,
        country_code: str | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        reverse_backoff_seconds: float | None = None,
        reverse_min_interval_seconds: float | None = None,
        http_client: httpx.Client | None = None,
        sleep: Sleeper = wait_or_cancel,
    ) -> None:
        self.gate = gate
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("Geocoder base URL is not configured.")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.contact_email = contact_email or settings.geocoder_contact_email
        self.accept_language = accept_language or settings.geocoder_accept_language
        self.country_code = country_code or settings.default_country_code
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.rate_limit_backoff_seconds
        self.reverse_backoff_seconds = (
            reverse_backoff_seconds if reverse_backoff_seconds is not None else settings.reverse_backoff_seconds
        )
        self.reverse_min_interval_seconds = (
            reverse_min_interval_seconds
            if reverse_min_interval_seconds is not None
            else settings.reverse_min_interval_seconds
        )
        self._http_client = http_client
        self._sleep = sleep

    def _get_client(self) -> tuple[httpx.Client, bool]:
        """Return the injected client, or a fresh one the caller must close."""
        if self._http_client is not None:
            return self._http_client, False
        return httpx.Client(follow_redirects=True), True

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Accept-Language": self.accept_language,
        }

    def forward(
        self,
        query: str,
        country_restricted: bool = True,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        limit: int = 1,
        address_details: bool = False,
    ) -> GeocodeResult:
        """Resolve ``query`` to the first result with usable coordinates."""
        if not query or not query.strip():
            return GeocodeResult.failure(GeocodeErrorKind.EMPTY_INPUT, "Empty address")

        params: dict[str, Union[str, int]] = {
            "format": "jsonv2",
            "limit": max(1, limit),
            "addressdetails": 1 if address_details else 0,
        }
        if country_restricted:
            params["countrycodes"] = self.country_code
        params["email"] = self.contact_email
        params["q"] = query.strip()

        return self._call(
            "search",
            params,
            timeout=timeout if timeout is not None else settings.geocode_timeout_seconds,
            cancel=cancel,
            backoff_seconds=self.backoff_seconds,
            parse=_parse_search,
            fail=GeocodeResult.failure,
        )

    def reverse(
        self,
        lat: float,
        lng: float,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> ReverseResult:
        """Resolve a coordinate to the provider's display address."""
        if not is_valid_lat_lng(lat, lng):
            return ReverseResult.failure(GeocodeErrorKind.EMPTY_INPUT, f"Invalid coordinate: {lat},{lng}")

        params: dict[str, Union[str, int, float]] = {
            "format": "jsonv2",
            "addressdetails": 1,
            "zoom": REVERSE_ZOOM,
            "email": self.contact_email,
            "lat": lat,
            "lon": lng,
        }
        return self._call(
            "reverse",
            params,
            timeout=timeout if timeout is not None else settings.reverse_timeout_seconds,
            cancel=cancel,
            backoff_seconds=self.reverse_backoff_seconds,
            min_interval_seconds=self.reverse_min_interval_seconds,
            parse=_parse_reverse,
            fail=ReverseResult.failure,
        )

    def _call(
        self,
        endpoint: str,
        params: dict,
        *,
        timeout: float,
        cancel: threading.Event | None,
        backoff_seconds: float,
        min_interval_seconds: float | None = None,
        parse: Callable[[Any], ResultT],
        fail: Callable[[GeocodeErrorKind, str], ResultT],
    ) -> ResultT:
        url = f"{self.base_url}/{endpoint}"
        with self.gate.permit(cancel, min_interval_seconds) as granted:
            if not granted:
                return fail(GeocodeErrorKind.CANCELLED, "Cancelled while waiting for the rate gate.")

            client, owned = self._get_client()
            try:
                for attempt in range(self.max_retries + 1):
                    if cancel is not None and cancel.is_set():
                        return fail(GeocodeErrorKind.CANCELLED, "Cancelled.")
                    try:
                        response = client.get(url, params=params, headers=self._headers(), timeout=timeout)
                    except httpx.TimeoutException as exc:
                        logger.warning("Geocoder %s request timed out after %.1fs: %s", endpoint, timeout, exc)
                        return fail(GeocodeErrorKind.TIMEOUT, "Timeout")
                    except httpx.HTTPError as exc:
                        logger.warning("Geocoder %s request failed: %s", endpoint, exc)
                        return fail(GeocodeErrorKind.NETWORK_ERROR, f"Failed to reach geocoder: {exc}")

                    if response.status_code == 429:
                        logger.warning(
                            "Geocoder rate limited %s request (attempt %d/%d)",
                            endpoint,
                            attempt + 1,
                            self.max_retries + 1,
                        )
                        if attempt < self.max_retries and not self._sleep(backoff_seconds, cancel):
                            return fail(GeocodeErrorKind.CANCELLED, "Cancelled during rate-limit backoff.")
                        continue

                    if response.status_code == 403:
                        logger.warning("Geocoder refused %s request with 403", endpoint)
                        return fail(
                            GeocodeErrorKind.FORBIDDEN,
                            "403 Forbidden: geocoder blocked the request, check User-Agent and usage policy.",
                        )

                    if not response.is_success:
                        logger.warning("Geocoder %s request returned HTTP %d", endpoint, response.status_code)
                        return fail(
                            GeocodeErrorKind.HTTP_ERROR,
                            f"HTTP {response.status_code}: {_truncate(response.text)}",
                        )

                    try:
                        payload = response.json()
                    except ValueError:
                        return fail(GeocodeErrorKind.MALFORMED_RESPONSE, "Non-JSON response (blocked or proxied?).")
                    return parse(payload)

                return fail(GeocodeErrorKind.RATE_LIMITED, "429 Too Many Requests")
            finally:
                if owned:
                    client.close()
