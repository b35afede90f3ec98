import threading

import httpx
import pytest

from src.geodispatch.models.domain import Coordinate
from src.geodispatch.services.geocoding.nominatim_client import NominatimClient
from src.geodispatch.services.geocoding.rate_gate import RateGate
from src.geodispatch.services.geocoding.results import GeocodeErrorKind

BASE_URL = "https://geocoder.test/"


class RecordingSleep:
    def __init__(self, result: bool = True):
        self.result = result
        self.calls: list[float] = []

    def __call__(self, seconds, cancel=None) -> bool:
        self.calls.append(seconds)
        return self.result


def _client(handler, sleep=None, max_retries=1, **kwargs) -> NominatimClient:
    return NominatimClient(
        gate=RateGate(min_interval_seconds=0.0),
        base_url=BASE_URL,
        user_agent="GeodispatchTests/1.0",
        contact_email="tests@example.com",
        accept_language="vi-VN,vi;q=0.9,en;q=0.8",
        country_code="vn",
        max_retries=max_retries,
        backoff_seconds=0.6,
        reverse_backoff_seconds=1.2,
        reverse_min_interval_seconds=0.0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


def _responses(*responses):
    """Handler returning the given responses in order and recording each request."""
    queue = list(responses)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return queue.pop(0)

    return handler, seen


def test_forward_sends_identifying_headers_and_restricted_params():
    handler, seen = _responses(httpx.Response(200, json=[{"lat": "10.7769", "lon": "106.7009"}]))

    result = _client(handler).forward("123 Nguyen Trai, Việt Nam", limit=5)

    assert result.ok
    assert result.coordinate == Coordinate(10.7769, 106.7009)
    request = seen[0]
    assert request.url.path == "/search"
    assert request.headers["User-Agent"] == "GeodispatchTests/1.0"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["Accept-Language"] == "vi-VN,vi;q=0.9,en;q=0.8"
    params = request.url.params
    assert params["format"] == "jsonv2"
    assert params["limit"] == "5"
    assert params["countrycodes"] == "vn"
    assert params["email"] == "tests@example.com"
    assert params["q"] == "123 Nguyen Trai, Việt Nam"


def test_unrestricted_forward_omits_country_code():
    handler, seen = _responses(httpx.Response(200, json=[{"lat": "1", "lon": "2"}]))

    _client(handler).forward("Somewhere", country_restricted=False)

    assert "countrycodes" not in seen[0].url.params


def test_rate_limited_then_success_sleeps_exactly_once():
    handler, seen = _responses(
        httpx.Response(429, text="slow down"),
        httpx.Response(200, json=[{"lat": "10.5", "lon": "106.5"}]),
    )
    sleep = RecordingSleep()

    result = _client(handler, sleep=sleep).forward("123 Nguyen Trai")

    assert result.coordinate == Coordinate(10.5, 106.5)
    assert sleep.calls == [0.6]
    assert len(seen) == 2


def test_rate_limited_until_retries_exhausted():
    handler, seen = _responses(httpx.Response(429), httpx.Response(429))
    sleep = RecordingSleep()

    result = _client(handler, sleep=sleep).forward("123 Nguyen Trai")

    assert result.error.kind is GeocodeErrorKind.RATE_LIMITED
    assert result.error.message == "429 Too Many Requests"
    assert len(seen) == 2
    assert sleep.calls == [0.6]


def test_cancel_during_backoff():
    handler, seen = _responses(httpx.Response(429))

    result = _client(handler, sleep=RecordingSleep(result=False)).forward("123 Nguyen Trai")

    assert result.error.kind is GeocodeErrorKind.CANCELLED
    assert len(seen) == 1


def test_forbidden_is_reported_without_retry():
    handler, seen = _responses(httpx.Response(403, text="blocked"))

    result = _client(handler).forward("123 Nguyen Trai")

    assert result.error.kind is GeocodeErrorKind.FORBIDDEN
    assert "403" in result.error.message
    assert len(seen) == 1


def test_other_http_errors_carry_truncated_body():
    body = "line one\nline two " + "x" * 400
    handler, _ = _responses(httpx.Response(500, text=body))

    result = _client(handler).forward("123 Nguyen Trai")

    assert result.error.kind is GeocodeErrorKind.HTTP_ERROR
    assert result.error.message.startswith("HTTP 500: line one line two")
    assert "\n" not in result.error.message
    assert len(result.error.message) == len("HTTP 500: ") + 160


@pytest.mark.parametrize(
    "response, kind",
    [
        (httpx.Response(200, json=[]), GeocodeErrorKind.NO_RESULT),
        (httpx.Response(200, text="<html>proxy</html>"), GeocodeErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, json={"lat": "1", "lon": "2"}), GeocodeErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, json=[{"display_name": "no coordinates"}]), GeocodeErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, json=[{"lat": "abc", "lon": "106"}]), GeocodeErrorKind.PARSE_FAILURE),
        (httpx.Response(200, json=[{"lat": "95", "lon": "106"}]), GeocodeErrorKind.PARSE_FAILURE),
    ],
)
def test_unusable_payloads(response, kind):
    handler, _ = _responses(response)

    result = _client(handler).forward("123 Nguyen Trai")

    assert not result.ok
    assert result.error.kind is kind


def test_first_parseable_alternate_wins():
    handler, _ = _responses(
        httpx.Response(200, json=[{"lat": "n/a", "lon": "106"}, {"lat": "10.1", "lon": "106.2"}]),
    )

    result = _client(handler).forward("123 Nguyen Trai", limit=5)

    assert result.coordinate == Coordinate(10.1, 106.2)


def test_timeout_and_network_errors():
    def timeout_handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    def refused_handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert _client(timeout_handler).forward("a").error.kind is GeocodeErrorKind.TIMEOUT
    assert _client(refused_handler).forward("a").error.kind is GeocodeErrorKind.NETWORK_ERROR


def test_empty_query_and_cancelled_token_skip_the_network():
    handler, seen = _responses()
    cancel = threading.Event()
    cancel.set()

    assert _client(handler).forward("   ").error.kind is GeocodeErrorKind.EMPTY_INPUT
    assert _client(handler).forward("123 Nguyen Trai", cancel=cancel).error.kind is GeocodeErrorKind.CANCELLED
    assert seen == []


def test_reverse_returns_display_name():
    handler, seen = _responses(httpx.Response(200, json={"display_name": "12 Lê Lợi, Quận 1, Hồ Chí Minh"}))

    result = _client(handler).reverse(10.7769, 106.7009)

    assert result.ok
    assert result.display_name == "12 Lê Lợi, Quận 1, Hồ Chí Minh"
    params = seen[0].url.params
    assert seen[0].url.path == "/reverse"
    assert params["lat"] == "10.7769"
    assert params["lon"] == "106.7009"
    assert params["zoom"] == "18"


def test_reverse_uses_its_own_backoff_and_reports_provider_error():
    handler, _ = _responses(
        httpx.Response(429),
        httpx.Response(200, json={"error": "Unable to geocode"}),
    )
    sleep = RecordingSleep()

    result = _client(handler, sleep=sleep).reverse(0.0, 0.0)

    assert sleep.calls == [1.2]
    assert result.error.kind is GeocodeErrorKind.NO_RESULT
    assert result.error.message == "Unable to geocode"


def test_reverse_rejects_invalid_coordinate():
    handler, seen = _responses()

    assert _client(handler).reverse(120.0, 0.0).error.kind is GeocodeErrorKind.EMPTY_INPUT
    assert seen == []


def test_reverse_calls_are_spaced_by_their_own_interval():
    class Clock:
        now = 0.0

        def __call__(self):
            return self.now

    gate_sleep = RecordingSleep()
    gate = RateGate(min_interval_seconds=0.95, clock=Clock(), sleep=gate_sleep)
    handler, _ = _responses(
        httpx.Response(200, json=[{"lat": "1", "lon": "2"}]),
        httpx.Response(200, json={"display_name": "Somewhere"}),
    )
    client = NominatimClient(
        gate=gate,
        base_url=BASE_URL,
        reverse_min_interval_seconds=1.1,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    client.forward("123 Nguyen Trai")
    client.reverse(1.0, 2.0)

    assert gate_sleep.calls == [pytest.approx(1.1)]
