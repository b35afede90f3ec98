"""Structured geocoding outcomes.

Ordinary failures never surface as exceptions; every layer returns one of the
result types below and callers decide whether a missing value is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...models.domain import Coordinate


class GeocodeErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    TOO_VAGUE = "too_vague"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    NO_RESULT = "no_result"
    PARSE_FAILURE = "parse_failure"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    RECENTLY_FAILED = "recently_failed"
    CANCELLED = "cancelled"

    @property
    def transient(self) -> bool:
        """Failures that say nothing about the address itself and must not be negative-cached."""
        return self in _TRANSIENT_KINDS


_TRANSIENT_KINDS = frozenset(
    {
        GeocodeErrorKind.RATE_LIMITED,
        GeocodeErrorKind.TIMEOUT,
        GeocodeErrorKind.NETWORK_ERROR,
        GeocodeErrorKind.CANCELLED,
    }
)


@dataclass(frozen=True, slots=True)
class GeocodeError:
    kind: GeocodeErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    coordinate: Optional[Coordinate] = None
    error: Optional[GeocodeError] = None

    @property
    def ok(self) -> bool:
        return self.coordinate is not None

    @classmethod
    def success(cls, coordinate: Coordinate) -> "GeocodeResult":
        return cls(coordinate=coordinate)

    @classmethod
    def failure(cls, kind: GeocodeErrorKind, message: str) -> "GeocodeResult":
        return cls(error=GeocodeError(kind, message))


@dataclass(frozen=True, slots=True)
class ReverseResult:
    display_name: Optional[str] = None
    error: Optional[GeocodeError] = None

    @property
    def ok(self) -> bool:
        return bool(self.display_name)

    @classmethod
    def success(cls, display_name: str) -> "ReverseResult":
        return cls(display_name=display_name)

    @classmethod
    def failure(cls, kind: GeocodeErrorKind, message: str) -> "ReverseResult":
        return cls(error=GeocodeError(kind, message))
