"""Hub loader backed by an Excel workbook, cached in-process for a short TTL."""

from __future__ import annotations

import logging
import threading
import time
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

from openpyxl import load_workbook

from ..config import settings
from ..models.domain import Coordinate, Hub
from ..services.geospatial import is_valid_lat_lng

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"Id", "Name", "Latitude", "Longitude"}
_FALSE_VALUES = {"0", "false", "no", "n", "inactive"}


def _to_float(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _hub_id(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _is_active(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in _FALSE_VALUES


def load_hubs(source: Path | None = None) -> tuple[Hub, ...]:
    """Load every hub from the workbook, ordered by name."""
    workbook_path = source or settings.hub_file
    if not workbook_path.exists():
        raise FileNotFoundError(f"Hub workbook not found: {workbook_path}")

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        sheet = wb.active
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Hub workbook '{workbook_path}' is empty.")

        header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
        missing_columns = REQUIRED_COLUMNS - set(header_map)
        if missing_columns:
            raise ValueError(f"Hub workbook missing columns: {', '.join(sorted(missing_columns))}")

        def cell(row: tuple, column: str) -> Any:
            idx = header_map.get(column)
            return row[idx] if idx is not None and idx < len(row) else None

        hubs: list[Hub] = []
        for row in rows:
            hub_id = cell(row, "Id")
            if hub_id is None or not str(hub_id).strip():
                continue
            lat, lng = _to_float(cell(row, "Latitude")), _to_float(cell(row, "Longitude"))
            coordinate = Coordinate(lat, lng) if lat is not None and lng is not None and is_valid_lat_lng(lat, lng) else None
            if coordinate is None and (lat is not None or lng is not None):
                logger.warning("Hub %s has an invalid coordinate (%s, %s); ignoring it", hub_id, lat, lng)
            hubs.append(
                Hub(
                    id=_hub_id(hub_id),
                    name=str(cell(row, "Name") or "").strip(),
                    address=str(cell(row, "Address") or "").strip(),
                    coordinate=coordinate,
                    active=_is_active(cell(row, "Active")),
                )
            )
    finally:
        wb.close()

    hubs.sort(key=lambda hub: hub.name)
    return tuple(hubs)


class HubRepository:
    """Serves active hubs, reloading the workbook at most once per TTL."""

    def __init__(
        self,
        source: Path | None = None,
        ttl_seconds: float | None = None,
        loader: Callable[[Path | None], tuple[Hub, ...]] = load_hubs,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = settings.hub_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._loader = loader
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[tuple[float, tuple[Hub, ...]]] = None

    def _fresh(self) -> Optional[tuple[Hub, ...]]:
        cached = self._cached
        if cached is not None and self._clock() - cached[0] < self.ttl_seconds:
            return cached[1]
        return None

    def active_hubs(self) -> tuple[Hub, ...]:
        hubs = self._fresh()
        if hubs is not None:
            return hubs
        with self._lock:
            hubs = self._fresh()
            if hubs is not None:
                return hubs
            hubs = tuple(hub for hub in self._loader(self.source) if hub.active)
            self._cached = (self._clock(), hubs)
            logger.info("Loaded %d active hubs", len(hubs))
            return hubs

    def get(self, hub_id: str) -> Optional[Hub]:
        wanted = str(hub_id).strip()
        return next((hub for hub in self.active_hubs() if hub.id == wanted), None)

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None


@lru_cache()
def get_hub_repository() -> HubRepository:
    """Process-wide repository shared by the API routes."""
    return HubRepository()
