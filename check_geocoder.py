#!/usr/bin/env python3
"""Manual smoke test against the configured geocoding provider."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from geodispatch.config import settings
from geodispatch.services.geocoding import get_geocoding_service, normalize

SAMPLES = (
    "123 Nguyen Trai, Q.5, TP.HCM",
    "Chợ Bến Thành, Quận 1, TP.HCM",
    "10.7769, 106.7009",
)


def main():
    print("=" * 60)
    print("Geocoder Connection Test")
    print("=" * 60)
    print(f"Provider: {settings.nominatim_base_url}")
    print(f"Contact:  {settings.geocoder_contact_email}")
    print()

    service = get_geocoding_service()
    failures = 0
    for index, address in enumerate(SAMPLES, start=1):
        print(f"{index}. {address}")
        print(f"   normalized: {normalize(address)}")
        result = service.resolve(address, timeout=settings.geocode_timeout_seconds)
        if result.ok:
            print(f"   [OK] {result.coordinate.lat:.6f}, {result.coordinate.lng:.6f}")
        else:
            failures += 1
            print(f"   [ERROR] {result.error.kind.value}: {result.error.message}")
        print()

    reverse = service.reverse(10.7769, 106.7009, timeout=settings.reverse_timeout_seconds)
    if reverse.ok:
        print(f"Reverse: [OK] {reverse.display_name}")
    else:
        failures += 1
        print(f"Reverse: [ERROR] {reverse.error.message}")

    print()
    print("=" * 60)
    print("All checks passed" if not failures else f"{failures} check(s) failed")
    print("=" * 60)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
