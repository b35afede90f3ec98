#!/usr/bin/env python3
"""Helper script to check and create the .env file for the geocoder and hub settings."""

import os
import sys
from pathlib import Path

TEMPLATE = """# Geocoding provider (Nominatim usage policy requires a real contact)
GEODISPATCH_NOMINATIM_BASE_URL=https://nominatim.openstreetmap.org/
GEODISPATCH_GEOCODER_CONTACT_EMAIL=you@example.com
GEODISPATCH_GEOCODER_USER_AGENT=Geodispatch/1.0 (contact: you@example.com)

# API Configuration
GEODISPATCH_API_PREFIX=/api
GEODISPATCH_LOG_LEVEL=INFO
# GEODISPATCH_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Hubs
GEODISPATCH_HUB_FILE=./data/hubs.xlsx
"""

CHECKED = (
    "GEODISPATCH_NOMINATIM_BASE_URL",
    "GEODISPATCH_GEOCODER_CONTACT_EMAIL",
    "GEODISPATCH_GEOCODER_USER_AGENT",
    "GEODISPATCH_HUB_FILE",
)


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Geodispatch Environment Checker")
    print("=" * 60)
    print()

    if env_file.exists():
        print(f"[OK] Found .env file at: {env_file}")
        print("-" * 60)
        print(env_file.read_text(encoding="utf-8"))
        print("-" * 60)
    else:
        print(f"[MISSING] .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"[OK] Created template .env file at: {env_file}")
        print("Please edit it and set a real contact email before geocoding.")
        return 0

    print("Checking environment variables...")
    for name in CHECKED:
        value = os.getenv(name)
        print(f"  {name}: {value if value else '(default)'}")
    print()

    print("Testing config loading...")
    sys.path.insert(0, str(project_root / "src"))
    try:
        from geodispatch.config import settings
    except Exception as e:
        print(f"[ERROR] Error loading config: {e}")
        return 1

    print(f"  Provider:      {settings.nominatim_base_url}")
    print(f"  Contact:       {settings.geocoder_contact_email}")
    print(f"  Min interval:  {settings.min_request_interval_seconds}s")
    print(f"  Hub workbook:  {settings.hub_file} ({'found' if settings.hub_file.exists() else 'missing'})")
    print()

    if settings.geocoder_contact_email.endswith(".local"):
        print("[WARN] Contact email still uses the placeholder domain.")
        return 1
    print("[OK] Configuration looks usable.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
