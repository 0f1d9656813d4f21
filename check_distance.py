#!/usr/bin/env python3
"""Verify that the distance matrix service is reachable and answering."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from welfare_routing.config import settings
from welfare_routing.services.routing.distance_client import DistanceMatrixClient, DistanceServiceError
from welfare_routing.services.routing.models import LegOk


def main():
    print("=" * 60)
    print("Distance Matrix Connection Test")
    print("=" * 60)
    print()

    print("1. Checking configuration...")
    if not settings.distance_proxy_url and not settings.google_maps_api_key:
        print("   [ERROR] No distance service configured")
        print("   Set WFR_DISTANCE_PROXY_URL or WFR_GOOGLE_MAPS_API_KEY in your .env file")
        return 1
    print(f"   [OK] Proxy URL: {settings.distance_proxy_url or '(not set)'}")
    print(f"   [OK] Direct API key: {'set' if settings.google_maps_api_key else '(not set)'}")
    print()

    print("2. Requesting a two-leg matrix...")
    origins = [(35.681236, 139.767125), (35.689487, 139.691711)]  # Tokyo, Shinjuku
    destinations = [(35.689487, 139.691711), (35.658034, 139.701636)]  # Shinjuku, Shibuya
    try:
        matrix = DistanceMatrixClient().matrix(origins, destinations)
    except (ValueError, DistanceServiceError) as e:
        print(f"   [ERROR] {e}")
        return 1

    for index in range(len(origins)):
        leg = matrix[index][index] if index < len(matrix) and index < len(matrix[index]) else None
        if isinstance(leg, LegOk):
            print(f"   [OK] Leg {index}: {leg.distance_m:.0f} m, {leg.duration_s:.0f} s")
        else:
            print(f"   [ERROR] Leg {index} unavailable: {leg}")
            return 1
    print()

    print("=" * 60)
    print("[SUCCESS] Distance service is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
