"""Great-circle distance and nearby-listing filtering."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

EARTH_RADIUS_KM = 6371.0
DEFAULT_MAX_DISTANCE_KM = 50.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the Haversine distance in kilometres between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Guard against rounding pushing `a` a hair past 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def filter_nearby(
    listings: Iterable[dict[str, Any]],
    lat: float,
    lng: float,
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
) -> list[dict[str, Any]]:
    """
    Keep listings within ``max_distance_km`` of ``(lat, lng)``.

    Listings missing ``location_lat`` or ``location_lng`` are dropped. A
    coordinate of 0 is a real coordinate. Each kept listing is returned as a
    copy with ``distance_km`` (rounded to 2 dp) added; input order is kept.
    """
    nearby: list[dict[str, Any]] = []
    for listing in listings:
        listing_lat = listing.get("location_lat")
        listing_lng = listing.get("location_lng")
        if listing_lat is None or listing_lng is None:
            continue
        distance = haversine_km(lat, lng, float(listing_lat), float(listing_lng))
        if distance <= max_distance_km:
            nearby.append({**listing, "distance_km": round(distance, 2)})
    return nearby
