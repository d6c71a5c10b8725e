#Purpose: Deliverability check (is this address inside a delivery zone?).
#Given the establishment and a destination coordinate:
#straight-line distance from the establishment
#travel-time estimate (feeds travel_minutes of slot queries and reservations)
#zone lookup by ascending max distance -> fee / minimum order
#Output: a DeliveryQuote the caller can show as-is.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from establishments.models import Establishment

from .geo import LatLon, estimate_travel_minutes, haversine_km

# used when the establishment has no coordinates configured
DEFAULT_ESTABLISHMENT_LOCATION: LatLon = (50.4667, 3.9167)

# used when the establishment has no active zones configured
DEFAULT_ZONE_NAME = "Zone standard"
DEFAULT_ZONE_MAX_KM = 10.0
DEFAULT_ZONE_FEE = 3.00


@dataclass(frozen=True)
class DeliveryQuote:
    is_deliverable: bool
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    fee: Optional[float] = None
    zone_name: Optional[str] = None
    min_order_amount: float = 0.0
    reason: Optional[str] = None


def check_deliverable(establishment: Establishment, destination: LatLon) -> DeliveryQuote:
    if not establishment.delivery_enabled:
        return DeliveryQuote(False, reason="delivery is not available for this establishment")

    origin = establishment.location or DEFAULT_ESTABLISHMENT_LOCATION
    distance = haversine_km(origin, destination)
    duration = estimate_travel_minutes(distance)
    rounded = round(distance, 1)

    zones = establishment.active_zones()
    if not zones:
        if distance <= DEFAULT_ZONE_MAX_KM:
            return DeliveryQuote(True, rounded, duration, DEFAULT_ZONE_FEE, DEFAULT_ZONE_NAME)
        return DeliveryQuote(
            False, rounded, duration,
            reason=f"address too far (max {DEFAULT_ZONE_MAX_KM:g} km)",
        )

    # first zone whose radius contains the destination
    for zone in zones:
        if distance <= zone.max_distance_km:
            return DeliveryQuote(
                True, rounded, duration,
                fee=zone.delivery_fee,
                zone_name=zone.name,
                min_order_amount=zone.min_order_amount,
            )

    return DeliveryQuote(
        False, rounded, duration,
        reason=f"address too far (max {zones[-1].max_distance_km:g} km)",
    )
