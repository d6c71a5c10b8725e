"""
Purpose: Core data models for the establishments domain.
What it does:
Describes an establishment's opening hours, date-specific overrides and
delivery zones without relying on Django ORM constraints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from .policy import DEFAULT_CLOSING_TIME, DEFAULT_OPENING_TIME, DEFAULT_TIMEZONE, SlotConfig, default_slot_config

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class OpeningPeriod:
    """
    One opening period of a day. Start inclusive, end exclusive.
    """
    open: time
    close: time

    def contains(self, moment: time) -> bool:
        return self.open <= moment < self.close

    @classmethod
    def parse(cls, open_str: str, close_str: str) -> OpeningPeriod:
        return cls(open=time.fromisoformat(open_str), close=time.fromisoformat(close_str))


def default_periods() -> List[OpeningPeriod]:
    return [OpeningPeriod(DEFAULT_OPENING_TIME, DEFAULT_CLOSING_TIME)]


@dataclass(frozen=True)
class DayOverride:
    """
    Date-specific exception: holiday closure, custom hours and/or custom capacity.
    An empty `periods` list keeps the weekly hours for that day.
    """
    day: date
    closed: bool = False
    periods: List[OpeningPeriod] = field(default_factory=list)
    max_orders: Optional[int] = None


@dataclass(frozen=True)
class DeliveryZone:
    name: str
    max_distance_km: float
    delivery_fee: float = 0.0
    min_order_amount: float = 0.0
    is_active: bool = True


@dataclass
class Establishment:
    """
    Everything the scheduling core needs to know about one establishment.

    weekly_hours maps weekday (0=Monday .. 6=Sunday) to opening periods.
    A weekday absent from the map is closed, unless the map is empty, in which
    case the documented default hours (11:00-22:00) apply every day.
    """
    id: str
    name: str = ""
    location: Optional[LatLon] = None
    timezone: str = DEFAULT_TIMEZONE
    delivery_enabled: bool = True
    slot_config: SlotConfig = field(default_factory=default_slot_config)
    weekly_hours: Dict[int, List[OpeningPeriod]] = field(default_factory=dict)
    overrides: Dict[date, DayOverride] = field(default_factory=dict)
    delivery_zones: List[DeliveryZone] = field(default_factory=list)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def periods_for(self, day: date) -> List[OpeningPeriod]:
        override = self.overrides.get(day)
        if override is not None:
            if override.closed:
                return []
            if override.periods:
                return list(override.periods)

        if not self.weekly_hours:
            return default_periods()
        return list(self.weekly_hours.get(day.weekday(), []))

    def is_open_at(self, day: date, moment: time) -> bool:
        return any(period.contains(moment) for period in self.periods_for(day))

    def capacity_for(self, day: date) -> int:
        override = self.overrides.get(day)
        if override is not None and override.max_orders is not None:
            return override.max_orders
        return self.slot_config.max_orders_per_slot

    def active_zones(self) -> List[DeliveryZone]:
        return sorted(
            (z for z in self.delivery_zones if z.is_active),
            key=lambda z: z.max_distance_km,
        )
