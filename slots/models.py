"""
Purpose: Domain models for slot booking.
What it does:
- SlotKey / SlotBucket: one (date, start, end, type) capacity bucket
- Reservation + ReservationResult: outcome of a booking attempt
- Slot + SlotAvailability: what a customer is offered

Rule: Models only. Capacity enforcement lives in ledger.py.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import List, Optional, Tuple

from orders.models import utcnow

LatLon = Tuple[float, float]

# reason returned when a bucket has no room left
SLOT_FULL = "slot_full"


class SlotType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class ReservationStatus(str, Enum):
    RESERVED = "reserved"
    CANCELLED = "cancelled"


def require_aware(moment: datetime, name: str) -> datetime:
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware")
    return moment


@dataclass(frozen=True)
class SlotKey:
    """
    Identifies a bucket in the establishment's local wall-clock time.
    """
    establishment_id: str
    slot_date: date
    start_time: time
    end_time: time
    slot_type: SlotType

    @classmethod
    def for_window(cls, establishment_id: str, start: datetime, end: datetime,
                   slot_type: SlotType, tz: tzinfo) -> SlotKey:
        local_start = require_aware(start, "start").astimezone(tz)
        local_end = require_aware(end, "end").astimezone(tz)
        return cls(
            establishment_id=establishment_id,
            slot_date=local_start.date(),
            start_time=local_start.time(),
            end_time=local_end.time(),
            slot_type=SlotType(slot_type),
        )

    def starts_at(self, tz: tzinfo) -> datetime:
        return datetime.combine(self.slot_date, self.start_time, tzinfo=tz)


@dataclass
class SlotBucket:
    key: SlotKey
    occupancy: int = 0
    capacity: int = 0


@dataclass
class Reservation:
    key: SlotKey
    order_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: ReservationStatus = ReservationStatus.RESERVED

    delivery_address: Optional[str] = None
    destination: Optional[LatLon] = None
    travel_minutes: Optional[int] = None

    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.RESERVED


@dataclass(frozen=True)
class ReservationResult:
    """
    Outcome of a reservation attempt. A full bucket is an expected outcome,
    not an exception.
    """
    success: bool
    reservation: Optional[Reservation] = None
    reason: Optional[str] = None
    kitchen_launch_at: Optional[datetime] = None

    @classmethod
    def full(cls) -> ReservationResult:
        return cls(success=False, reason=SLOT_FULL)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    label: str
    spots_left: int
    is_first_available: bool = False


@dataclass(frozen=True)
class SlotAvailability:
    slots: List[Slot]
    current_prep_minutes: int
    slot_duration: int
    travel_minutes: int
    total_wait_minutes: int

    @property
    def is_empty(self) -> bool:
        return not self.slots
