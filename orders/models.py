"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, establishment, type, status, timestamps, committed slot, kitchen launch, priority)
- SlotWindow (start, end) for a committed pickup/delivery slot

Defines enums/constants:
- OrderType = PICKUP | DELIVERY | IMMEDIATE
- OrderStatus = PENDING | CONFIRMED | PREPARING | READY | COMPLETED | CANCELLED

Rule: No persistence, no scheduling logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple

LatLon = Tuple[float, float]

# priority given to orders promoted by the launch scheduler so they sort
# ahead of the normal FIFO kitchen queue
HIGH_PRIORITY_SCORE = 1000


class OrderType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    IMMEDIATE = "immediate"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SlotWindow:
    """
    A committed booking window. Start inclusive, end exclusive.
    """
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: SlotWindow) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass
class Order:
    """
    A customer order as seen by the scheduling core.

    The order-management side owns creation and most fields; the core only
    writes slot, kitchen_launch_at, estimated_prep_minutes, priority_score,
    the promotion into CONFIRMED and the delivery round link.
    """

    id: str
    establishment_id: str
    order_type: OrderType = OrderType.PICKUP
    status: OrderStatus = OrderStatus.PENDING

    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    slot: Optional[SlotWindow] = None
    kitchen_launch_at: Optional[datetime] = None
    estimated_prep_minutes: Optional[int] = None
    priority_score: int = 0

    # delivery only
    destination: Optional[LatLon] = None
    delivery_address: Optional[str] = None
    estimated_travel_minutes: Optional[int] = None
    delivery_round_id: Optional[str] = None

    @property
    def is_delivery(self) -> bool:
        return self.order_type == OrderType.DELIVERY

    @property
    def prep_duration_minutes(self) -> Optional[float]:
        """
        Elapsed kitchen time (creation -> completion) in minutes, if completed.
        """
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds() / 60
