from __future__ import annotations

from datetime import datetime, timedelta

from orders.models import Order

# stored launch times closer than this to the recomputed value are left alone
LAUNCH_JITTER_TOLERANCE = timedelta(seconds=60)


def launch_offset_minutes(prep_minutes: int, buffer_minutes: int, travel_minutes: int, is_delivery: bool) -> int:
    """
    Pickup:   prep + buffer
    Delivery: prep + buffer + travel
    """
    return prep_minutes + buffer_minutes + (travel_minutes if is_delivery else 0)


def compute_kitchen_launch(slot_start: datetime, prep_minutes: int, buffer_minutes: int,
                           travel_minutes: int = 0, is_delivery: bool = False) -> datetime:
    offset = launch_offset_minutes(prep_minutes, buffer_minutes, travel_minutes, is_delivery)
    return slot_start - timedelta(minutes=offset)


def launch_for_order(order: Order, prep_minutes: int, buffer_minutes: int) -> datetime:
    if order.slot is None:
        raise ValueError(f"Order {order.id} has no committed slot")

    return compute_kitchen_launch(
        order.slot.start,
        prep_minutes,
        buffer_minutes,
        travel_minutes=order.estimated_travel_minutes or 0,
        is_delivery=order.is_delivery,
    )


def needs_launch_update(stored: datetime | None, computed: datetime) -> bool:
    if stored is None:
        return True
    return abs(stored - computed) > LAUNCH_JITTER_TOLERANCE
