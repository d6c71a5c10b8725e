"""
Purpose: Produce the bookable future slots for one day and order type.
What it does:

1) Slot duration: fixed, or adapted to the order rate of the trailing hour
   (linear between slot_duration_min and slot_duration_max).

2) Earliest start: now + max(prep + buffer + travel, min_advance_minutes),
   rounded UP to the next duration boundary of the hour (18:37 -> 18:45).

3) Enumerate windows up to now + max_advance_hours that fall on the requested
   date and start inside an opening period [open, close).

4) Keep windows with at least one free spot; flag the first one.

Rule: An empty list means "no availability". It is never an error.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional

from establishments.policy import SlotConfig
from kitchen.prep_time import PrepTimeEstimator, round_half_up
from orders.models import utcnow

from .ledger import SlotCapacityLedger
from .models import Slot, SlotAvailability, SlotKey, SlotType

RATE_WINDOW = timedelta(hours=1)


def adaptive_slot_duration(config: SlotConfig, orders_last_hour: int) -> int:
    if not config.auto_adapt:
        return config.slot_duration_min

    if orders_last_hour < config.threshold_low:
        return config.slot_duration_min
    if orders_last_hour > config.threshold_high:
        return config.slot_duration_max

    ratio = (orders_last_hour - config.threshold_low) / (config.threshold_high - config.threshold_low)
    return round_half_up(config.slot_duration_min + ratio * (config.slot_duration_max - config.slot_duration_min))


def round_up_to_boundary(moment: datetime, duration_minutes: int) -> datetime:
    """
    Next multiple of `duration_minutes` counted from the top of the hour.
    Any leftover seconds push to the following boundary.
    """
    hour_start = moment.replace(minute=0, second=0, microsecond=0)
    offset_minutes = (moment - hour_start).total_seconds() / 60
    return hour_start + timedelta(minutes=math.ceil(offset_minutes / duration_minutes) * duration_minutes)


def format_slot_label(start: datetime, end: datetime, tz: tzinfo) -> str:
    local_start, local_end = start.astimezone(tz), end.astimezone(tz)
    return f"{local_start:%H}h{local_start:%M} - {local_end:%H}h{local_end:%M}"


class SlotGenerator:
    """
    Needs:
      - order_store: count_created_since (+ what PrepTimeEstimator needs)
      - ledger: SlotCapacityLedger
      - registry: get(establishment_id) -> Establishment
    """

    def __init__(self, order_store, ledger: SlotCapacityLedger, registry,
                 estimator: Optional[PrepTimeEstimator] = None):
        self.order_store = order_store
        self.ledger = ledger
        self.registry = registry
        self.estimator = estimator or PrepTimeEstimator(order_store)

    def slot_duration(self, establishment_id: str, *, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        config = self.registry.get(establishment_id).slot_config
        if not config.auto_adapt:
            return config.slot_duration_min
        orders_last_hour = self.order_store.count_created_since(establishment_id, now - RATE_WINDOW)
        return adaptive_slot_duration(config, orders_last_hour)

    def available_slots(
        self,
        establishment_id: str,
        slot_date: Optional[date] = None,
        slot_type: SlotType = SlotType.PICKUP,
        travel_minutes: int = 0,
        *,
        now: Optional[datetime] = None,
    ) -> SlotAvailability:
        now = now or utcnow()
        establishment = self.registry.get(establishment_id)
        config = establishment.slot_config
        tz = establishment.tzinfo
        slot_date = slot_date or now.astimezone(tz).date()

        prep_minutes = self.estimator.current_prep_minutes(establishment_id, now=now)
        duration = self.slot_duration(establishment_id, now=now)

        total_wait = prep_minutes + config.buffer_minutes + travel_minutes
        lead_minutes = max(total_wait, config.min_advance_minutes)

        earliest_local = round_up_to_boundary((now + timedelta(minutes=lead_minutes)).astimezone(tz), duration)
        horizon = now + timedelta(hours=config.max_advance_hours)
        step = timedelta(minutes=duration)

        slots: List[Slot] = []
        start = earliest_local.astimezone(timezone.utc)
        while start < horizon:
            end = start + step
            local_start = start.astimezone(tz)

            if local_start.date() > slot_date:
                break

            if local_start.date() == slot_date and establishment.is_open_at(slot_date, local_start.time()):
                key = SlotKey.for_window(establishment_id, start, end, slot_type, tz)
                spots_left = self.ledger.remaining(key)
                if spots_left > 0:
                    slots.append(
                        Slot(
                            start=start,
                            end=end,
                            label=format_slot_label(start, end, tz),
                            spots_left=spots_left,
                            is_first_available=not slots,
                        )
                    )

            start = end

        return SlotAvailability(
            slots=slots,
            current_prep_minutes=prep_minutes,
            slot_duration=duration,
            travel_minutes=travel_minutes,
            total_wait_minutes=total_wait,
        )
