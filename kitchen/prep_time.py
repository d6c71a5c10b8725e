"""
Purpose: Live estimate of the kitchen's current preparation time.
What it does:
- estimate_prep_minutes: pure function over an explicit snapshot
  (completed order samples + current queue depth).
- PrepTimeEstimator: fetches that snapshot from the order store for
  one establishment and delegates to the pure function.

Rule: Never cached. The estimate must follow kitchen load within seconds.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from orders.models import Order, OrderStatus, utcnow

SAMPLE_WINDOW = timedelta(hours=1)
MIN_SAMPLES = 3

# queue-depth fallback: minutes per queued order, never below the floor
MINUTES_PER_QUEUED_ORDER = 5
MIN_PREP_MINUTES = 10

QUEUE_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING)
SCHEDULER_QUEUE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_prep_minutes(completed_samples: Sequence[Order], queue_size: int) -> int:
    """
    Rounded mean of (completed_at - created_at) when at least 3 samples exist,
    else max(10, queue_size * 5).
    """
    durations = [o.prep_duration_minutes for o in completed_samples if o.completed_at is not None]
    if len(durations) >= MIN_SAMPLES:
        return round_half_up(sum(durations) / len(durations))

    return max(MIN_PREP_MINUTES, queue_size * MINUTES_PER_QUEUED_ORDER)


class PrepTimeEstimator:
    """
    Reads the establishment snapshot from an order store.

    The store must provide:
      - completed_between(establishment_id, since, until) -> List[Order]
      - count_in_statuses(establishment_id, statuses) -> int
    """

    def __init__(self, order_store):
        self.order_store = order_store

    def current_prep_minutes(
        self,
        establishment_id: str,
        *,
        now: Optional[datetime] = None,
        include_confirmed: bool = False,
    ) -> int:
        now = now or utcnow()
        samples = self.order_store.completed_between(establishment_id, now - SAMPLE_WINDOW, now)

        statuses: Iterable[OrderStatus] = SCHEDULER_QUEUE_STATUSES if include_confirmed else QUEUE_STATUSES
        queue_size = self.order_store.count_in_statuses(establishment_id, statuses)

        return estimate_prep_minutes(samples, queue_size)
