"""
Purpose: Kitchen launch scheduling (the "when do we start cooking" loop).
What it does:
- KitchenLaunchScheduler.run recomputes, for every order waiting on a committed
  slot, the instant the kitchen must start preparing it, persists changes
  larger than one minute, and promotes orders whose launch time has arrived
  into the active kitchen queue (CONFIRMED, high priority).
- KitchenLaunchScheduler.status is the read-only view of the same computation.
- LaunchTicker is the heartbeat that runs the scheduler on a fixed interval.

Rule: One prep-time snapshot per run. A failure on one order never blocks the
others; the next tick retries whatever was left behind.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from orders.models import HIGH_PRIORITY_SCORE, OrderStatus, utcnow
from orders.state import OrderStateException

from .launch import launch_for_order, needs_launch_update
from .prep_time import PrepTimeEstimator, round_half_up

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.PREPARING)


@dataclass(frozen=True)
class LaunchRunReport:
    establishment_id: str
    current_prep_minutes: int
    orders_updated: int
    orders_launched: int
    launched_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScheduledOrderView:
    order_id: str
    slot_start: datetime
    kitchen_launch_at: Optional[datetime]
    minutes_until_launch: Optional[int]
    should_launch_now: bool


@dataclass(frozen=True)
class KitchenStatus:
    establishment_id: str
    current_prep_minutes: int
    queue_size: int
    scheduled_orders: List[ScheduledOrderView]


class KitchenLaunchScheduler:
    """
    Needs:
      - order_store: scheduled_pending, save_launch, promote,
        completed_between, count_in_statuses
      - registry: get(establishment_id) -> Establishment (buffer minutes)
    """

    def __init__(self, order_store, registry, estimator: Optional[PrepTimeEstimator] = None,
                 priority: int = HIGH_PRIORITY_SCORE):
        self.order_store = order_store
        self.registry = registry
        self.estimator = estimator or PrepTimeEstimator(order_store)
        self.priority = priority

    def run(self, establishment_id: str, *, now: Optional[datetime] = None) -> LaunchRunReport:
        now = now or utcnow()
        buffer_minutes = self.registry.get(establishment_id).slot_config.buffer_minutes

        # 1. Shared snapshot for the whole batch
        prep_minutes = self.estimator.current_prep_minutes(establishment_id, now=now, include_confirmed=True)

        updated = 0
        launched: List[str] = []
        failed: List[str] = []

        for order in self.order_store.scheduled_pending(establishment_id):
            try:
                # 2. Recompute, write only past the jitter tolerance
                launch_at = launch_for_order(order, prep_minutes, buffer_minutes)
                if needs_launch_update(order.kitchen_launch_at, launch_at):
                    self.order_store.save_launch(order.id, launch_at, prep_minutes)
                    updated += 1

                # 3. Promote when due
                if launch_at <= now:
                    self.order_store.promote(order.id, self.priority)
                    launched.append(order.id)
            except OrderStateException as exc:
                # an overlapping run got there first
                logger.info("Skipping order %s: %s", order.id, exc)
            except Exception:
                logger.exception("Launch recalculation failed for order %s", order.id)
                failed.append(order.id)

        if launched or failed:
            logger.info(
                "Establishment %s: prep=%s min, %s updated, %s launched, %s failed",
                establishment_id, prep_minutes, updated, len(launched), len(failed),
            )

        return LaunchRunReport(
            establishment_id=establishment_id,
            current_prep_minutes=prep_minutes,
            orders_updated=updated,
            orders_launched=len(launched),
            launched_ids=launched,
            failed_ids=failed,
        )

    def status(self, establishment_id: str, *, now: Optional[datetime] = None) -> KitchenStatus:
        """
        Current state without modifying anything.
        """
        now = now or utcnow()
        prep_minutes = self.estimator.current_prep_minutes(establishment_id, now=now, include_confirmed=True)

        views: List[ScheduledOrderView] = []
        for order in self.order_store.scheduled_pending(establishment_id):
            launch_at = order.kitchen_launch_at
            views.append(
                ScheduledOrderView(
                    order_id=order.id,
                    slot_start=order.slot.start,
                    kitchen_launch_at=launch_at,
                    minutes_until_launch=(
                        round_half_up((launch_at - now).total_seconds() / 60) if launch_at else None
                    ),
                    should_launch_now=launch_at is not None and launch_at <= now,
                )
            )
        views.sort(key=lambda v: (v.kitchen_launch_at is None, v.kitchen_launch_at or v.slot_start))

        return KitchenStatus(
            establishment_id=establishment_id,
            current_prep_minutes=prep_minutes,
            queue_size=self.order_store.count_in_statuses(establishment_id, ACTIVE_STATUSES),
            scheduled_orders=views,
        )


class LaunchTicker:
    """
    The active time-based "Heartbeat" for the kitchen.
    Runs the launch scheduler for every known establishment once per interval.
    Also callable on demand through tick().
    """

    def __init__(self, scheduler: KitchenLaunchScheduler,
                 establishment_ids: Callable[[], Iterable[str]],
                 interval_seconds: float = 60):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.scheduler = scheduler
        self.establishment_ids = establishment_ids
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self, now: Optional[datetime] = None) -> List[LaunchRunReport]:
        now = now or utcnow()
        reports: List[LaunchRunReport] = []
        for establishment_id in self.establishment_ids():
            try:
                reports.append(self.scheduler.run(establishment_id, now=now))
            except Exception:
                logger.exception("Launch run failed for establishment %s", establishment_id)
        return reports

    def run_forever(self) -> None:
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.interval_seconds)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="launch-ticker", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
