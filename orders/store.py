"""
Purpose: In-memory order store used by the scheduling core.
What it does:
- Owns the orders dict (all orders by id) for every establishment.

Provides the read side the core needs:
   - completed orders in a time range (prep-time samples)
   - queue depth by status
   - orders created since an instant (slot auto-adaptation)
   - scheduled orders still waiting for their kitchen launch
   - delivery orders not yet attached to a round

Provides the write side the core is allowed to touch:
   - commit_slot, save_launch, promote, attach_to_round

Rule: Store owns persistence of state transitions, the scheduler owns timing logic.
The Django-backed equivalent lives in backend/scheduling/stores.py and exposes the same methods.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import LatLon, Order, OrderStatus, OrderType, SlotWindow
from .state import attach_orders_to_round, commit_slot, is_scheduled_future, transition_order_to_active


@dataclass
class InMemoryOrderStore:
    _orders: Dict[str, Order] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # --- Public API ---

    def add(self, order: Order) -> None:
        with self._lock:
            if order.id in self._orders:
                # idempotency : dont double insert
                return
            self._orders[order.id] = order

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def orders_for(self, establishment_id: str) -> List[Order]:
        with self._lock:
            return [o for o in self._orders.values() if o.establishment_id == establishment_id]

    # --- Reads used by the estimator / generator ---

    def completed_between(self, establishment_id: str, since: datetime, until: datetime) -> List[Order]:
        return [
            o for o in self.orders_for(establishment_id)
            if o.status == OrderStatus.COMPLETED
            and o.completed_at is not None
            and since <= o.completed_at <= until
        ]

    def count_in_statuses(self, establishment_id: str, statuses: Iterable[OrderStatus]) -> int:
        wanted = set(statuses)
        return sum(1 for o in self.orders_for(establishment_id) if o.status in wanted)

    def count_created_since(self, establishment_id: str, since: datetime) -> int:
        return sum(1 for o in self.orders_for(establishment_id) if o.created_at >= since)

    # --- Reads used by the scheduler / clusterer ---

    def scheduled_pending(self, establishment_id: str) -> List[Order]:
        pending = [o for o in self.orders_for(establishment_id) if is_scheduled_future(o)]
        return sorted(pending, key=lambda o: o.slot.start)

    def delivery_candidates(self, establishment_id: str) -> List[Order]:
        """
        Delivery orders that are ready/confirmed, booked, and not yet in a round.
        Geodata completeness is checked by the clustering engine, not here.
        """
        candidates = [
            o for o in self.orders_for(establishment_id)
            if o.order_type == OrderType.DELIVERY
            and o.status in (OrderStatus.READY, OrderStatus.CONFIRMED)
            and o.delivery_round_id is None
            and o.slot is not None
        ]
        return sorted(candidates, key=lambda o: o.slot.start)

    # --- Writes ---

    def commit_slot(
        self,
        order_id: str,
        slot: SlotWindow,
        *,
        kitchen_launch_at: datetime,
        prep_minutes: int,
        destination: Optional[LatLon] = None,
        delivery_address: Optional[str] = None,
        travel_minutes: Optional[int] = None,
    ) -> Order:
        with self._lock:
            order = self._require(order_id)
            commit_slot(order, slot, kitchen_launch_at, prep_minutes)
            if destination is not None:
                order.destination = destination
            if delivery_address is not None:
                order.delivery_address = delivery_address
            if travel_minutes is not None:
                order.estimated_travel_minutes = travel_minutes
            return order

    def save_launch(self, order_id: str, kitchen_launch_at: datetime, prep_minutes: int) -> None:
        with self._lock:
            order = self._require(order_id)
            order.kitchen_launch_at = kitchen_launch_at
            order.estimated_prep_minutes = prep_minutes

    def promote(self, order_id: str, priority: int) -> Order:
        """
        PENDING -> CONFIRMED with raised priority. Raises OrderStateException
        if the order was already promoted (or moved on) by someone else.
        """
        with self._lock:
            return transition_order_to_active(self._require(order_id), priority)

    def attach_to_round(self, order_ids: List[str], round_id: str) -> List[Order]:
        with self._lock:
            return attach_orders_to_round([self._require(oid) for oid in order_ids], round_id)

    # --- Helpers ---

    def _require(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise KeyError(f"Unknown order {order_id}")
        return order
