"""
Purpose: Capacity accounting for slot buckets.
What it does:
- InMemorySlotStore keeps buckets and reservations behind one lock, so the
  "read occupancy, compare with capacity, increment" step is a single atomic
  operation and two simultaneous bookings can never both take the last spot.
- SlotCapacityLedger resolves the bucket key and its capacity from the
  establishment configuration (day override first, then SlotConfig), and
  turns the store's answer into a ReservationResult.

Rule: Ledger never retries a full bucket. The caller picks another slot.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from orders.models import utcnow

from .models import (
    LatLon,
    Reservation,
    ReservationResult,
    ReservationStatus,
    SlotBucket,
    SlotKey,
    SlotType,
)

logger = logging.getLogger(__name__)


@dataclass
class InMemorySlotStore:
    _buckets: Dict[SlotKey, SlotBucket] = field(default_factory=dict)
    _reservations: Dict[str, Reservation] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def reserve_if_available(self, key: SlotKey, capacity: int, reservation: Reservation) -> bool:
        """
        Atomic compare-and-increment. Returns False when the bucket is full.
        """
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                # buckets are created lazily on first reservation
                bucket = SlotBucket(key=key, occupancy=0, capacity=capacity)
                self._buckets[key] = bucket
            bucket.capacity = capacity

            if bucket.occupancy >= capacity:
                return False

            bucket.occupancy += 1
            self._reservations[reservation.id] = reservation
            return True

    def cancel_reservation(self, reservation_id: str, release_capacity: bool) -> bool:
        """
        Marks the reservation cancelled. Returns False if it was not active.
        """
        with self._lock:
            reservation = self._reservations.get(reservation_id)
            if reservation is None or not reservation.is_active:
                return False

            reservation.status = ReservationStatus.CANCELLED
            if release_capacity:
                bucket = self._buckets.get(reservation.key)
                if bucket is not None and bucket.occupancy > 0:
                    bucket.occupancy -= 1
            return True

    def active_reservations(self, *, reservation_id: Optional[str] = None,
                            order_id: Optional[str] = None) -> List[Reservation]:
        with self._lock:
            if reservation_id is not None:
                found = self._reservations.get(reservation_id)
                return [found] if found is not None and found.is_active else []
            return [
                r for r in self._reservations.values()
                if r.is_active and order_id is not None and r.order_id == order_id
            ]

    def occupancy(self, key: SlotKey) -> int:
        with self._lock:
            bucket = self._buckets.get(key)
            return bucket.occupancy if bucket is not None else 0

    def get_bucket(self, key: SlotKey) -> Optional[SlotBucket]:
        with self._lock:
            return self._buckets.get(key)


class SlotCapacityLedger:
    """
    Needs:
      - store: reserve_if_available, cancel_reservation, active_reservations, occupancy
      - registry: get(establishment_id) -> Establishment
    """

    def __init__(self, store, registry):
        self.store = store
        self.registry = registry

    def capacity_for(self, establishment_id: str, slot_date: date) -> int:
        return self.registry.get(establishment_id).capacity_for(slot_date)

    def key_for(self, establishment_id: str, start: datetime, end: datetime, slot_type: SlotType) -> SlotKey:
        tz = self.registry.get(establishment_id).tzinfo
        return SlotKey.for_window(establishment_id, start, end, slot_type, tz)

    def reserve(
        self,
        establishment_id: str,
        start: datetime,
        end: datetime,
        slot_type: SlotType,
        *,
        order_id: Optional[str] = None,
        delivery_address: Optional[str] = None,
        destination: Optional[LatLon] = None,
        travel_minutes: Optional[int] = None,
    ) -> ReservationResult:
        if end <= start:
            raise ValueError("slot end must be after slot start")

        key = self.key_for(establishment_id, start, end, slot_type)
        capacity = self.capacity_for(establishment_id, key.slot_date)

        reservation = Reservation(
            key=key,
            order_id=order_id,
            delivery_address=delivery_address,
            destination=destination,
            travel_minutes=travel_minutes,
        )

        if not self.store.reserve_if_available(key, capacity, reservation):
            logger.info("Slot %s %s-%s (%s) is full for %s",
                        key.slot_date, key.start_time, key.end_time, key.slot_type.value, establishment_id)
            return ReservationResult.full()

        return ReservationResult(success=True, reservation=reservation)

    def cancel(self, *, reservation_id: Optional[str] = None, order_id: Optional[str] = None,
               now: Optional[datetime] = None) -> int:
        """
        Cancel by reservation id or by order id. Capacity is only given back
        for buckets that have not started yet. Returns how many were cancelled.
        """
        if reservation_id is None and order_id is None:
            raise ValueError("reservation_id or order_id is required")

        found = self.store.active_reservations(reservation_id=reservation_id, order_id=order_id)
        return self._cancel_all(found, now or utcnow())

    def release(self, reservation_id: str) -> bool:
        """
        Undo a reservation that was never used. The spot always goes back,
        even when the window has already started.
        """
        return self.store.cancel_reservation(reservation_id, release_capacity=True)

    def cancel_replaced(self, order_id: str, keep_reservation_id: str, *, now: Optional[datetime] = None) -> int:
        """
        Cancel every active reservation of the order except the one it now holds.
        """
        found = [r for r in self.store.active_reservations(order_id=order_id) if r.id != keep_reservation_id]
        return self._cancel_all(found, now or utcnow())

    def _cancel_all(self, reservations: List[Reservation], now: datetime) -> int:
        cancelled = 0
        for reservation in reservations:
            tz = self.registry.get(reservation.key.establishment_id).tzinfo
            release = reservation.key.starts_at(tz) > now
            if self.store.cancel_reservation(reservation.id, release_capacity=release):
                cancelled += 1
        return cancelled

    def count_active(self, key: SlotKey) -> int:
        return self.store.occupancy(key)

    def remaining(self, key: SlotKey) -> int:
        return max(0, self.capacity_for(key.establishment_id, key.slot_date) - self.count_active(key))
