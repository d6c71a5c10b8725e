from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from kitchen.launch import compute_kitchen_launch
from kitchen.prep_time import PrepTimeEstimator
from orders.models import LatLon, SlotWindow, utcnow

from .ledger import SlotCapacityLedger
from .models import ReservationResult, SlotType

logger = logging.getLogger(__name__)


class SlotBookingService:
    """
    Booking-time glue: reserve the bucket, then commit the slot window and
    the initial kitchen launch time to the order.
    """

    def __init__(self, ledger: SlotCapacityLedger, order_store, registry,
                 estimator: Optional[PrepTimeEstimator] = None):
        self.ledger = ledger
        self.order_store = order_store
        self.registry = registry
        self.estimator = estimator or PrepTimeEstimator(order_store)

    def reserve_slot(
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
        now: Optional[datetime] = None,
    ) -> ReservationResult:
        now = now or utcnow()
        result = self.ledger.reserve(
            establishment_id,
            start,
            end,
            slot_type,
            order_id=order_id,
            delivery_address=delivery_address,
            destination=destination,
            travel_minutes=travel_minutes,
        )
        if not result.success or order_id is None:
            return result

        buffer_minutes = self.registry.get(establishment_id).slot_config.buffer_minutes
        prep_minutes = self.estimator.current_prep_minutes(establishment_id, now=now)
        launch_at = compute_kitchen_launch(
            start,
            prep_minutes,
            buffer_minutes,
            travel_minutes=travel_minutes or 0,
            is_delivery=SlotType(slot_type) == SlotType.DELIVERY,
        )

        try:
            self.order_store.commit_slot(
                order_id,
                SlotWindow(start=start, end=end),
                kitchen_launch_at=launch_at,
                prep_minutes=prep_minutes,
                destination=destination,
                delivery_address=delivery_address,
                travel_minutes=travel_minutes,
            )
        except Exception:
            # a reservation never outlives a failed order update
            logger.exception("Could not commit slot to order %s, releasing reservation", order_id)
            self.ledger.release(result.reservation.id)
            raise

        replaced = self.ledger.cancel_replaced(order_id, result.reservation.id, now=now)
        if replaced:
            logger.info("Order %s moved to a new slot, %d earlier reservation(s) cancelled", order_id, replaced)

        return ReservationResult(success=True, reservation=result.reservation, kitchen_launch_at=launch_at)

    def cancel(self, *, reservation_id: Optional[str] = None, order_id: Optional[str] = None,
               now: Optional[datetime] = None) -> int:
        return self.ledger.cancel(reservation_id=reservation_id, order_id=order_id, now=now)
