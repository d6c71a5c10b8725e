from __future__ import annotations

from datetime import datetime
from typing import List

from .models import HIGH_PRIORITY_SCORE, Order, OrderStatus, SlotWindow


class OrderStateException(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def is_scheduled_future(order: Order) -> bool:
    """
    An order waiting for its kitchen launch: committed slot, still PENDING.
    """
    return order.slot is not None and order.status == OrderStatus.PENDING


def commit_slot(order: Order, slot: SlotWindow, kitchen_launch_at: datetime, prep_minutes: int) -> Order:
    """
    Called when a slot reservation succeeds for this order.
    """
    if order.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        raise OrderStateException(f"Cannot commit a slot to order {order.id} in {order.status.value}")

    order.slot = slot
    order.kitchen_launch_at = kitchen_launch_at
    order.estimated_prep_minutes = prep_minutes
    return order


def transition_order_to_active(order: Order, priority: int = HIGH_PRIORITY_SCORE) -> Order:
    """
    Called when the kitchen launch time of a scheduled order has arrived.
    Raises the priority so it sorts ahead of the FIFO queue and makes it
    visible to kitchen staff.
    """
    if order.status != OrderStatus.PENDING:
        raise OrderStateException(f"Cannot launch order {order.id} from {order.status.value}")

    order.priority_score = priority
    order.status = OrderStatus.CONFIRMED
    return order


def attach_orders_to_round(orders: List[Order], round_id: str) -> List[Order]:
    """
    Once a cluster is committed into a delivery round, its orders are locked
    to that round and leave future clustering snapshots.
    """
    for order in orders:
        if order.delivery_round_id is not None:
            raise OrderStateException(
                f"Order {order.id} already belongs to round {order.delivery_round_id}"
            )
    for order in orders:
        order.delivery_round_id = round_id
    return orders
