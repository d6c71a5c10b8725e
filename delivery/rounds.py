"""
Purpose: Turn an accepted cluster into a persisted delivery round.
What it does:
- build_delivery_round: ordered stops (by slot start) with the travel time
  from the previous stop; the first stop uses its establishment travel estimate.
- InMemoryRoundStore: round persistence for the in-memory core.
- commit_round: saves the round and links its orders to it, so they leave
  every later clustering snapshot.

Rule: Clustering proposes, commit_round decides. A round is only created here.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

from orders.models import Order, utcnow
from orders.state import OrderStateException
from routing.geo import travel_minutes_between

from .policy import ClusteringPolicy, default_clustering_policy

logger = logging.getLogger(__name__)


class RoundStatus(str, Enum):
    PENDING = "pending"          # no driver yet
    READY = "ready"              # driver assigned, waiting for departure
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RoundStop:
    order_id: str
    sequence: int
    travel_minutes_from_previous: int
    slot_start: datetime


@dataclass
class DeliveryRound:
    id: str
    establishment_id: str
    stops: List[RoundStop]
    status: RoundStatus = RoundStatus.PENDING
    driver_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def order_ids(self) -> List[str]:
        return [s.order_id for s in self.stops]

    @property
    def total_travel_minutes(self) -> int:
        return sum(s.travel_minutes_from_previous for s in self.stops)


def build_delivery_round(
    orders: Sequence[Order],
    *,
    establishment_id: str,
    driver_id: Optional[str] = None,
    policy: Optional[ClusteringPolicy] = None,
    round_id: Optional[str] = None,
) -> DeliveryRound:
    if not orders:
        raise ValueError("A delivery round needs at least one order")

    policy = policy or default_clustering_policy()
    for o in orders:
        if o.establishment_id != establishment_id:
            raise ValueError(f"Order {o.id} belongs to establishment {o.establishment_id}")
        if o.slot is None or o.destination is None:
            raise ValueError(f"Order {o.id} has no slot or destination")

    ordered = sorted(orders, key=lambda o: (o.slot.start, o.id))
    stops: List[RoundStop] = []
    previous: Optional[Order] = None

    for seq, order in enumerate(ordered, start=1):
        if previous is None:
            travel = order.estimated_travel_minutes or 0
        else:
            travel = travel_minutes_between(previous.destination, order.destination, policy.assumed_speed_kmh)

        stops.append(RoundStop(
            order_id=order.id,
            sequence=seq,
            travel_minutes_from_previous=travel,
            slot_start=order.slot.start,
        ))
        previous = order

    return DeliveryRound(
        id=round_id or str(uuid.uuid4()),
        establishment_id=establishment_id,
        stops=stops,
        status=RoundStatus.READY if driver_id else RoundStatus.PENDING,
        driver_id=driver_id,
    )


@dataclass
class InMemoryRoundStore:
    _rounds: Dict[str, DeliveryRound] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def save(self, delivery_round: DeliveryRound) -> DeliveryRound:
        with self._lock:
            self._rounds[delivery_round.id] = delivery_round
            return delivery_round

    def delete(self, round_id: str) -> None:
        with self._lock:
            self._rounds.pop(round_id, None)

    def get(self, round_id: str) -> Optional[DeliveryRound]:
        with self._lock:
            return self._rounds.get(round_id)

    def rounds_for(self, establishment_id: str) -> List[DeliveryRound]:
        with self._lock:
            return [r for r in self._rounds.values() if r.establishment_id == establishment_id]


def commit_round(
    order_ids: Sequence[str],
    *,
    establishment_id: str,
    order_store,
    round_store,
    driver_id: Optional[str] = None,
    policy: Optional[ClusteringPolicy] = None,
) -> DeliveryRound:
    """
    Persist a round for the given orders and lock them to it.

    If an order was already taken by another round the new round is removed
    again and OrderStateException propagates.
    """
    orders: List[Order] = []
    for oid in order_ids:
        order = order_store.get(oid)
        if order is None:
            raise KeyError(f"Unknown order {oid}")
        orders.append(order)

    delivery_round = build_delivery_round(
        orders, establishment_id=establishment_id, driver_id=driver_id, policy=policy,
    )
    round_store.save(delivery_round)

    try:
        order_store.attach_to_round(delivery_round.order_ids, delivery_round.id)
    except OrderStateException:
        round_store.delete(delivery_round.id)
        raise

    logger.info("Committed round %s with %d stop(s) for %s",
                delivery_round.id, len(delivery_round.stops), establishment_id)
    return delivery_round
