"""
Purpose: Decide which delivery orders can share one delivery round.
What it does:

Greedy single pass over the orders sorted by slot start:

seed a cluster with the earliest unassigned order

admit a later candidate only if, against every member already in:
  - the booking windows overlap
  - the straight-line distance is within policy.max_distance_km
and the travel time from the last admitted member is within
policy.max_travel_between_minutes

Outputs:

clusters: List[Cluster] with centroid, total travel time, common window
and suggested departure

Rule: Pure function of its input snapshot. Nothing is mutated or stored.
Orders here must already carry destination, slot and travel estimate
(engine.py filters out the rest).
"""

# delivery/clustering.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Set

from orders.models import LatLon, Order, SlotWindow
from routing.geo import centroid, haversine_km, travel_minutes_between

from .policy import ClusteringPolicy


@dataclass(frozen=True)
class Cluster:
    """
    An ephemeral grouping of delivery orders compatible for a single round.
    Members are kept in admission order (which is also the stop order).
    """
    key: str
    orders: List[Order]
    centroid: LatLon
    total_travel_minutes: int
    common_window: SlotWindow
    suggested_departure: datetime

    # set by the engine once per clustering call
    suggested_kitchen_launch: Optional[datetime] = None
    current_prep_minutes: Optional[int] = None

    order_ids: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.orders)


def cluster_orders(orders: Sequence[Order], policy: ClusteringPolicy) -> List[Cluster]:
    """
    Partition delivery orders into route-compatible clusters.

    Sorting by (slot start, id) makes the result independent of input order:
    earlier-committed orders anchor a cluster first.
    """
    if not orders:
        return []

    ordered = sorted(orders, key=lambda o: (o.slot.start, o.id))
    assigned: Set[str] = set()
    clusters: List[Cluster] = []

    for seed in ordered:
        if seed.id in assigned:
            continue

        members: List[Order] = [seed]
        assigned.add(seed.id)

        for candidate in ordered:
            if candidate.id in assigned:
                continue
            if policy.max_stops and len(members) >= policy.max_stops:
                break
            if _admissible(members, candidate, policy):
                members.append(candidate)
                assigned.add(candidate.id)

        clusters.append(_finalize(members, policy))

    return clusters


# -------------------------
# Internal helpers
# -------------------------

def _admissible(members: List[Order], candidate: Order, policy: ClusteringPolicy) -> bool:
    # a) every window overlaps the candidate's
    if not all(m.slot.overlaps(candidate.slot) for m in members):
        return False

    # b) close to every stop already in
    if not all(haversine_km(m.destination, candidate.destination) <= policy.max_distance_km for m in members):
        return False

    # c) short hop from the last admitted stop
    hop = travel_minutes_between(members[-1].destination, candidate.destination, policy.assumed_speed_kmh)
    return hop <= policy.max_travel_between_minutes


def common_window(orders: Sequence[Order]) -> SlotWindow:
    """
    Intersection (latest start, earliest end) of the members' windows.
    Pairwise-overlapping intervals always have a non-empty intersection.
    """
    latest_start = max(o.slot.start for o in orders)
    earliest_end = min(o.slot.end for o in orders)
    return SlotWindow(start=latest_start, end=earliest_end)


def route_travel_minutes(orders: Sequence[Order], policy: ClusteringPolicy) -> int:
    """
    Establishment -> first stop, then stop to stop in admission order,
    plus the handoff time at each stop.
    """
    total = orders[0].estimated_travel_minutes
    for previous, current in zip(orders[:-1], orders[1:]):
        total += travel_minutes_between(previous.destination, current.destination, policy.assumed_speed_kmh)
    return total + policy.handoff_minutes_per_stop * len(orders)


def _finalize(members: List[Order], policy: ClusteringPolicy) -> Cluster:
    first = members[0]
    window = common_window(members)
    departure = window.start - timedelta(minutes=first.estimated_travel_minutes)

    return Cluster(
        key=f"cluster:{first.id}",
        orders=list(members),
        centroid=centroid([m.destination for m in members]),
        total_travel_minutes=route_travel_minutes(members, policy),
        common_window=window,
        suggested_departure=departure,
        order_ids=[m.id for m in members],
    )
