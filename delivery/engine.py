"""
Purpose: The delivery clustering "orchestrator" (single entry point).
What it does:

Coordinates the pipeline end-to-end:

- takes the delivery orders that are waiting for a round

- drops orders with incomplete geodata (destination, slot window or travel
  estimate missing) and reports them as excluded

- clusters the rest (clustering.py)

- derives the kitchen launch of every cluster from ONE prep-time value:
  suggested_kitchen_launch = suggested_departure - (prep + buffer)

Typical public function signature:

- build_delivery_clusters(orders, current_prep_minutes=..., buffer_minutes=..., policy=...) -> ClusterResult

Rule: Engine is the only file other modules should call directly for clustering.
Nothing here writes to a store; committing a cluster is delivery/rounds.py.
"""

# delivery/engine.py

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from kitchen.prep_time import PrepTimeEstimator
from orders.models import Order, utcnow

from .clustering import Cluster, cluster_orders
from .policy import ClusteringPolicy, default_clustering_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterResult:
    """
    Output of a clustering run for a set of delivery orders.
    """
    clusters: List[Cluster]
    excluded_orders: List[Order]
    current_prep_minutes: int


def has_complete_geodata(order: Order) -> bool:
    return (
        order.destination is not None
        and order.slot is not None
        and order.estimated_travel_minutes is not None
    )


def build_delivery_clusters(
    orders: Sequence[Order],
    *,
    current_prep_minutes: int,
    buffer_minutes: int,
    policy: Optional[ClusteringPolicy] = None,
) -> ClusterResult:
    """
    Main clustering entry point (pure algorithm).

    It does NOT mutate the orders. It only:
      - filters out orders that cannot be placed on a map or in time
      - groups the rest into route-compatible clusters
      - annotates every cluster with the same prep snapshot

    Parameters
    ----------
    orders:
        Delivery orders not yet attached to a round.
    current_prep_minutes:
        One value for the whole call, so every cluster is timed consistently.
    buffer_minutes:
        Establishment safety margin between kitchen ready and departure.
    policy:
        ClusteringPolicy thresholds. Defaults to default_clustering_policy().
    """
    policy = policy or default_clustering_policy()
    policy.validate()

    usable: List[Order] = []
    excluded: List[Order] = []
    for order in orders:
        (usable if has_complete_geodata(order) else excluded).append(order)

    if excluded:
        logger.info("Excluded %d order(s) without complete geodata: %s",
                    len(excluded), [o.id for o in excluded])

    lead = timedelta(minutes=current_prep_minutes + buffer_minutes)
    clusters = [
        replace(
            cluster,
            suggested_kitchen_launch=cluster.suggested_departure - lead,
            current_prep_minutes=current_prep_minutes,
        )
        for cluster in cluster_orders(usable, policy)
    ]

    return ClusterResult(
        clusters=clusters,
        excluded_orders=excluded,
        current_prep_minutes=current_prep_minutes,
    )


class DeliveryClusterer:
    """
    Reads the establishment snapshot and runs build_delivery_clusters.

    Needs:
      - order_store: delivery_candidates, completed_between, count_in_statuses
      - registry: get(establishment_id) -> Establishment (buffer minutes)
    """

    def __init__(self, order_store, registry, estimator: Optional[PrepTimeEstimator] = None,
                 policy: Optional[ClusteringPolicy] = None):
        self.order_store = order_store
        self.registry = registry
        self.estimator = estimator or PrepTimeEstimator(order_store)
        self.policy = policy or default_clustering_policy()

    def clusters_for(self, establishment_id: str, *, now: Optional[datetime] = None) -> ClusterResult:
        now = now or utcnow()
        establishment = self.registry.get(establishment_id)
        prep = self.estimator.current_prep_minutes(establishment_id, now=now, include_confirmed=True)

        return build_delivery_clusters(
            self.order_store.delivery_candidates(establishment_id),
            current_prep_minutes=prep,
            buffer_minutes=establishment.slot_config.buffer_minutes,
            policy=self.policy,
        )
