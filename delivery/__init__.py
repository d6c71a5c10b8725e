"""
Delivery clustering subpackage.

Public API:
- build_delivery_clusters, DeliveryClusterer, ClusterResult
- cluster_orders, Cluster
- ClusteringPolicy and its factories
- build_delivery_round, commit_round, DeliveryRound, InMemoryRoundStore
"""

from .clustering import Cluster, cluster_orders
from .engine import ClusterResult, DeliveryClusterer, build_delivery_clusters
from .policy import ClusteringPolicy, default_clustering_policy, rural_policy, urban_policy
from .rounds import (
    DeliveryRound,
    InMemoryRoundStore,
    RoundStatus,
    RoundStop,
    build_delivery_round,
    commit_round,
)

__all__ = [
    "build_delivery_clusters",
    "DeliveryClusterer",
    "ClusterResult",
    "cluster_orders",
    "Cluster",
    "ClusteringPolicy",
    "default_clustering_policy",
    "urban_policy",
    "rural_policy",
    "build_delivery_round",
    "commit_round",
    "DeliveryRound",
    "RoundStop",
    "RoundStatus",
    "InMemoryRoundStore",
]
