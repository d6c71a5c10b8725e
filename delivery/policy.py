"""
Purpose: Central configuration for delivery clustering (single source of truth).
What it does:

Stores all tunable thresholds:

MAX_DISTANCE_KM = 1.5 (every pair of stops in a cluster)

MAX_TRAVEL_BETWEEN_MINUTES = 3 (last stop -> candidate)

ASSUMED_SPEED_KMH = 30 (urban average)

HANDOFF_MINUTES_PER_STOP = 2

Rule: No logic here, just parameters so you can tune without rewriting code.
These are heuristics, not calibrated for every geography.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ClusteringPolicy:
    """
    Central configuration for delivery clustering.

    Notes:
    - 'max_distance_km' is checked against EVERY member already in the cluster.
    - 'max_travel_between_minutes' is checked against the most recently
      added member only (incremental route feasibility).
    """

    # --- Spatial proximity ---
    max_distance_km: float = 1.5

    # --- Incremental travel feasibility ---
    max_travel_between_minutes: int = 3
    assumed_speed_kmh: float = 30.0

    # --- Route timing ---
    handoff_minutes_per_stop: int = 2

    # --- Size cap (0 = unlimited) ---
    max_stops: int = 0

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.max_distance_km <= 0:
            raise ValueError("max_distance_km must be > 0")

        if self.max_travel_between_minutes < 0:
            raise ValueError("max_travel_between_minutes must be >= 0")

        if self.assumed_speed_kmh <= 0:
            raise ValueError("assumed_speed_kmh must be > 0")

        if self.handoff_minutes_per_stop < 0:
            raise ValueError("handoff_minutes_per_stop must be >= 0")

        if self.max_stops < 0:
            raise ValueError("max_stops must be >= 0")


def default_clustering_policy() -> ClusteringPolicy:
    """
    Convenience factory for the default policy.
    """
    p = ClusteringPolicy()
    p.validate()
    return p


def urban_policy() -> ClusteringPolicy:
    """
    Example: dense city centre, slower traffic, tighter clusters.
    """
    p = ClusteringPolicy(
        max_distance_km=1.0,
        max_travel_between_minutes=4,
        assumed_speed_kmh=20.0,
        handoff_minutes_per_stop=3,
        max_stops=5,
    )
    p.validate()
    return p


def rural_policy() -> ClusteringPolicy:
    """
    Example: villages spread along fast roads.
    """
    p = ClusteringPolicy(
        max_distance_km=4.0,
        max_travel_between_minutes=6,
        assumed_speed_kmh=50.0,
    )
    p.validate()
    return p
