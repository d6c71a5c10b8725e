"""
Kitchen timing package.

Public API:
- estimate_prep_minutes, PrepTimeEstimator
- compute_kitchen_launch
- KitchenLaunchScheduler, LaunchRunReport, KitchenStatus, LaunchTicker
"""

from .launch import compute_kitchen_launch, launch_for_order
from .prep_time import PrepTimeEstimator, estimate_prep_minutes
from .scheduler import KitchenLaunchScheduler, KitchenStatus, LaunchRunReport, LaunchTicker

__all__ = [
    "estimate_prep_minutes",
    "PrepTimeEstimator",
    "compute_kitchen_launch",
    "launch_for_order",
    "KitchenLaunchScheduler",
    "KitchenStatus",
    "LaunchRunReport",
    "LaunchTicker",
]
