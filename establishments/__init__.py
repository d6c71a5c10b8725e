"""
Establishments domain package.

Public API:
- SlotConfig and its factories
- Establishment, OpeningPeriod, DayOverride, DeliveryZone
- EstablishmentRegistry (config source with documented defaults)
"""

from .models import DayOverride, DeliveryZone, Establishment, OpeningPeriod
from .policy import SlotConfig, busy_slot_config, default_slot_config
from .registry import EstablishmentRegistry

__all__ = [
    "SlotConfig",
    "default_slot_config",
    "busy_slot_config",
    "Establishment",
    "OpeningPeriod",
    "DayOverride",
    "DeliveryZone",
    "EstablishmentRegistry",
]
