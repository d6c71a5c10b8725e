"""
Slots package.

Public API:
- SlotCapacityLedger, InMemorySlotStore
- SlotGenerator
- SlotBookingService
- SlotType, SlotKey, Reservation, ReservationResult, Slot, SlotAvailability, SLOT_FULL
"""

from .booking import SlotBookingService
from .generator import SlotGenerator, adaptive_slot_duration, round_up_to_boundary
from .ledger import InMemorySlotStore, SlotCapacityLedger
from .models import (
    SLOT_FULL,
    Reservation,
    ReservationResult,
    ReservationStatus,
    Slot,
    SlotAvailability,
    SlotKey,
    SlotType,
)

__all__ = [
    "SlotCapacityLedger",
    "InMemorySlotStore",
    "SlotGenerator",
    "SlotBookingService",
    "adaptive_slot_duration",
    "round_up_to_boundary",
    "SlotType",
    "SlotKey",
    "Reservation",
    "ReservationStatus",
    "ReservationResult",
    "Slot",
    "SlotAvailability",
    "SLOT_FULL",
]
