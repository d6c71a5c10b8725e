"""
Purpose: Central configuration for slot timing behavior (single source of truth).
What it does:

Stores all tunable thresholds/caps per establishment:

SLOT_DURATION_MIN = 15 / SLOT_DURATION_MAX = 30

THRESHOLD_LOW = 5 / THRESHOLD_HIGH = 10 orders per hour (auto-adapt)

MAX_ORDERS_PER_SLOT = 8

MIN_ADVANCE_MINUTES = 15 / MAX_ADVANCE_HOURS = 4

BUFFER_MINUTES = 5

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time

# documented fallbacks when an establishment has no opening hours configured
DEFAULT_OPENING_TIME = time(11, 0)
DEFAULT_CLOSING_TIME = time(22, 0)
DEFAULT_TIMEZONE = "Europe/Brussels"


@dataclass(frozen=True)
class SlotConfig:
    """
    Per-establishment slot configuration.

    Notes:
    - 'auto_adapt' stretches slots between min and max duration as the
      order rate of the trailing hour moves between the two thresholds.
    - 'buffer_minutes' is added to every timing computation (slot lead time,
      kitchen launch offset, cluster kitchen launch).
    """

    # --- Slot duration (minutes) ---
    slot_duration_min: int = 15
    slot_duration_max: int = 30

    # --- Auto-adaptation (orders created in the trailing hour) ---
    auto_adapt: bool = True
    threshold_low: int = 5
    threshold_high: int = 10

    # --- Capacity ---
    max_orders_per_slot: int = 8

    # --- Booking horizon ---
    min_advance_minutes: int = 15
    max_advance_hours: int = 4

    # --- Safety margin ---
    buffer_minutes: int = 5

    def validate(self) -> None:
        """
        Basic sanity checks. Call once when loading configuration.
        """
        if self.slot_duration_min <= 0:
            raise ValueError("slot_duration_min must be > 0")

        if self.slot_duration_max < self.slot_duration_min:
            raise ValueError("slot_duration_max must be >= slot_duration_min")

        if self.threshold_low < 0:
            raise ValueError("threshold_low must be >= 0")

        if self.threshold_high <= self.threshold_low:
            raise ValueError("threshold_high must be > threshold_low")

        if self.max_orders_per_slot <= 0:
            raise ValueError("max_orders_per_slot must be > 0")

        if self.min_advance_minutes < 0:
            raise ValueError("min_advance_minutes must be >= 0")

        if self.max_advance_hours <= 0:
            raise ValueError("max_advance_hours must be > 0")

        if self.buffer_minutes < 0:
            raise ValueError("buffer_minutes must be >= 0")


def default_slot_config() -> SlotConfig:
    """
    Convenience factory for the default configuration.
    """
    c = SlotConfig()
    c.validate()
    return c


def busy_slot_config() -> SlotConfig:
    """
    Example: a kitchen that fills up fast on weekend evenings. Longer slots
    sooner, more room per slot, bigger safety margin.
    """
    c = SlotConfig(
        slot_duration_min=20,
        slot_duration_max=40,
        threshold_low=8,
        threshold_high=20,
        max_orders_per_slot=12,
        min_advance_minutes=20,
        buffer_minutes=8,
    )
    c.validate()
    return c
