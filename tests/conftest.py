import itertools
from datetime import datetime, timedelta, timezone

import pytest

from establishments.models import Establishment
from establishments.registry import EstablishmentRegistry
from orders.models import Order, OrderStatus, OrderType, SlotWindow
from orders.store import InMemoryOrderStore
from slots.ledger import InMemorySlotStore, SlotCapacityLedger

ESTABLISHMENT_ID = "resto-mons"

# Tuesday 10 March 2026, 18:37 in Brussels (UTC+1 in winter)
NOW = datetime(2026, 3, 10, 17, 37, tzinfo=timezone.utc)


class CountingLock:
    """Stand-in for a store lock that records how often it was taken."""

    def __init__(self):
        self.acquired = 0

    def __enter__(self):
        self.acquired += 1
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def establishment():
    return Establishment(id=ESTABLISHMENT_ID, name="Chez Test", location=(50.4540, 3.9520))


@pytest.fixture
def registry(establishment):
    reg = EstablishmentRegistry()
    reg.register(establishment)
    return reg


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def ledger(registry):
    return SlotCapacityLedger(InMemorySlotStore(), registry)


@pytest.fixture
def make_order(order_store, now):
    """
    Factory that builds an order, adds it to the store and returns it.
    `slot_in` is minutes from now to the slot start (15 min long unless `slot_minutes`).
    """
    counter = itertools.count(1)

    def _make(
        status=OrderStatus.PENDING,
        order_type=OrderType.PICKUP,
        slot_in=None,
        slot_minutes=15,
        created_minutes_ago=5,
        completed_after=None,
        destination=None,
        travel_minutes=None,
        order_id=None,
    ):
        created_at = now - timedelta(minutes=created_minutes_ago)
        slot = None
        if slot_in is not None:
            start = now + timedelta(minutes=slot_in)
            slot = SlotWindow(start=start, end=start + timedelta(minutes=slot_minutes))

        order = Order(
            id=order_id or f"order-{next(counter)}",
            establishment_id=ESTABLISHMENT_ID,
            order_type=order_type,
            status=status,
            created_at=created_at,
            completed_at=created_at + timedelta(minutes=completed_after) if completed_after is not None else None,
            slot=slot,
            destination=destination,
            estimated_travel_minutes=travel_minutes,
        )
        order_store.add(order)
        return order

    return _make
