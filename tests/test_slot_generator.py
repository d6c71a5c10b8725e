from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from establishments.models import DayOverride, Establishment, OpeningPeriod
from establishments.policy import SlotConfig
from establishments.registry import EstablishmentRegistry
from slots.generator import SlotGenerator, adaptive_slot_duration, format_slot_label, round_up_to_boundary
from slots.models import SlotType

from conftest import ESTABLISHMENT_ID

BRUSSELS = ZoneInfo("Europe/Brussels")


def local(hour, minute=0, day=date(2026, 3, 10)):
    return datetime.combine(day, time(hour, minute), tzinfo=BRUSSELS)


@pytest.fixture
def generator(order_store, ledger, registry):
    return SlotGenerator(order_store, ledger, registry)


@pytest.mark.parametrize("orders_last_hour, expected", [
    (0, 15),
    (3, 15),
    (5, 15),
    (8, 24),
    (10, 30),
    (12, 30),
])
def test_adaptive_duration(orders_last_hour, expected):
    assert adaptive_slot_duration(SlotConfig(), orders_last_hour) == expected


def test_adaptive_duration_disabled():
    assert adaptive_slot_duration(SlotConfig(auto_adapt=False), 50) == 15


@pytest.mark.parametrize("moment, duration, expected", [
    (local(18, 37), 15, local(18, 45)),
    (local(18, 45), 15, local(18, 45)),
    (local(18, 45).replace(second=1), 15, local(19, 0)),
    (local(18, 37), 30, local(19, 0)),
    (local(18, 37), 24, local(18, 48)),
])
def test_round_up_to_boundary(moment, duration, expected):
    assert round_up_to_boundary(moment, duration) == expected


def test_label_uses_local_time():
    start = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
    assert format_slot_label(start, start + timedelta(minutes=30), BRUSSELS) == "19h00 - 19h30"


def test_pickup_slots_for_today(generator, now):
    # prep 10 (empty kitchen) + buffer 5 = 15 -> 18:52, rounded to 19:00
    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)

    starts = [s.start.astimezone(BRUSSELS) for s in availability.slots]
    assert starts[0] == local(19, 0)
    # closes at 22:00, last window starts 21:45
    assert starts[-1] == local(21, 45)
    assert len(starts) == 12

    assert availability.slot_duration == 15
    assert availability.current_prep_minutes == 10
    assert availability.total_wait_minutes == 15

    assert availability.slots[0].is_first_available
    assert not any(s.is_first_available for s in availability.slots[1:])
    assert availability.slots[0].label == "19h00 - 19h15"
    assert all(s.spots_left == 8 for s in availability.slots)


def test_every_slot_respects_lead_time_and_horizon(generator, now):
    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)

    for slot in availability.slots:
        assert slot.start >= now + timedelta(minutes=availability.total_wait_minutes)
        assert slot.start < now + timedelta(hours=4)
        assert slot.end - slot.start == timedelta(minutes=availability.slot_duration)


def test_delivery_travel_time_pushes_first_slot(generator, now):
    # 10 + 5 + 20 = 35 -> 19:12 -> 19:15
    availability = generator.available_slots(
        ESTABLISHMENT_ID, slot_type=SlotType.DELIVERY, travel_minutes=20, now=now,
    )
    assert availability.slots[0].start.astimezone(BRUSSELS) == local(19, 15)
    assert availability.total_wait_minutes == 35


def test_min_advance_wins_over_short_prep(order_store, ledger, now):
    registry = EstablishmentRegistry()
    registry.register(Establishment(id=ESTABLISHMENT_ID, slot_config=SlotConfig(min_advance_minutes=45)))
    generator = SlotGenerator(order_store, ledger, registry)

    # 18:37 + 45 = 19:22 -> 19:30
    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert availability.slots[0].start.astimezone(BRUSSELS) == local(19, 30)


def test_full_slot_is_not_offered(generator, ledger, now):
    start = local(19, 0)
    for i in range(8):
        assert ledger.reserve(ESTABLISHMENT_ID, start, start + timedelta(minutes=15), SlotType.PICKUP,
                              order_id=f"o{i}").success

    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert availability.slots[0].start.astimezone(BRUSSELS) == local(19, 15)
    assert availability.slots[0].is_first_available


def test_partially_booked_slot_shows_spots_left(generator, ledger, now):
    start = local(19, 0)
    for i in range(3):
        ledger.reserve(ESTABLISHMENT_ID, start, start + timedelta(minutes=15), SlotType.PICKUP, order_id=f"o{i}")

    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert availability.slots[0].spots_left == 5
    # pickup and delivery buckets are independent
    delivery = generator.available_slots(ESTABLISHMENT_ID, slot_type=SlotType.DELIVERY, now=now)
    assert delivery.slots[0].spots_left == 8


def test_busy_kitchen_gets_longer_slots(generator, make_order, now):
    for _ in range(8):
        make_order(created_minutes_ago=20)

    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert availability.slot_duration == 24


def test_closed_day_override_yields_nothing(establishment, generator, now):
    establishment.overrides[date(2026, 3, 10)] = DayOverride(day=date(2026, 3, 10), closed=True)

    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert availability.is_empty
    assert availability.slots == []


def test_override_hours_replace_weekly_hours(establishment, generator, now):
    establishment.overrides[date(2026, 3, 10)] = DayOverride(
        day=date(2026, 3, 10),
        periods=[OpeningPeriod(time(19, 0), time(20, 0))],
    )

    starts = [s.start.astimezone(BRUSSELS) for s in generator.available_slots(ESTABLISHMENT_ID, now=now).slots]
    assert starts == [local(19, 0), local(19, 15), local(19, 30), local(19, 45)]


def test_override_capacity(establishment, generator, now):
    establishment.overrides[date(2026, 3, 10)] = DayOverride(day=date(2026, 3, 10), max_orders=3)

    availability = generator.available_slots(ESTABLISHMENT_ID, now=now)
    assert all(s.spots_left == 3 for s in availability.slots)


def test_weekday_without_hours_is_closed(establishment, generator, now):
    # Tuesday missing from a non-empty weekly schedule
    establishment.weekly_hours = {0: [OpeningPeriod(time(11, 0), time(22, 0))]}

    assert generator.available_slots(ESTABLISHMENT_ID, now=now).is_empty


def test_split_service_skips_the_afternoon_gap(establishment, generator, now):
    establishment.weekly_hours = {1: [OpeningPeriod(time(11, 30), time(14, 0)), OpeningPeriod(time(20, 0), time(21, 0))]}

    starts = [s.start.astimezone(BRUSSELS) for s in generator.available_slots(ESTABLISHMENT_ID, now=now).slots]
    assert starts == [local(20, 0), local(20, 15), local(20, 30), local(20, 45)]


def test_date_beyond_horizon_is_empty(generator, now):
    availability = generator.available_slots(ESTABLISHMENT_ID, slot_date=date(2026, 3, 11), now=now)
    assert availability.is_empty


def test_unknown_establishment_uses_defaults(order_store, ledger, registry, now):
    generator = SlotGenerator(order_store, ledger, registry)

    availability = generator.available_slots("never-configured", now=now)
    assert availability.slots[0].start.astimezone(BRUSSELS) == local(19, 0)
    assert availability.slots[0].spots_left == 8
