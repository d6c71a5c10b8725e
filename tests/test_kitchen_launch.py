from datetime import datetime, timedelta, timezone

import pytest

from kitchen.launch import compute_kitchen_launch, needs_launch_update
from kitchen.scheduler import KitchenLaunchScheduler, LaunchTicker
from orders.models import HIGH_PRIORITY_SCORE, Order, OrderStatus, OrderType, SlotWindow
from orders.store import InMemoryOrderStore

from conftest import ESTABLISHMENT_ID

SLOT = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


def test_pickup_launch_offset():
    # prep 12 + buffer 5
    assert compute_kitchen_launch(SLOT, 12, 5) == SLOT - timedelta(minutes=17)


def test_delivery_launch_includes_travel():
    # prep 12 + buffer 5 + travel 9
    assert compute_kitchen_launch(SLOT, 12, 5, travel_minutes=9, is_delivery=True) == SLOT - timedelta(minutes=26)


def test_pickup_ignores_travel():
    assert compute_kitchen_launch(SLOT, 12, 5, travel_minutes=9) == SLOT - timedelta(minutes=17)


def test_jitter_tolerance():
    assert needs_launch_update(None, SLOT)
    assert not needs_launch_update(SLOT + timedelta(seconds=59), SLOT)
    assert needs_launch_update(SLOT + timedelta(seconds=61), SLOT)


@pytest.fixture
def scheduler(order_store, registry):
    return KitchenLaunchScheduler(order_store, registry)


def test_first_run_stores_launch_times(scheduler, make_order, now):
    order = make_order(slot_in=60)

    report = scheduler.run(ESTABLISHMENT_ID, now=now)

    # one pending order in the queue -> max(10, 5) = 10, + buffer 5
    assert report.current_prep_minutes == 10
    assert report.orders_updated == 1
    assert report.orders_launched == 0
    assert order.kitchen_launch_at == order.slot.start - timedelta(minutes=15)
    assert order.estimated_prep_minutes == 10


def test_second_run_is_a_no_op(scheduler, make_order, now):
    make_order(slot_in=60)
    make_order(slot_in=90)

    scheduler.run(ESTABLISHMENT_ID, now=now)
    second = scheduler.run(ESTABLISHMENT_ID, now=now + timedelta(seconds=30))

    assert second.orders_updated == 0
    assert second.orders_launched == 0


def test_small_drift_is_not_rewritten(scheduler, make_order, now):
    order = make_order(slot_in=60)
    stored = order.slot.start - timedelta(minutes=15) + timedelta(seconds=30)
    order.kitchen_launch_at = stored

    report = scheduler.run(ESTABLISHMENT_ID, now=now)

    assert report.orders_updated == 0
    assert order.kitchen_launch_at == stored


def test_due_order_is_promoted_exactly_once(scheduler, make_order, now):
    due = make_order(slot_in=10)
    later = make_order(slot_in=120)

    first = scheduler.run(ESTABLISHMENT_ID, now=now)
    second = scheduler.run(ESTABLISHMENT_ID, now=now + timedelta(minutes=1))

    assert first.launched_ids == [due.id]
    assert second.orders_launched == 0
    assert due.status == OrderStatus.CONFIRMED
    assert due.priority_score == HIGH_PRIORITY_SCORE
    assert later.status == OrderStatus.PENDING


def test_prep_estimate_is_stable_across_promotion(scheduler, make_order, now):
    make_order(slot_in=10)
    make_order(slot_in=120)
    make_order(slot_in=130)

    first = scheduler.run(ESTABLISHMENT_ID, now=now)
    second = scheduler.run(ESTABLISHMENT_ID, now=now)

    assert first.current_prep_minutes == second.current_prep_minutes == 15
    assert second.orders_updated == 0


def test_delivery_order_launches_earlier(scheduler, make_order, now):
    order = make_order(order_type=OrderType.DELIVERY, slot_in=60, travel_minutes=12, destination=(50.46, 3.95))

    scheduler.run(ESTABLISHMENT_ID, now=now)

    assert order.kitchen_launch_at == order.slot.start - timedelta(minutes=10 + 5 + 12)


def test_orders_without_slot_or_not_pending_are_ignored(scheduler, make_order, now):
    make_order()  # immediate, no slot
    confirmed = make_order(status=OrderStatus.CONFIRMED, slot_in=5)

    report = scheduler.run(ESTABLISHMENT_ID, now=now)

    assert report.orders_updated == 0
    assert confirmed.kitchen_launch_at is None


class FlakyStore(InMemoryOrderStore):
    def __init__(self, broken_id):
        super().__init__()
        self.broken_id = broken_id

    def save_launch(self, order_id, kitchen_launch_at, prep_minutes):
        if order_id == self.broken_id:
            raise RuntimeError("database hiccup")
        super().save_launch(order_id, kitchen_launch_at, prep_minutes)


def test_one_failing_order_does_not_stop_the_batch(registry, now):
    store = FlakyStore(broken_id="bad")
    for oid, minutes in (("bad", 60), ("good", 70)):
        start = now + timedelta(minutes=minutes)
        store.add(Order(id=oid, establishment_id=ESTABLISHMENT_ID,
                        slot=SlotWindow(start, start + timedelta(minutes=15))))

    report = KitchenLaunchScheduler(store, registry).run(ESTABLISHMENT_ID, now=now)

    assert report.failed_ids == ["bad"]
    assert report.orders_updated == 1
    assert store.get("good").kitchen_launch_at is not None


def test_status_is_read_only(scheduler, make_order, now):
    due = make_order(slot_in=10)
    make_order(slot_in=120)
    scheduler.run(ESTABLISHMENT_ID, now=now - timedelta(minutes=30))

    status = scheduler.status(ESTABLISHMENT_ID, now=now)

    assert [v.order_id for v in status.scheduled_orders][0] == due.id
    assert status.scheduled_orders[0].should_launch_now
    assert not status.scheduled_orders[1].should_launch_now
    assert status.queue_size == 0
    assert due.status == OrderStatus.PENDING


def test_ticker_runs_every_establishment(scheduler, make_order, now):
    make_order(slot_in=10)

    ticker = LaunchTicker(scheduler, lambda: [ESTABLISHMENT_ID, "empty-place"], interval_seconds=60)
    reports = ticker.tick(now)

    assert [r.establishment_id for r in reports] == [ESTABLISHMENT_ID, "empty-place"]
    assert reports[0].orders_launched == 1


def test_ticker_rejects_non_positive_interval(scheduler):
    with pytest.raises(ValueError):
        LaunchTicker(scheduler, lambda: [], interval_seconds=0)
