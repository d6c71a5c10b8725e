import pytest

from kitchen.prep_time import PrepTimeEstimator, estimate_prep_minutes, round_half_up
from orders.models import OrderStatus

from conftest import ESTABLISHMENT_ID


def test_mean_of_recent_samples(make_order, order_store, now):
    for minutes in (8, 10, 12, 10):
        make_order(status=OrderStatus.COMPLETED, created_minutes_ago=30, completed_after=minutes)

    assert PrepTimeEstimator(order_store).current_prep_minutes(ESTABLISHMENT_ID, now=now) == 10


def test_queue_fallback_below_three_samples(make_order, order_store, now):
    make_order(status=OrderStatus.COMPLETED, created_minutes_ago=30, completed_after=25)
    for _ in range(3):
        make_order(status=OrderStatus.PENDING)

    # 1 sample is not enough: max(10, 3 * 5)
    assert PrepTimeEstimator(order_store).current_prep_minutes(ESTABLISHMENT_ID, now=now) == 15


def test_empty_kitchen_uses_floor(order_store, now):
    assert PrepTimeEstimator(order_store).current_prep_minutes(ESTABLISHMENT_ID, now=now) == 10


def test_samples_older_than_one_hour_are_ignored(make_order, order_store, now):
    # completed ~100 minutes ago: outside the trailing hour
    for _ in range(4):
        make_order(status=OrderStatus.COMPLETED, created_minutes_ago=120, completed_after=20)

    assert PrepTimeEstimator(order_store).current_prep_minutes(ESTABLISHMENT_ID, now=now) == 10


def test_confirmed_orders_only_count_in_scheduler_context(make_order, order_store, now):
    for _ in range(3):
        make_order(status=OrderStatus.CONFIRMED)
    estimator = PrepTimeEstimator(order_store)

    assert estimator.current_prep_minutes(ESTABLISHMENT_ID, now=now) == 10
    assert estimator.current_prep_minutes(ESTABLISHMENT_ID, now=now, include_confirmed=True) == 15


def test_other_establishments_do_not_leak(order_store, make_order, now):
    order = make_order(status=OrderStatus.PENDING)
    order.establishment_id = "someone-else"
    for _ in range(2):
        make_order(status=OrderStatus.PENDING)

    assert PrepTimeEstimator(order_store).current_prep_minutes(ESTABLISHMENT_ID, now=now) == 10


@pytest.mark.parametrize("value, expected", [(10.4, 10), (10.5, 11), (10.6, 11), (9.5, 10)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_pure_estimate_rounds_half_up(make_order):
    samples = [
        make_order(status=OrderStatus.COMPLETED, created_minutes_ago=30, completed_after=m)
        for m in (10, 11, 11, 10)
    ]
    assert estimate_prep_minutes(samples, queue_size=0) == 11
