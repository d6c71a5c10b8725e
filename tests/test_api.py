from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APIClient

from backend.scheduling import models
from backend.scheduling.stores import DjangoOrderStore, DjangoSlotStore
from kitchen.scheduler import KitchenLaunchScheduler
from orders.models import HIGH_PRIORITY_SCORE
from orders.state import OrderStateException
from routing.geocoding_client import GeocodeResult, GeocodingError
from slots.models import Reservation, SlotKey, SlotType

EID = "resto-api"
MONS = (50.4542, 3.9523)

pytestmark = pytest.mark.django_db


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def establishment():
    row = models.Establishment.objects.create(id=EID, name="API Kitchen", latitude=MONS[0], longitude=MONS[1])
    models.SlotConfiguration.objects.create(establishment=row, max_orders_per_slot=2)
    return row


@pytest.fixture
def slot_start():
    # far enough ahead that cancellation always gives capacity back
    return (timezone.now() + timedelta(hours=2)).replace(minute=0, second=0, microsecond=0)


def make_order(order_id, **fields):
    defaults = {"establishment_id": EID}
    defaults.update(fields)
    return models.Order.objects.create(id=order_id, **defaults)


def reserve_payload(start, order_id=None, **extra):
    payload = {
        "establishment_id": EID,
        "start": start.isoformat(),
        "end": (start + timedelta(minutes=15)).isoformat(),
        "type": "pickup",
    }
    if order_id:
        payload["order_id"] = order_id
    payload.update(extra)
    return payload


# --- Slots ---

def test_available_slots_shape(api, establishment):
    response = api.get("/api/v1/slots/available/", {"establishment_id": EID})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"slots", "current_prep_minutes", "slot_duration", "travel_minutes", "total_wait_minutes"}
    assert body["current_prep_minutes"] == 10
    for slot in body["slots"]:
        assert slot["spots_left"] <= 2


def test_available_slots_requires_establishment(api):
    response = api.get("/api/v1/slots/available/")
    assert response.status_code == 400


def test_reserve_commits_slot_to_order(api, establishment, slot_start):
    make_order("o1")

    response = api.post("/api/v1/slots/reserve/", reserve_payload(slot_start, "o1"), format="json")

    assert response.status_code == 201
    assert response.json()["reservation_id"]
    order = models.Order.objects.get(pk="o1")
    assert order.slot_start == slot_start
    # one pending order -> prep 10 + buffer 5
    assert order.kitchen_launch_at == slot_start - timedelta(minutes=15)


def test_reserve_full_slot_returns_409(api, establishment, slot_start):
    for i in range(2):
        assert api.post("/api/v1/slots/reserve/", reserve_payload(slot_start), format="json").status_code == 201

    response = api.post("/api/v1/slots/reserve/", reserve_payload(slot_start), format="json")

    assert response.status_code == 409
    assert response.json()["error"] == "slot_full"
    assert models.SlotBucket.objects.get().occupancy == 2


def test_reserve_unknown_order_returns_404_and_frees_spot(api, establishment, slot_start):
    response = api.post("/api/v1/slots/reserve/", reserve_payload(slot_start, "ghost"), format="json")

    assert response.status_code == 404
    assert models.SlotBucket.objects.get().occupancy == 0


def test_reserve_rejects_inverted_window(api, establishment, slot_start):
    payload = reserve_payload(slot_start)
    payload["end"] = (slot_start - timedelta(minutes=15)).isoformat()

    assert api.post("/api/v1/slots/reserve/", payload, format="json").status_code == 400


def test_reserve_rejects_half_coordinates(api, establishment, slot_start):
    payload = reserve_payload(slot_start, latitude=50.45)
    assert api.post("/api/v1/slots/reserve/", payload, format="json").status_code == 400


def test_cancel_by_order_id(api, establishment, slot_start):
    make_order("o1")
    api.post("/api/v1/slots/reserve/", reserve_payload(slot_start, "o1"), format="json")

    response = api.post("/api/v1/slots/cancel/", {"order_id": "o1"}, format="json")

    assert response.json() == {"cancelled": 1}
    assert models.SlotBucket.objects.get().occupancy == 0


def test_cancel_requires_an_id(api):
    assert api.post("/api/v1/slots/cancel/", {}, format="json").status_code == 400


# --- Kitchen ---

def test_recalculate_promotes_due_orders_once(api, establishment):
    now = timezone.now()
    make_order("due", slot_start=now + timedelta(minutes=5), slot_end=now + timedelta(minutes=20))
    make_order("later", slot_start=now + timedelta(hours=2), slot_end=now + timedelta(hours=2, minutes=15))

    first = api.post("/api/v1/kitchen/recalculate/", {"establishment_id": EID}, format="json").json()
    second = api.post("/api/v1/kitchen/recalculate/", {"establishment_id": EID}, format="json").json()

    assert first["reports"][0]["launched_ids"] == ["due"]
    assert second["reports"][0]["orders_launched"] == 0
    assert second["reports"][0]["orders_updated"] == 0

    due = models.Order.objects.get(pk="due")
    assert due.status == models.Order.Status.CONFIRMED
    assert due.priority_score == HIGH_PRIORITY_SCORE
    assert models.Order.objects.get(pk="later").status == models.Order.Status.PENDING


def test_recalculate_without_id_covers_unconfigured_establishments(api):
    now = timezone.now()
    make_order("x", establishment_id="no-config", slot_start=now, slot_end=now + timedelta(minutes=15))

    body = api.post("/api/v1/kitchen/recalculate/", {}, format="json").json()

    assert [r["establishment_id"] for r in body["reports"]] == ["no-config"]
    assert body["reports"][0]["launched_ids"] == ["x"]


def test_recalculate_skips_a_failing_establishment(api, monkeypatch):
    now = timezone.now()
    make_order("ok", establishment_id="a-ok", slot_start=now, slot_end=now + timedelta(minutes=15))
    make_order("bad", establishment_id="b-broken", slot_start=now, slot_end=now + timedelta(minutes=15))
    original_run = KitchenLaunchScheduler.run

    def run(self, establishment_id, **kwargs):
        if establishment_id == "b-broken":
            raise RuntimeError("database went away")
        return original_run(self, establishment_id, **kwargs)

    monkeypatch.setattr(KitchenLaunchScheduler, "run", run)

    response = api.post("/api/v1/kitchen/recalculate/", {}, format="json")

    assert response.status_code == 200
    assert [r["establishment_id"] for r in response.json()["reports"]] == ["a-ok"]
    assert models.Order.objects.get(pk="ok").status == models.Order.Status.CONFIRMED


def test_kitchen_status(api, establishment):
    now = timezone.now()
    make_order("o1", slot_start=now + timedelta(hours=1), slot_end=now + timedelta(hours=1, minutes=15),
               kitchen_launch_at=now + timedelta(minutes=45))
    make_order("o2", status=models.Order.Status.PREPARING)

    body = api.get("/api/v1/kitchen/status/", {"establishment_id": EID}).json()

    assert body["queue_size"] == 1
    assert body["scheduled_orders"][0]["order_id"] == "o1"
    assert body["scheduled_orders"][0]["should_launch_now"] is False
    assert models.Order.objects.get(pk="o1").status == models.Order.Status.PENDING


def test_run_launch_scheduler_once(establishment):
    now = timezone.now()
    make_order("due", slot_start=now, slot_end=now + timedelta(minutes=15))
    out = StringIO()

    call_command("run_launch_scheduler", "--once", stdout=out)

    assert f"{EID}: prep=" in out.getvalue()
    assert "launched=1" in out.getvalue()


# --- Delivery ---

def delivery_order(order_id, start, lat, lng, travel=8, **fields):
    return make_order(
        order_id,
        order_type=models.Order.OrderType.DELIVERY,
        status=models.Order.Status.CONFIRMED,
        slot_start=start,
        slot_end=start + timedelta(minutes=30),
        delivery_lat=lat,
        delivery_lng=lng,
        estimated_travel_minutes=travel,
        **fields,
    )


def test_clusters_group_close_orders(api, establishment, slot_start):
    delivery_order("a", slot_start, 50.4600, 3.9520)
    delivery_order("b", slot_start + timedelta(minutes=10), 50.4630, 3.9520)
    delivery_order("far", slot_start, 50.5200, 3.9520)
    delivery_order("no-geo", slot_start, None, None)

    body = api.get("/api/v1/delivery/clusters/", {"establishment_id": EID}).json()

    assert [c["order_ids"] for c in body["clusters"]] == [["a", "b"], ["far"]]
    assert body["excluded_order_ids"] == ["no-geo"]
    first = body["clusters"][0]
    assert set(first["centroid"]) == {"latitude", "longitude"}
    assert first["suggested_kitchen_launch"] is not None


def test_commit_round_then_conflict(api, establishment, slot_start):
    delivery_order("a", slot_start, 50.4600, 3.9520)
    delivery_order("b", slot_start + timedelta(minutes=10), 50.4630, 3.9520)

    response = api.post("/api/v1/delivery/rounds/",
                        {"establishment_id": EID, "order_ids": ["b", "a"], "driver_id": "drv-7"}, format="json")

    assert response.status_code == 201
    body = response.json()
    assert [s["order_id"] for s in body["stops"]] == ["a", "b"]
    assert body["status"] == "ready"
    assert models.Order.objects.filter(delivery_round_id=body["id"]).count() == 2

    again = api.post("/api/v1/delivery/rounds/", {"establishment_id": EID, "order_ids": ["a"]}, format="json")
    assert again.status_code == 409
    assert models.DeliveryRound.objects.count() == 1

    clusters = api.get("/api/v1/delivery/clusters/", {"establishment_id": EID}).json()
    assert clusters["clusters"] == []


def test_commit_round_unknown_order(api, establishment):
    response = api.post("/api/v1/delivery/rounds/", {"establishment_id": EID, "order_ids": ["ghost"]}, format="json")
    assert response.status_code == 404


def test_delivery_check_with_coordinates(api, establishment):
    models.DeliveryZone.objects.create(establishment=establishment, name="Centre", max_distance_km=3, delivery_fee=2)

    body = api.post("/api/v1/delivery/check/",
                    {"establishment_id": EID, "latitude": 50.4600, "longitude": 3.9600}, format="json").json()

    assert body["is_deliverable"] is True
    assert body["zone_name"] == "Centre"
    assert body["fee"] == 2.0
    assert body["duration_minutes"] >= 1


def test_delivery_check_geocodes_addresses(api, establishment, monkeypatch):
    class FakeClient:
        def geocode(self, address):
            if address == "unknown":
                raise GeocodingError("Address not found: unknown")
            return GeocodeResult(latitude=50.4600, longitude=3.9600, label=address)

    monkeypatch.setattr("backend.scheduling.views.GeocodingClient", FakeClient)

    ok = api.post("/api/v1/delivery/check/", {"establishment_id": EID, "address": "Rue de Nimy 1"}, format="json")
    missing = api.post("/api/v1/delivery/check/", {"establishment_id": EID, "address": "unknown"}, format="json")

    assert ok.status_code == 200
    assert (ok.json()["latitude"], ok.json()["longitude"]) == (50.46, 3.96)
    assert missing.status_code == 400


def test_delivery_check_needs_a_location(api, establishment):
    assert api.post("/api/v1/delivery/check/", {"establishment_id": EID}, format="json").status_code == 400


# --- ORM stores ---

def test_django_slot_store_conditional_increment():
    store = DjangoSlotStore()
    start = timezone.now() + timedelta(hours=1)
    key = SlotKey(EID, start.date(), start.time().replace(microsecond=0),
                  (start + timedelta(minutes=15)).time().replace(microsecond=0), SlotType.PICKUP)

    results = [store.reserve_if_available(key, 2, Reservation(key=key)) for _ in range(3)]

    assert results == [True, True, False]
    assert store.occupancy(key) == 2
    assert models.SlotReservation.objects.count() == 2


def test_django_order_store_promotes_only_pending():
    make_order("p", status=models.Order.Status.PREPARING)
    store = DjangoOrderStore()

    with pytest.raises(OrderStateException):
        store.promote("p", HIGH_PRIORITY_SCORE)
    with pytest.raises(KeyError):
        store.promote("ghost", HIGH_PRIORITY_SCORE)
