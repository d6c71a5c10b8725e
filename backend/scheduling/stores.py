"""
Purpose: Django ORM implementations of the stores the scheduling core talks to.
What it does:
- DjangoOrderStore           -> same methods as orders.store.InMemoryOrderStore
- DjangoSlotStore            -> same methods as slots.ledger.InMemorySlotStore
- DjangoEstablishmentRegistry-> same methods as establishments.registry.EstablishmentRegistry
- DjangoRoundStore           -> same methods as delivery.rounds.InMemoryRoundStore

Rows are converted to the core dataclasses on the way out, so nothing above
this file knows about the ORM.

Rule: Every capacity or state change is a conditional UPDATE, so two requests
(or two scheduler runs) can never both win the same transition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from django.db import transaction
from django.db.models import F

from delivery.rounds import DeliveryRound, RoundStatus, RoundStop
from establishments.models import DayOverride, DeliveryZone, Establishment, OpeningPeriod
from establishments.policy import SlotConfig
from orders.models import LatLon, Order, OrderStatus, OrderType, SlotWindow
from orders.state import OrderStateException, commit_slot
from slots.models import Reservation, ReservationStatus, SlotBucket, SlotKey, SlotType

from . import models

logger = logging.getLogger(__name__)


# -------------------------
# Row <-> domain conversion
# -------------------------

def _latlon(lat: Optional[float], lng: Optional[float]) -> Optional[LatLon]:
    if lat is None or lng is None:
        return None
    return (lat, lng)


def order_from_row(row: models.Order) -> Order:
    slot = None
    if row.slot_start is not None and row.slot_end is not None:
        slot = SlotWindow(start=row.slot_start, end=row.slot_end)

    return Order(
        id=row.id,
        establishment_id=row.establishment_id,
        order_type=OrderType(row.order_type),
        status=OrderStatus(row.status),
        created_at=row.created_at,
        completed_at=row.completed_at,
        slot=slot,
        kitchen_launch_at=row.kitchen_launch_at,
        estimated_prep_minutes=row.estimated_prep_minutes,
        priority_score=row.priority_score,
        destination=_latlon(row.delivery_lat, row.delivery_lng),
        delivery_address=row.delivery_address,
        estimated_travel_minutes=row.estimated_travel_minutes,
        delivery_round_id=row.delivery_round_id,
    )


def key_from_bucket(row: models.SlotBucket) -> SlotKey:
    return SlotKey(
        establishment_id=row.establishment_id,
        slot_date=row.slot_date,
        start_time=row.start_time,
        end_time=row.end_time,
        slot_type=SlotType(row.slot_type),
    )


def reservation_from_row(row: models.SlotReservation) -> Reservation:
    return Reservation(
        key=key_from_bucket(row.bucket),
        order_id=row.order_id,
        id=row.id,
        status=ReservationStatus(row.status),
        delivery_address=row.delivery_address,
        destination=_latlon(row.delivery_lat, row.delivery_lng),
        travel_minutes=row.travel_minutes,
        created_at=row.created_at,
    )


def _bucket_lookup(key: SlotKey) -> dict:
    return {
        "establishment_id": key.establishment_id,
        "slot_date": key.slot_date,
        "start_time": key.start_time,
        "end_time": key.end_time,
        "slot_type": SlotType(key.slot_type).value,
    }


# -------------------------
# Orders
# -------------------------

class DjangoOrderStore:

    def add(self, order: Order) -> None:
        lat, lng = order.destination if order.destination else (None, None)
        models.Order.objects.get_or_create(
            id=order.id,
            defaults={
                "establishment_id": order.establishment_id,
                "order_type": OrderType(order.order_type).value,
                "status": OrderStatus(order.status).value,
                "created_at": order.created_at,
                "completed_at": order.completed_at,
                "slot_start": order.slot.start if order.slot else None,
                "slot_end": order.slot.end if order.slot else None,
                "kitchen_launch_at": order.kitchen_launch_at,
                "estimated_prep_minutes": order.estimated_prep_minutes,
                "priority_score": order.priority_score,
                "delivery_address": order.delivery_address,
                "delivery_lat": lat,
                "delivery_lng": lng,
                "estimated_travel_minutes": order.estimated_travel_minutes,
            },
        )

    def get(self, order_id: str) -> Optional[Order]:
        row = models.Order.objects.filter(pk=order_id).first()
        return order_from_row(row) if row is not None else None

    def orders_for(self, establishment_id: str) -> List[Order]:
        return [order_from_row(r) for r in models.Order.objects.filter(establishment_id=establishment_id)]

    # --- Reads used by the estimator / generator ---

    def completed_between(self, establishment_id: str, since: datetime, until: datetime) -> List[Order]:
        rows = models.Order.objects.filter(
            establishment_id=establishment_id,
            status=models.Order.Status.COMPLETED,
            completed_at__gte=since,
            completed_at__lte=until,
        )
        return [order_from_row(r) for r in rows]

    def count_in_statuses(self, establishment_id: str, statuses: Iterable[OrderStatus]) -> int:
        values = [OrderStatus(s).value for s in statuses]
        return models.Order.objects.filter(establishment_id=establishment_id, status__in=values).count()

    def count_created_since(self, establishment_id: str, since: datetime) -> int:
        return models.Order.objects.filter(establishment_id=establishment_id, created_at__gte=since).count()

    # --- Reads used by the scheduler / clusterer ---

    def scheduled_pending(self, establishment_id: str) -> List[Order]:
        rows = models.Order.objects.filter(
            establishment_id=establishment_id,
            status=models.Order.Status.PENDING,
            slot_start__isnull=False,
            slot_end__isnull=False,
        ).order_by('slot_start', 'id')
        return [order_from_row(r) for r in rows]

    def delivery_candidates(self, establishment_id: str) -> List[Order]:
        rows = models.Order.objects.filter(
            establishment_id=establishment_id,
            order_type=models.Order.OrderType.DELIVERY,
            status__in=[models.Order.Status.READY, models.Order.Status.CONFIRMED],
            delivery_round__isnull=True,
            slot_start__isnull=False,
            slot_end__isnull=False,
        ).order_by('slot_start', 'id')
        return [order_from_row(r) for r in rows]

    def scheduled_establishment_ids(self) -> List[str]:
        return list(
            models.Order.objects.filter(status=models.Order.Status.PENDING, slot_start__isnull=False)
            .values_list('establishment_id', flat=True)
            .distinct()
        )

    # --- Writes ---

    def commit_slot(
        self,
        order_id: str,
        slot: SlotWindow,
        *,
        kitchen_launch_at: datetime,
        prep_minutes: int,
        destination: Optional[LatLon] = None,
        delivery_address: Optional[str] = None,
        travel_minutes: Optional[int] = None,
    ) -> Order:
        with transaction.atomic():
            row = models.Order.objects.select_for_update().filter(pk=order_id).first()
            if row is None:
                raise KeyError(f"Unknown order {order_id}")

            # state rules live in the core, the row only stores the outcome
            order = commit_slot(order_from_row(row), slot, kitchen_launch_at, prep_minutes)

            row.slot_start = order.slot.start
            row.slot_end = order.slot.end
            row.kitchen_launch_at = order.kitchen_launch_at
            row.estimated_prep_minutes = order.estimated_prep_minutes
            if destination is not None:
                row.delivery_lat, row.delivery_lng = destination
            if delivery_address is not None:
                row.delivery_address = delivery_address
            if travel_minutes is not None:
                row.estimated_travel_minutes = travel_minutes
            row.save()
            return order_from_row(row)

    def save_launch(self, order_id: str, kitchen_launch_at: datetime, prep_minutes: int) -> None:
        updated = models.Order.objects.filter(pk=order_id).update(
            kitchen_launch_at=kitchen_launch_at,
            estimated_prep_minutes=prep_minutes,
        )
        if not updated:
            raise KeyError(f"Unknown order {order_id}")

    def promote(self, order_id: str, priority: int) -> Order:
        """
        PENDING -> CONFIRMED, only if still PENDING when the UPDATE runs.
        """
        updated = models.Order.objects.filter(pk=order_id, status=models.Order.Status.PENDING).update(
            status=models.Order.Status.CONFIRMED,
            priority_score=priority,
        )
        row = models.Order.objects.filter(pk=order_id).first()
        if row is None:
            raise KeyError(f"Unknown order {order_id}")
        if not updated:
            raise OrderStateException(f"Cannot launch order {order_id} from {row.status}")
        return order_from_row(row)

    def attach_to_round(self, order_ids: List[str], round_id: str) -> List[Order]:
        with transaction.atomic():
            wanted = set(order_ids)
            known = set(models.Order.objects.filter(pk__in=wanted).values_list('pk', flat=True))
            missing = wanted - known
            if missing:
                raise KeyError(f"Unknown order(s) {sorted(missing)}")

            updated = models.Order.objects.filter(pk__in=wanted, delivery_round__isnull=True).update(
                delivery_round_id=round_id,
            )
            if updated != len(wanted):
                # raising inside atomic() rolls the partial update back
                raise OrderStateException(f"Some of {sorted(wanted)} already belong to a round")

        return [order_from_row(r) for r in models.Order.objects.filter(pk__in=wanted)]


# -------------------------
# Slot buckets
# -------------------------

class DjangoSlotStore:

    def reserve_if_available(self, key: SlotKey, capacity: int, reservation: Reservation) -> bool:
        """
        Conditional increment: UPDATE ... SET occupancy = occupancy + 1
        WHERE occupancy < capacity. Zero rows updated = full.
        """
        with transaction.atomic():
            bucket, _ = models.SlotBucket.objects.get_or_create(
                **_bucket_lookup(key),
                defaults={"capacity": capacity},
            )
            updated = models.SlotBucket.objects.filter(pk=bucket.pk, occupancy__lt=capacity).update(
                occupancy=F('occupancy') + 1,
                capacity=capacity,
            )
            if not updated:
                return False

            lat, lng = reservation.destination if reservation.destination else (None, None)
            models.SlotReservation.objects.create(
                id=reservation.id,
                bucket=bucket,
                order_id=reservation.order_id,
                status=ReservationStatus(reservation.status).value,
                delivery_address=reservation.delivery_address,
                delivery_lat=lat,
                delivery_lng=lng,
                travel_minutes=reservation.travel_minutes,
                created_at=reservation.created_at,
            )
            return True

    def cancel_reservation(self, reservation_id: str, release_capacity: bool) -> bool:
        with transaction.atomic():
            updated = models.SlotReservation.objects.filter(
                pk=reservation_id, status=models.SlotReservation.Status.RESERVED,
            ).update(status=models.SlotReservation.Status.CANCELLED)
            if not updated:
                return False

            if release_capacity:
                bucket_id = models.SlotReservation.objects.values_list('bucket_id', flat=True).get(pk=reservation_id)
                models.SlotBucket.objects.filter(pk=bucket_id, occupancy__gt=0).update(
                    occupancy=F('occupancy') - 1,
                )
            return True

    def active_reservations(self, *, reservation_id: Optional[str] = None,
                            order_id: Optional[str] = None) -> List[Reservation]:
        rows = models.SlotReservation.objects.select_related('bucket').filter(
            status=models.SlotReservation.Status.RESERVED,
        )
        if reservation_id is not None:
            rows = rows.filter(pk=reservation_id)
        elif order_id is not None:
            rows = rows.filter(order_id=order_id)
        else:
            return []
        return [reservation_from_row(r) for r in rows]

    def occupancy(self, key: SlotKey) -> int:
        value = models.SlotBucket.objects.filter(**_bucket_lookup(key)).values_list('occupancy', flat=True).first()
        return value or 0

    def get_bucket(self, key: SlotKey) -> Optional[SlotBucket]:
        row = models.SlotBucket.objects.filter(**_bucket_lookup(key)).first()
        if row is None:
            return None
        return SlotBucket(key=key, occupancy=row.occupancy, capacity=row.capacity)


# -------------------------
# Establishments
# -------------------------

class DjangoEstablishmentRegistry:
    """
    Reads configuration rows. An establishment without rows is served with
    the documented defaults, never an error.
    """

    def get(self, establishment_id: str) -> Establishment:
        row = (
            models.Establishment.objects
            .select_related('slot_configuration')
            .prefetch_related('opening_hours', 'day_overrides', 'delivery_zones')
            .filter(pk=establishment_id)
            .first()
        )
        if row is None:
            logger.warning("No configuration for establishment %s, using defaults", establishment_id)
            return Establishment(id=establishment_id)
        return self._to_domain(row)

    def ids(self) -> List[str]:
        return list(models.Establishment.objects.values_list('pk', flat=True))

    def _to_domain(self, row: models.Establishment) -> Establishment:
        weekly = {}
        for hours in row.opening_hours.all():
            weekly.setdefault(hours.weekday, []).append(OpeningPeriod(hours.open_time, hours.close_time))

        overrides = {}
        for o in row.day_overrides.all():
            periods = []
            if o.open_time is not None and o.close_time is not None:
                periods = [OpeningPeriod(o.open_time, o.close_time)]
            overrides[o.day] = DayOverride(day=o.day, closed=o.closed, periods=periods, max_orders=o.max_orders)

        zones = [
            DeliveryZone(
                name=z.name,
                max_distance_km=z.max_distance_km,
                delivery_fee=float(z.delivery_fee),
                min_order_amount=float(z.min_order_amount),
                is_active=z.is_active,
            )
            for z in row.delivery_zones.all()
        ]

        establishment = Establishment(
            id=row.id,
            name=row.name,
            location=_latlon(row.latitude, row.longitude),
            timezone=row.timezone,
            delivery_enabled=row.delivery_enabled,
            weekly_hours=weekly,
            overrides=overrides,
            delivery_zones=zones,
        )

        config = getattr(row, 'slot_configuration', None)
        if config is not None:
            establishment.slot_config = SlotConfig(
                slot_duration_min=config.slot_duration_min,
                slot_duration_max=config.slot_duration_max,
                auto_adapt=config.auto_adapt,
                threshold_low=config.threshold_low,
                threshold_high=config.threshold_high,
                max_orders_per_slot=config.max_orders_per_slot,
                min_advance_minutes=config.min_advance_minutes,
                max_advance_hours=config.max_advance_hours,
                buffer_minutes=config.buffer_minutes,
            )
            try:
                establishment.slot_config.validate()
            except ValueError as exc:
                logger.warning("Invalid slot configuration for %s (%s), using defaults", row.id, exc)
                establishment.slot_config = SlotConfig()

        return establishment


# -------------------------
# Delivery rounds
# -------------------------

class DjangoRoundStore:

    def save(self, delivery_round: DeliveryRound) -> DeliveryRound:
        with transaction.atomic():
            row, _ = models.DeliveryRound.objects.update_or_create(
                id=delivery_round.id,
                defaults={
                    "establishment_id": delivery_round.establishment_id,
                    "status": RoundStatus(delivery_round.status).value,
                    "driver_id": delivery_round.driver_id,
                    "created_at": delivery_round.created_at,
                },
            )
            row.stops.all().delete()
            models.DeliveryRoundStop.objects.bulk_create([
                models.DeliveryRoundStop(
                    delivery_round=row,
                    order_id=stop.order_id,
                    sequence=stop.sequence,
                    travel_minutes_from_previous=stop.travel_minutes_from_previous,
                )
                for stop in delivery_round.stops
            ])
        return delivery_round

    def delete(self, round_id: str) -> None:
        models.DeliveryRound.objects.filter(pk=round_id).delete()

    def get(self, round_id: str) -> Optional[DeliveryRound]:
        row = models.DeliveryRound.objects.prefetch_related('stops__order').filter(pk=round_id).first()
        if row is None:
            return None
        return DeliveryRound(
            id=row.id,
            establishment_id=row.establishment_id,
            stops=[
                RoundStop(
                    order_id=s.order_id,
                    sequence=s.sequence,
                    travel_minutes_from_previous=s.travel_minutes_from_previous,
                    slot_start=s.order.slot_start,
                )
                for s in row.stops.all()
            ],
            status=RoundStatus(row.status),
            driver_id=row.driver_id,
            created_at=row.created_at,
        )
