"""
Wires the scheduling core to the ORM-backed stores.
Views and the management command build their collaborators here, never directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from delivery.engine import DeliveryClusterer
from kitchen.prep_time import PrepTimeEstimator
from kitchen.scheduler import KitchenLaunchScheduler
from slots.booking import SlotBookingService
from slots.generator import SlotGenerator
from slots.ledger import SlotCapacityLedger

from .stores import DjangoEstablishmentRegistry, DjangoOrderStore, DjangoRoundStore, DjangoSlotStore


@dataclass
class SchedulingServices:
    order_store: DjangoOrderStore
    registry: DjangoEstablishmentRegistry
    round_store: DjangoRoundStore
    ledger: SlotCapacityLedger
    generator: SlotGenerator
    booking: SlotBookingService
    scheduler: KitchenLaunchScheduler
    clusterer: DeliveryClusterer

    def establishment_ids(self) -> List[str]:
        """
        Configured establishments plus any that only have scheduled orders.
        """
        ids = set(self.registry.ids())
        ids.update(self.order_store.scheduled_establishment_ids())
        return sorted(ids)


def build_services() -> SchedulingServices:
    order_store = DjangoOrderStore()
    registry = DjangoEstablishmentRegistry()
    estimator = PrepTimeEstimator(order_store)
    ledger = SlotCapacityLedger(DjangoSlotStore(), registry)

    return SchedulingServices(
        order_store=order_store,
        registry=registry,
        round_store=DjangoRoundStore(),
        ledger=ledger,
        generator=SlotGenerator(order_store, ledger, registry, estimator),
        booking=SlotBookingService(ledger, order_store, registry, estimator),
        scheduler=KitchenLaunchScheduler(order_store, registry, estimator),
        clusterer=DeliveryClusterer(order_store, registry, estimator),
    )
