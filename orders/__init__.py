"""
Orders domain package.

Public API:
- Domain models: Order, SlotWindow, OrderStatus, OrderType
- State transitions: OrderStateException, transition_order_to_active
- Store: InMemoryOrderStore
"""
from .models import HIGH_PRIORITY_SCORE, LatLon, Order, OrderStatus, OrderType, SlotWindow
from .state import OrderStateException, transition_order_to_active
from .store import InMemoryOrderStore

__all__ = ["Order",
           "SlotWindow",
             "OrderStatus",
               "OrderType",
               "LatLon",
               "HIGH_PRIORITY_SCORE",
               "OrderStateException",
               "transition_order_to_active",
               "InMemoryOrderStore",
               ]
