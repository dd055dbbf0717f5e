"""Domain layer definitions."""

from .orders import Order, OrderEvent, OrderStatus, Priority, StatusChange, Worker

__all__ = [
    "Order",
    "OrderEvent",
    "OrderStatus",
    "Priority",
    "StatusChange",
    "Worker",
]
