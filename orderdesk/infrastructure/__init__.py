"""Infrastructure layer exports."""

from .orders import TRANSITIONS, InMemoryOrderRepository, OrderRepository
from .workers import InMemoryWorkerPool, WorkerRepository

__all__ = [
    "InMemoryOrderRepository",
    "InMemoryWorkerPool",
    "OrderRepository",
    "TRANSITIONS",
    "WorkerRepository",
]
