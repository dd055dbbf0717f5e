"""Domain entities for the service-order queue."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Priority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort key: lower ranks are served first."""
        if self is Priority.URGENT:
            return 0
        if self is Priority.HIGH:
            return 1
        return 2


class OrderStatus(str, Enum):
    WAITING = "waiting"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def holds_worker(self) -> bool:
        return self in (OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS)


class OrderEvent(str, Enum):
    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class StatusChange:
    """One entry of an order's lifecycle history."""

    status: OrderStatus
    at: datetime
    worker_id: str | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class Order:
    """Snapshot of a service order; the store swaps in a new one per transition."""

    id: str
    sequence: int
    customer_ref: str
    service_ref: str
    scheduled_time: datetime
    estimated_duration_minutes: int
    priority: Priority
    price: Decimal
    created_at: datetime
    service_category: str | None = None
    add_on_refs: tuple[str, ...] = ()
    notes: str | None = None
    status: OrderStatus = OrderStatus.WAITING
    assigned_worker_id: str | None = None
    served_by: str | None = None
    cancel_reason: str | None = None
    history: tuple[StatusChange, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Worker:
    """A staff member who can hold at most one active order."""

    id: str
    name: str
    skills: frozenset[str] = frozenset()
    current_order_id: str | None = None

    @property
    def available(self) -> bool:
        return self.current_order_id is None

    def is_qualified(self, category: str | None) -> bool:
        return category is None or category in self.skills
