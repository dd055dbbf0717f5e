"""Infrastructure layer for order storage and the order state machine."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, ContextManager, Mapping, Protocol

from pydantic import ValidationError as PydanticValidationError

from orderdesk.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from orderdesk.core.schema import OrderDraft
from orderdesk.domain import Order, OrderEvent, OrderStatus, Priority, StatusChange

logger = logging.getLogger(__name__)

# (current status, event) -> next status
TRANSITIONS: dict[tuple[OrderStatus, OrderEvent], OrderStatus] = {
    (OrderStatus.WAITING, OrderEvent.ASSIGN): OrderStatus.ASSIGNED,
    (OrderStatus.ASSIGNED, OrderEvent.START): OrderStatus.IN_PROGRESS,
    (OrderStatus.IN_PROGRESS, OrderEvent.COMPLETE): OrderStatus.COMPLETED,
    (OrderStatus.WAITING, OrderEvent.CANCEL): OrderStatus.CANCELLED,
    (OrderStatus.ASSIGNED, OrderEvent.CANCEL): OrderStatus.CANCELLED,
}


class OrderRepository(Protocol):
    """Persistence contract for service orders."""

    def create(self, draft: OrderDraft | Mapping[str, object]) -> Order: ...

    def get(self, order_id: str) -> Order: ...

    def transition(
        self,
        order_id: str,
        event: OrderEvent,
        *,
        worker_id: str | None = None,
        note: str | None = None,
    ) -> Order: ...

    def list(self, predicate: Callable[[Order], bool] | None = None) -> list[Order]: ...

    def lock_for(self, order_id: str) -> ContextManager[bool]: ...

    def reset(self) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_draft(draft: OrderDraft | Mapping[str, object]) -> OrderDraft:
    if isinstance(draft, OrderDraft):
        return draft
    try:
        return OrderDraft.model_validate(dict(draft))
    except PydanticValidationError as exc:
        raise ValidationError(f"malformed order draft: {exc}") from exc


def _parse_priority(value: object) -> Priority:
    if isinstance(value, Priority):
        return value
    try:
        return Priority(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in Priority)
        raise ValidationError(f"priority must be one of {allowed}, got {value!r}") from exc


class InMemoryOrderRepository:
    """Thread-safe in-memory order store.

    The index is guarded by a store lock; each order additionally owns a
    re-entrant lock so that the legality check and the swap of its snapshot
    happen atomically while other orders stay writable.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._store_lock = threading.Lock()
        self._counter = 0

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _lock(self, order_id: str) -> threading.RLock:
        with self._store_lock:
            lock = self._locks.get(order_id)
        if lock is None:
            raise NotFoundError("order", order_id)
        return lock

    def lock_for(self, order_id: str) -> threading.RLock:
        """Return the per-order lock; callers compose multi-step updates under it."""
        return self._lock(order_id)

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def create(self, draft: OrderDraft | Mapping[str, object]) -> Order:
        data = _parse_draft(draft)
        priority = _parse_priority(data.priority)
        if data.estimated_duration_minutes <= 0:
            raise ValidationError("estimated_duration_minutes must be positive")
        if not data.price.is_finite() or data.price < 0:
            raise ValidationError("price cannot be negative")

        scheduled = data.scheduled_time
        if scheduled.tzinfo is None:
            scheduled = scheduled.replace(tzinfo=timezone.utc)

        now = _utcnow()
        with self._store_lock:
            self._counter += 1
            order = Order(
                id=f"ord-{self._counter:05d}",
                sequence=self._counter,
                customer_ref=data.customer_ref,
                service_ref=data.service_ref,
                scheduled_time=scheduled,
                estimated_duration_minutes=data.estimated_duration_minutes,
                priority=priority,
                price=data.price,
                created_at=now,
                service_category=data.service_category,
                add_on_refs=tuple(data.add_on_refs),
                notes=data.notes,
                history=(StatusChange(OrderStatus.WAITING, now, note="created"),),
            )
            self._orders[order.id] = order
            self._locks[order.id] = threading.RLock()
        logger.info("order %s created (%s, price %s)", order.id, priority.value, order.price)
        return order

    def get(self, order_id: str) -> Order:
        with self._store_lock:
            order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("order", order_id)
        return order

    def transition(
        self,
        order_id: str,
        event: OrderEvent,
        *,
        worker_id: str | None = None,
        note: str | None = None,
    ) -> Order:
        with self._lock(order_id):
            order = self.get(order_id)
            try:
                event = OrderEvent(event)
            except ValueError as exc:
                raise InvalidTransitionError(order_id, order.status.value, str(event)) from exc
            target = None if order.status.is_terminal else TRANSITIONS.get((order.status, event))
            if target is None:
                raise InvalidTransitionError(order_id, order.status.value, event.value)

            if event is OrderEvent.ASSIGN:
                if not worker_id:
                    raise ValidationError("assign requires a worker id")
                if order.assigned_worker_id is not None:
                    raise InvalidTransitionError(order_id, order.status.value, event.value)
                changes = {"assigned_worker_id": worker_id}
            elif event is OrderEvent.START:
                changes = {}
            elif event is OrderEvent.COMPLETE:
                changes = {"assigned_worker_id": None, "served_by": order.assigned_worker_id}
            elif event is OrderEvent.CANCEL:
                changes = {
                    "assigned_worker_id": None,
                    "served_by": order.assigned_worker_id,
                    "cancel_reason": note,
                }
            else:  # pragma: no cover - closed enum
                raise InvalidTransitionError(order_id, order.status.value, str(event))

            entry = StatusChange(
                target,
                _utcnow(),
                worker_id=worker_id or order.assigned_worker_id,
                note=note,
            )
            updated = replace(order, status=target, history=order.history + (entry,), **changes)
            with self._store_lock:
                self._orders[order_id] = updated
        logger.info("order %s: %s -> %s", order_id, order.status.value, target.value)
        return updated

    def list(self, predicate: Callable[[Order], bool] | None = None) -> list[Order]:
        with self._store_lock:
            orders = sorted(self._orders.values(), key=lambda item: item.sequence)
        if predicate is None:
            return orders
        return [order for order in orders if predicate(order)]

    def reset(self) -> None:
        with self._store_lock:
            self._orders.clear()
            self._locks.clear()
            self._counter = 0
