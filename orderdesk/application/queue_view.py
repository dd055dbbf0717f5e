"""Read-only projections of the order queue for dashboards."""
from __future__ import annotations

from collections import Counter

from orderdesk.core.errors import ValidationError
from orderdesk.domain import Order, OrderStatus, Priority
from orderdesk.infrastructure import OrderRepository


def queue_order_key(order: Order) -> tuple:
    return (order.priority.rank, order.scheduled_time, order.sequence)


class QueueView:
    """Orders sorted for display: priority tier, then scheduled time."""

    def __init__(self, orders: OrderRepository) -> None:
        self._orders = orders

    def snapshot(
        self,
        status: OrderStatus | str | None = None,
        priority: Priority | str | None = None,
    ) -> list[Order]:
        try:
            wanted_status = OrderStatus(status) if status is not None else None
            wanted_priority = Priority(priority) if priority is not None else None
        except ValueError as exc:
            raise ValidationError(f"unknown queue filter: {exc}") from exc

        def matches(order: Order) -> bool:
            if wanted_status is not None and order.status is not wanted_status:
                return False
            if wanted_priority is not None and order.priority is not wanted_priority:
                return False
            return True

        return sorted(self._orders.list(matches), key=queue_order_key)

    def counts(self) -> dict[str, int]:
        counter = Counter(order.status for order in self._orders.list())
        return {status.value: counter.get(status, 0) for status in OrderStatus}

    def summary(self) -> dict[str, object]:
        orders = self._orders.list()
        by_status = Counter(order.status for order in orders)
        by_priority = Counter(order.priority for order in orders)
        backlog = sum(
            order.estimated_duration_minutes for order in orders if order.status is OrderStatus.WAITING
        )
        return {
            "total": len(orders),
            "by_status": {status.value: by_status.get(status, 0) for status in OrderStatus},
            "by_priority": {priority.value: by_priority.get(priority, 0) for priority in Priority},
            "active": sum(count for status, count in by_status.items() if status.holds_worker),
            "backlog_minutes": backlog,
        }
