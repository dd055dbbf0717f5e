"""Error taxonomy shared by the pricing, order and dispatch layers."""
from __future__ import annotations


class OrderDeskError(Exception):
    """Base exception for all order desk errors."""


class ValidationError(OrderDeskError):
    """Raised when an order draft or worker registration is malformed."""


class InvalidInputError(OrderDeskError):
    """Raised when pricing inputs fall outside their allowed ranges."""


class NotFoundError(OrderDeskError):
    """Raised when an order or worker id is unknown."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidTransitionError(OrderDeskError):
    """Raised when a lifecycle event is not legal from the order's status."""

    def __init__(self, order_id: str, status: str, event: str) -> None:
        self.order_id = order_id
        self.status = status
        self.event = event
        super().__init__(f"cannot {event} order {order_id} while it is {status}")


class WorkerUnavailableError(OrderDeskError):
    """Raised when a worker is busy, lost a reservation race or lacks the skill."""

    def __init__(self, worker_id: str, reason: str | None = None) -> None:
        self.worker_id = worker_id
        self.reason = reason
        msg = f"worker {worker_id} is unavailable"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
