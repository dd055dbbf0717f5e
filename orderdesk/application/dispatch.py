"""Application service that binds waiting orders to available workers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from orderdesk.core import settings
from orderdesk.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    WorkerUnavailableError,
)
from orderdesk.core.schema import OrderDraft
from orderdesk.domain import Order, OrderEvent, OrderStatus, Worker
from orderdesk.infrastructure import (
    InMemoryOrderRepository,
    InMemoryWorkerPool,
    OrderRepository,
    WorkerRepository,
)

from .queue_view import QueueView

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    """Outcome of one order attempted by :meth:`DispatchEngine.auto_dispatch`."""

    order_id: str
    worker_id: str | None = None
    reason: str | None = None

    @property
    def assigned(self) -> bool:
        return self.worker_id is not None


def dispatch_order_key(order: Order) -> tuple[int, int]:
    """Priority tier first, then creation order."""
    return (order.priority.rank, order.sequence)


class DispatchEngine:
    """Coordinates order lifecycle steps with worker reservations."""

    def __init__(
        self,
        orders: OrderRepository,
        workers: WorkerRepository,
        *,
        skill_matching: bool | None = None,
    ) -> None:
        self._orders = orders
        self._workers = workers
        self.skill_matching = settings.skill_matching_enabled() if skill_matching is None else skill_matching

    # ------------------------------------------------------------------
    # intake & lookups
    # ------------------------------------------------------------------
    def create_order(self, draft: OrderDraft | Mapping[str, object]) -> Order:
        return self._orders.create(draft)

    def get_order(self, order_id: str) -> Order:
        return self._orders.get(order_id)

    def list_orders(self, predicate: Callable[[Order], bool] | None = None) -> list[Order]:
        return self._orders.list(predicate)

    def add_worker(self, name: str, skills: Iterable[str] = (), worker_id: str | None = None) -> Worker:
        return self._workers.add_worker(name, skills, worker_id)

    def get_worker(self, worker_id: str) -> Worker:
        return self._workers.get(worker_id)

    def list_workers(self) -> list[Worker]:
        return self._workers.list_workers()

    def list_available(self, skill: str | None = None) -> list[Worker]:
        return self._workers.list_available(skill)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def assign(self, order_id: str, worker_id: str) -> Order:
        """Bind a waiting order to the chosen worker, or leave both untouched."""

        with self._orders.lock_for(order_id):
            order = self._orders.get(order_id)
            if order.status is not OrderStatus.WAITING:
                raise InvalidTransitionError(order_id, order.status.value, OrderEvent.ASSIGN.value)
            worker = self._workers.get(worker_id)
            if self.skill_matching and not worker.is_qualified(order.service_category):
                raise WorkerUnavailableError(worker_id, f"not qualified for {order.service_category}")

            self._workers.reserve(worker_id, order_id)
            try:
                updated = self._orders.transition(order_id, OrderEvent.ASSIGN, worker_id=worker_id)
            except Exception:
                self._workers.release(worker_id, order_id)
                raise
        logger.info("order %s assigned to worker %s", order_id, worker_id)
        return updated

    def start(self, order_id: str) -> Order:
        return self._orders.transition(order_id, OrderEvent.START)

    def complete(self, order_id: str) -> Order:
        with self._orders.lock_for(order_id):
            worker_id = self._orders.get(order_id).assigned_worker_id
            updated = self._orders.transition(order_id, OrderEvent.COMPLETE)
            if worker_id is not None:
                self._workers.release(worker_id, order_id)
        return updated

    def cancel(self, order_id: str, reason: str | None = None) -> Order:
        with self._orders.lock_for(order_id):
            worker_id = self._orders.get(order_id).assigned_worker_id
            updated = self._orders.transition(order_id, OrderEvent.CANCEL, note=reason)
            if worker_id is not None:
                self._workers.release(worker_id, order_id)
        return updated

    # ------------------------------------------------------------------
    # batch matching
    # ------------------------------------------------------------------
    def _dispatch_one(self, order: Order) -> AssignmentResult:
        skill = order.service_category if self.skill_matching else None
        candidates = self._workers.list_available(skill)
        if not candidates:
            return AssignmentResult(order.id, reason="no qualified worker available")

        for worker in candidates:
            try:
                self.assign(order.id, worker.id)
            except WorkerUnavailableError as exc:
                # another caller took this worker first; try the next one
                logger.debug("order %s: %s", order.id, exc)
                continue
            except (InvalidTransitionError, NotFoundError) as exc:
                logger.debug("order %s skipped: %s", order.id, exc)
                return AssignmentResult(order.id, reason=str(exc))
            return AssignmentResult(order.id, worker.id)
        return AssignmentResult(order.id, reason="all candidate workers were taken")

    def auto_dispatch(self) -> list[AssignmentResult]:
        """Match waiting orders to free workers; unmatched orders stay waiting.

        Orders are tried urgent first, then high, then normal, FIFO inside a
        tier. Once the pool is empty the remaining orders are reported without
        further attempts.
        """

        waiting = sorted(
            self._orders.list(lambda item: item.status is OrderStatus.WAITING),
            key=dispatch_order_key,
        )
        results: list[AssignmentResult] = []
        for order in waiting:
            if not self._workers.list_available():
                results.append(AssignmentResult(order.id, reason="no worker available"))
                continue
            results.append(self._dispatch_one(order))

        assigned = sum(1 for result in results if result.assigned)
        logger.info("auto-dispatch: %d assigned, %d left waiting", assigned, len(results) - assigned)
        return results

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._orders.reset()
        self._workers.reset()


_orders = InMemoryOrderRepository()
_workers = InMemoryWorkerPool()
_engine = DispatchEngine(_orders, _workers)
_queue_view = QueueView(_orders)


def get_dispatch_engine() -> DispatchEngine:
    """Return the singleton dispatch engine for the process."""

    return _engine


def get_queue_view() -> QueueView:
    """Return the queue projection over the singleton order store."""

    return _queue_view


def reset_dispatch_state() -> None:
    """Reset the in-memory stores (used in tests)."""

    _engine.reset()
