"""Infrastructure layer for worker availability."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Iterable, Protocol

from orderdesk.core.errors import NotFoundError, ValidationError, WorkerUnavailableError
from orderdesk.domain import Worker

logger = logging.getLogger(__name__)


class WorkerRepository(Protocol):
    """Availability contract for the worker pool."""

    def add_worker(self, name: str, skills: Iterable[str] = (), worker_id: str | None = None) -> Worker: ...

    def get(self, worker_id: str) -> Worker: ...

    def list_workers(self) -> list[Worker]: ...

    def list_available(self, skill: str | None = None) -> list[Worker]: ...

    def reserve(self, worker_id: str, order_id: str) -> Worker: ...

    def release(self, worker_id: str, order_id: str | None = None) -> Worker: ...

    def reset(self) -> None: ...


class InMemoryWorkerPool:
    """In-memory worker pool; reservation is a check-and-set under one lock."""

    def __init__(self) -> None:
        self._workers: dict[str, Worker] = {}
        self._lock = threading.Lock()
        self._counter = 0

    def add_worker(self, name: str, skills: Iterable[str] = (), worker_id: str | None = None) -> Worker:
        name = (name or "").strip()
        if not name:
            raise ValidationError("worker name is required")
        with self._lock:
            if worker_id is None:
                self._counter += 1
                while f"wrk-{self._counter:03d}" in self._workers:
                    self._counter += 1
                worker_id = f"wrk-{self._counter:03d}"
            if worker_id in self._workers:
                raise ValidationError(f"worker already registered: {worker_id}")
            worker = Worker(id=worker_id, name=name, skills=frozenset(skills))
            self._workers[worker_id] = worker
        logger.info("worker %s registered (%s)", worker.id, worker.name)
        return worker

    def get(self, worker_id: str) -> Worker:
        with self._lock:
            worker = self._workers.get(worker_id)
        if worker is None:
            raise NotFoundError("worker", worker_id)
        return worker

    def list_workers(self) -> list[Worker]:
        with self._lock:
            return list(self._workers.values())

    def list_available(self, skill: str | None = None) -> list[Worker]:
        with self._lock:
            workers = list(self._workers.values())
        return [worker for worker in workers if worker.available and worker.is_qualified(skill)]

    def reserve(self, worker_id: str, order_id: str) -> Worker:
        with self._lock:
            worker = self._workers.get(worker_id)
            if worker is None:
                raise NotFoundError("worker", worker_id)
            if not worker.available:
                raise WorkerUnavailableError(worker_id, f"busy with {worker.current_order_id}")
            worker = replace(worker, current_order_id=order_id)
            self._workers[worker_id] = worker
        logger.debug("worker %s reserved for %s", worker_id, order_id)
        return worker

    def release(self, worker_id: str, order_id: str | None = None) -> Worker:
        """Free the worker; with ``order_id`` only if it still holds that order."""
        with self._lock:
            worker = self._workers.get(worker_id)
            if worker is None:
                raise NotFoundError("worker", worker_id)
            if order_id is not None and worker.current_order_id != order_id:
                logger.debug("worker %s no longer holds %s", worker_id, order_id)
                return worker
            if worker.current_order_id is not None:
                worker = replace(worker, current_order_id=None)
                self._workers[worker_id] = worker
        logger.debug("worker %s released", worker_id)
        return worker

    def reset(self) -> None:
        with self._lock:
            self._workers.clear()
            self._counter = 0
