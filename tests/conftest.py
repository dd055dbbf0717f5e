import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from orderdesk.application import DispatchEngine, QueueView, reset_dispatch_state
from orderdesk.infrastructure import InMemoryOrderRepository, InMemoryWorkerPool

BASE_TIME = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_state():
    reset_dispatch_state()
    yield
    reset_dispatch_state()


@pytest.fixture()
def orders():
    return InMemoryOrderRepository()


@pytest.fixture()
def workers():
    return InMemoryWorkerPool()


@pytest.fixture()
def engine(orders, workers):
    return DispatchEngine(orders, workers, skill_matching=False)


@pytest.fixture()
def queue_view(orders):
    return QueueView(orders)


@pytest.fixture()
def make_draft():
    def _make(priority: str = "normal", *, minutes_from_base: int = 0, **overrides) -> dict:
        draft = {
            "customer_ref": "cust-1",
            "service_ref": "svc-deep-cleaning",
            "scheduled_time": BASE_TIME + timedelta(minutes=minutes_from_base),
            "estimated_duration_minutes": 90,
            "priority": priority,
            "price": "999",
        }
        draft.update(overrides)
        return draft

    return _make
