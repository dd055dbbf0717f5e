import threading

import pytest

from orderdesk.application import DispatchEngine
from orderdesk.core.errors import InvalidTransitionError, NotFoundError, WorkerUnavailableError
from orderdesk.core.pricing import compute
from orderdesk.domain import OrderStatus


def test_assign_binds_order_and_worker(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")

    assigned = engine.assign(order.id, worker.id)

    assert assigned.status is OrderStatus.ASSIGNED
    assert assigned.assigned_worker_id == worker.id
    assert engine.get_worker(worker.id).current_order_id == order.id


def test_assign_busy_worker_leaves_order_waiting(engine, make_draft):
    first = engine.create_order(make_draft())
    second = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(first.id, worker.id)

    with pytest.raises(WorkerUnavailableError):
        engine.assign(second.id, worker.id)

    assert engine.get_order(second.id).status is OrderStatus.WAITING
    assert engine.get_order(second.id).assigned_worker_id is None
    assert engine.get_worker(worker.id).current_order_id == first.id


def test_assign_non_waiting_order_does_not_reserve(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.cancel(order.id)

    with pytest.raises(InvalidTransitionError):
        engine.assign(order.id, worker.id)
    assert engine.get_worker(worker.id).available


def test_assign_unknown_ids(engine, make_draft):
    order = engine.create_order(make_draft())
    with pytest.raises(NotFoundError):
        engine.assign(order.id, "nobody")
    with pytest.raises(NotFoundError):
        engine.assign("ord-99999", "nobody")
    assert engine.get_order(order.id).status is OrderStatus.WAITING


def test_skill_matching_rejects_unqualified_worker(orders, workers, make_draft):
    engine = DispatchEngine(orders, workers, skill_matching=True)
    order = engine.create_order(make_draft(service_category="plumbing"))
    cleaner = engine.add_worker("Ravi Sharma", ["cleaning"])
    plumber = engine.add_worker("Suresh Patel", ["plumbing"])

    with pytest.raises(WorkerUnavailableError):
        engine.assign(order.id, cleaner.id)
    assert engine.get_worker(cleaner.id).available

    assert engine.assign(order.id, plumber.id).assigned_worker_id == plumber.id


def test_without_skill_matching_any_worker_may_be_picked(engine, make_draft):
    order = engine.create_order(make_draft(service_category="plumbing"))
    cleaner = engine.add_worker("Ravi Sharma", ["cleaning"])
    assert engine.assign(order.id, cleaner.id).assigned_worker_id == cleaner.id


def test_start_requires_assigned(engine, make_draft):
    order = engine.create_order(make_draft())
    with pytest.raises(InvalidTransitionError):
        engine.start(order.id)


def test_complete_releases_worker(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(order.id, worker.id)
    engine.start(order.id)

    done = engine.complete(order.id)

    assert done.status is OrderStatus.COMPLETED
    assert done.served_by == worker.id
    assert engine.get_worker(worker.id).available


def test_complete_does_not_free_worker_now_serving_another_order(engine, workers, make_draft):
    first = engine.create_order(make_draft())
    second = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(first.id, worker.id)
    engine.start(first.id)
    # worker freed out of band, then booked for the next order
    workers.release(worker.id)
    engine.assign(second.id, worker.id)

    engine.complete(first.id)

    assert engine.get_worker(worker.id).current_order_id == second.id
    assert engine.get_order(second.id).status is OrderStatus.ASSIGNED


def test_cancel_does_not_free_worker_now_serving_another_order(engine, workers, make_draft):
    first = engine.create_order(make_draft())
    second = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(first.id, worker.id)
    workers.release(worker.id)
    engine.assign(second.id, worker.id)

    engine.cancel(first.id)

    assert engine.get_worker(worker.id).current_order_id == second.id


def test_complete_requires_in_progress(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(order.id, worker.id)

    with pytest.raises(InvalidTransitionError):
        engine.complete(order.id)
    assert engine.get_worker(worker.id).current_order_id == order.id


def test_cancel_assigned_order_releases_worker(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(order.id, worker.id)

    cancelled = engine.cancel(order.id, reason="Emergency came up")

    assert cancelled.status is OrderStatus.CANCELLED
    assert cancelled.cancel_reason == "Emergency came up"
    assert engine.get_worker(worker.id).available


def test_cancel_in_progress_is_rejected(engine, make_draft):
    order = engine.create_order(make_draft())
    worker = engine.add_worker("Ravi Sharma")
    engine.assign(order.id, worker.id)
    engine.start(order.id)

    with pytest.raises(InvalidTransitionError):
        engine.cancel(order.id)
    assert engine.get_order(order.id).status is OrderStatus.IN_PROGRESS
    assert not engine.get_worker(worker.id).available


def test_auto_dispatch_attempt_order(engine, make_draft):
    normal_1 = engine.create_order(make_draft("normal"))
    urgent = engine.create_order(make_draft("urgent"))
    high = engine.create_order(make_draft("high"))
    normal_2 = engine.create_order(make_draft("normal"))
    for name in ("Amit Kumar", "Ravi Sharma", "Suresh Patel", "Neha Verma"):
        engine.add_worker(name)

    results = engine.auto_dispatch()

    assert [result.order_id for result in results] == [urgent.id, high.id, normal_1.id, normal_2.id]
    assert [result.worker_id for result in results] == ["wrk-001", "wrk-002", "wrk-003", "wrk-004"]
    assert all(result.assigned for result in results)


def test_auto_dispatch_reports_unmatched_orders(engine, make_draft):
    normal = engine.create_order(make_draft("normal"))
    urgent = engine.create_order(make_draft("urgent"))
    worker = engine.add_worker("Ravi Sharma")

    results = engine.auto_dispatch()

    assert results[0].order_id == urgent.id and results[0].worker_id == worker.id
    assert results[1].order_id == normal.id
    assert not results[1].assigned
    assert results[1].reason
    assert engine.get_order(normal.id).status is OrderStatus.WAITING


def test_auto_dispatch_with_no_orders_or_workers(engine, make_draft):
    assert engine.auto_dispatch() == []
    order = engine.create_order(make_draft())
    results = engine.auto_dispatch()
    assert len(results) == 1 and not results[0].assigned
    assert engine.get_order(order.id).status is OrderStatus.WAITING


def test_auto_dispatch_skill_matching_skips_to_next_order(orders, workers, make_draft):
    engine = DispatchEngine(orders, workers, skill_matching=True)
    ac_job = engine.create_order(make_draft("urgent", service_category="ac_repair"))
    cleaning_job = engine.create_order(make_draft("normal", service_category="cleaning"))
    cleaner = engine.add_worker("Ravi Sharma", ["cleaning"])

    results = engine.auto_dispatch()

    assert [result.order_id for result in results] == [ac_job.id, cleaning_job.id]
    assert not results[0].assigned
    assert results[1].worker_id == cleaner.id
    assert engine.get_order(ac_job.id).status is OrderStatus.WAITING


def test_end_to_end_scenario(engine, make_draft):
    price = compute(1999, 10, 18, [299, 199]).total
    order_a = engine.create_order(make_draft("urgent", price=price))
    order_b = engine.create_order(make_draft("normal"))
    worker = engine.add_worker("Ravi Sharma")

    first = engine.auto_dispatch()
    assert [(r.order_id, r.worker_id) for r in first if r.assigned] == [(order_a.id, worker.id)]
    assert engine.get_order(order_a.id).assigned_worker_id == worker.id
    assert engine.get_order(order_a.id).price == 2652
    assert engine.get_order(order_b.id).status is OrderStatus.WAITING

    engine.start(order_a.id)
    engine.complete(order_a.id)
    assert engine.get_order(order_a.id).status is OrderStatus.COMPLETED
    assert engine.get_worker(worker.id).available

    second = engine.auto_dispatch()
    assert [(r.order_id, r.worker_id) for r in second] == [(order_b.id, worker.id)]
    assert engine.get_order(order_b.id).status is OrderStatus.ASSIGNED


def test_concurrent_assign_never_double_books(engine, make_draft):
    worker = engine.add_worker("Ravi Sharma")
    order_ids = [engine.create_order(make_draft()).id for _ in range(12)]
    barrier = threading.Barrier(len(order_ids))
    won: list[str] = []
    guard = threading.Lock()

    def attempt(order_id: str) -> None:
        barrier.wait()
        try:
            engine.assign(order_id, worker.id)
        except WorkerUnavailableError:
            return
        with guard:
            won.append(order_id)

    threads = [threading.Thread(target=attempt, args=(order_id,)) for order_id in order_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(won) == 1
    holders = [order for order in engine.list_orders() if order.assigned_worker_id == worker.id]
    assert [order.id for order in holders] == won
    assert engine.get_worker(worker.id).current_order_id == won[0]


def test_concurrent_auto_dispatch_assigns_each_worker_once(engine, make_draft):
    for _ in range(10):
        engine.create_order(make_draft())
    for idx in range(4):
        engine.add_worker(f"Worker {idx}")

    barrier = threading.Barrier(4)

    def run() -> None:
        barrier.wait()
        engine.auto_dispatch()

    threads = [threading.Thread(target=run) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    active = [order for order in engine.list_orders() if order.status is OrderStatus.ASSIGNED]
    assert len(active) == 4
    assert len({order.assigned_worker_id for order in active}) == 4
    for order in active:
        assert engine.get_worker(order.assigned_worker_id).current_order_id == order.id
