from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from orderdesk.application import get_dispatch_engine, get_queue_view
from orderdesk.core.pricing import quote_refund
from orderdesk.core.schema import OrderDraft
from orderdesk.domain import Order, OrderStatus, Priority

router = APIRouter(tags=["orders"])


def _serialise_order(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "customer_ref": order.customer_ref,
        "service_ref": order.service_ref,
        "service_category": order.service_category,
        "add_on_refs": list(order.add_on_refs),
        "scheduled_time": order.scheduled_time.isoformat(),
        "estimated_duration_minutes": order.estimated_duration_minutes,
        "priority": order.priority.value,
        "status": order.status.value,
        "assigned_worker_id": order.assigned_worker_id,
        "served_by": order.served_by,
        "price": str(order.price),
        "notes": order.notes,
        "cancel_reason": order.cancel_reason,
        "created_at": order.created_at.isoformat(),
        "history": [
            {
                "status": change.status.value,
                "at": change.at.isoformat(),
                "worker_id": change.worker_id,
                "note": change.note,
            }
            for change in order.history
        ],
    }


@router.post("/orders")
async def create_order(draft: OrderDraft) -> dict:
    order = get_dispatch_engine().create_order(draft)
    return _serialise_order(order)


@router.get("/orders")
async def list_orders(
    status: OrderStatus | None = Query(default=None),
    priority: Priority | None = Query(default=None),
) -> dict:
    orders = get_queue_view().snapshot(status=status, priority=priority)
    return {"items": [_serialise_order(order) for order in orders]}


@router.get("/orders/summary")
async def get_queue_summary() -> dict:
    return get_queue_view().summary()


@router.get("/orders/{order_id}")
async def get_order(order_id: str) -> dict:
    return _serialise_order(get_dispatch_engine().get_order(order_id))


@router.post("/orders/{order_id}/assign")
async def assign_order(order_id: str, payload: dict) -> dict:
    worker_id = payload.get("worker_id")
    if not worker_id:
        raise HTTPException(status_code=400, detail="worker_id is required")
    order = get_dispatch_engine().assign(order_id, str(worker_id))
    return _serialise_order(order)


@router.post("/orders/{order_id}/start")
async def start_order(order_id: str) -> dict:
    return _serialise_order(get_dispatch_engine().start(order_id))


@router.post("/orders/{order_id}/complete")
async def complete_order(order_id: str) -> dict:
    return _serialise_order(get_dispatch_engine().complete(order_id))


@router.post("/orders/{order_id}/cancel")
async def cancel_order(order_id: str, payload: dict | None = None) -> dict:
    reason = (payload or {}).get("reason")
    order = get_dispatch_engine().cancel(order_id, reason=reason)
    refund = quote_refund(order.price, reason=reason)
    return {"order": _serialise_order(order), "refund": refund.model_dump(mode="json")}


@router.post("/dispatch/auto")
async def auto_dispatch() -> dict:
    results = get_dispatch_engine().auto_dispatch()
    items = [dict(asdict(result), assigned=result.assigned) for result in results]
    return {
        "items": items,
        "assigned": sum(1 for result in results if result.assigned),
        "waiting": sum(1 for result in results if not result.assigned),
    }
