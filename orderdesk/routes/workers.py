from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from orderdesk.application import get_dispatch_engine
from orderdesk.domain import Worker

router = APIRouter(prefix="/workers", tags=["workers"])


def _serialise_worker(worker: Worker) -> dict:
    return {
        "id": worker.id,
        "name": worker.name,
        "skills": sorted(worker.skills),
        "available": worker.available,
        "current_order_id": worker.current_order_id,
    }


@router.get("")
async def list_workers(
    available: bool | None = Query(default=None),
    skill: str | None = Query(default=None),
) -> dict:
    engine = get_dispatch_engine()
    if available:
        workers = engine.list_available(skill)
    else:
        workers = engine.list_workers()
        if available is False:
            workers = [worker for worker in workers if not worker.available]
        if skill:
            workers = [worker for worker in workers if skill in worker.skills]
    return {"items": [_serialise_worker(worker) for worker in workers]}


@router.post("")
async def register_worker(payload: dict) -> dict:
    name = payload.get("name")
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    skills = payload.get("skills") or []
    if not isinstance(skills, list):
        raise HTTPException(status_code=400, detail="skills must be a list")
    worker = get_dispatch_engine().add_worker(
        str(name),
        [str(skill) for skill in skills],
        payload.get("id"),
    )
    return _serialise_worker(worker)
