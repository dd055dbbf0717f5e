from __future__ import annotations

from fastapi import APIRouter, HTTPException

from orderdesk.core.pricing import compute_input, quote_refund
from orderdesk.core.schema import PricingInput

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/quote")
async def price_quote(payload: PricingInput) -> dict:
    return compute_input(payload).model_dump(mode="json")


@router.post("/refund")
async def refund_quote(payload: dict) -> dict:
    price = payload.get("price")
    if price is None:
        raise HTTPException(status_code=400, detail="price is required")
    quote = quote_refund(price, payload.get("refund_percent"), reason=payload.get("reason"))
    return quote.model_dump(mode="json")
