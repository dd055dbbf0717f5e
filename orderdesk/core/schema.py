from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class OrderDraft(BaseModel):
    """Booking intake payload; priority and duration are checked by the order store."""

    customer_ref: str
    service_ref: str
    scheduled_time: datetime
    estimated_duration_minutes: int
    priority: str = "normal"
    price: Decimal
    service_category: str | None = None
    add_on_refs: list[str] = Field(default_factory=list)
    notes: str | None = None


class PricingInput(BaseModel):
    base_price: Decimal
    add_on_prices: list[Decimal] = Field(default_factory=list)
    discount_percent: Decimal = Decimal("0")
    tax_percent: Decimal | None = None


class PricingResult(BaseModel):
    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    taxable_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


class RefundQuote(BaseModel):
    price: Decimal
    refund_percent: Decimal
    refund_amount: Decimal
    retained_amount: Decimal
    reason: str | None = None
