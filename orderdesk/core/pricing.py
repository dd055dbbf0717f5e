"""Deterministic booking price and refund calculation.

Every reported amount is rounded once, half-up, to the configured money
quantum. Tax is charged on the unrounded taxable base (subtotal minus the
unrounded discount), not on the reported ``taxable_amount``; the two can
differ, so ``tax_amount`` may not equal ``round(taxable_amount * tax%)``.
For 1999 + [299, 199] at 10% off and 18% tax the base is 2247.3, giving a
tax of 405 where the rounded base 2247 would give 404. The reported
``taxable_amount`` (subtotal minus the rounded discount) and ``tax_amount``
always add up to ``total``.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from orderdesk.core import settings
from orderdesk.core.errors import InvalidInputError
from orderdesk.core.schema import PricingInput, PricingResult, RefundQuote

HUNDRED = Decimal("100")


def _quantize(value: Decimal, quantum: Decimal) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def _to_money(value: object, field: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field} must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise InvalidInputError(f"{field} must be finite")
    if amount < 0:
        raise InvalidInputError(f"{field} cannot be negative")
    return amount


def _to_percent(value: object, field: str) -> Decimal:
    percent = _to_money(value, field)
    if percent > HUNDRED:
        raise InvalidInputError(f"{field} must be between 0 and 100")
    return percent


def compute(
    base_price: object,
    discount_percent: object = 0,
    tax_percent: object = 0,
    add_on_prices: Iterable[object] = (),
    *,
    quantum: Decimal | None = None,
) -> PricingResult:
    """Price a service plus add-ons after a percentage discount and tax."""

    step = quantum if quantum is not None else settings.money_quantum()
    base = _to_money(base_price, "base_price")
    add_ons = [_to_money(price, f"add_on_prices[{idx}]") for idx, price in enumerate(add_on_prices)]
    discount_rate = _to_percent(discount_percent, "discount_percent")
    tax_rate = _to_percent(tax_percent, "tax_percent")

    subtotal = base + sum(add_ons, Decimal("0"))
    raw_discount = subtotal * discount_rate / HUNDRED
    raw_taxable = subtotal - raw_discount
    raw_tax = raw_taxable * tax_rate / HUNDRED

    subtotal = _quantize(subtotal, step)
    discount_amount = _quantize(raw_discount, step)
    taxable_amount = subtotal - discount_amount
    tax_amount = _quantize(raw_tax, step)

    return PricingResult(
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total=taxable_amount + tax_amount,
    )


def compute_input(data: PricingInput, *, quantum: Decimal | None = None) -> PricingResult:
    """Price a booking payload; an omitted tax rate falls back to the configured default."""
    tax_percent = data.tax_percent if data.tax_percent is not None else settings.default_tax_percent()
    return compute(
        data.base_price,
        data.discount_percent,
        tax_percent,
        data.add_on_prices,
        quantum=quantum,
    )


def refund_percent_for(reason: str | None) -> Decimal:
    """Look up the refund share granted for a cancellation reason."""

    default = Decimal(str(settings.PRICING_TABLE.get("default_refund_percent", 100)))
    if not reason:
        return default
    wanted = reason.strip().lower()
    for entry in settings.PRICING_TABLE.get("cancellation_refunds", []):
        if str(entry.get("reason", "")).strip().lower() == wanted:
            return Decimal(str(entry.get("refund_percent", default)))
    return default


def quote_refund(
    price: object,
    refund_percent: object | None = None,
    *,
    reason: str | None = None,
    quantum: Decimal | None = None,
) -> RefundQuote:
    """Split a cancelled order's price into refunded and retained parts."""

    step = quantum if quantum is not None else settings.money_quantum()
    amount = _to_money(price, "price")
    if refund_percent is None:
        percent = refund_percent_for(reason)
    else:
        percent = _to_percent(refund_percent, "refund_percent")
    refund = _quantize(amount * percent / HUNDRED, step)
    return RefundQuote(
        price=amount,
        refund_percent=percent,
        refund_amount=refund,
        retained_amount=amount - refund,
        reason=reason,
    )
