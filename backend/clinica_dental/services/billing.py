from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Iterable, Sequence

from clinica_dental.models.completed_treatment import (
    CompletedTreatmentStatus,
    DiscountType,
    PaymentStatus,
)
from clinica_dental.services.quote_totals import format_money

logger = logging.getLogger("clinica_dental.billing")

ELDERLY_DISCOUNTS: dict[str, tuple[int, str]] = {
    "4ta_edad": (35, "Descuento 4ta Edad (35%)"),
    "3ra_edad": (25, "Descuento 3ra Edad (25%)"),
}
HISTORICAL_REASON = "Registro Histórico - Sin costo"
PROMOTION_MARKERS = ("promoción", "promocion", "promo")


def _percent_of(amount: int, percent: int | Decimal) -> int:
    value = Decimal(amount) * Decimal(percent) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def is_promotion_item(item: Any) -> bool:
    if _get(item, "promotion_id") is not None:
        return True
    notes = str(_get(item, "notes") or "").lower()
    return any(marker in notes for marker in PROMOTION_MARKERS)


@dataclass
class ItemCharge:
    subtotal_cents: int
    discount_cents: int
    reason: str | None = None

    @property
    def final_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents


@dataclass
class BillingTotals:
    subtotal_cents: int = 0
    discount_cents: int = 0
    total_cents: int = 0
    discount_reason: str = ""
    items: list[ItemCharge] = field(default_factory=list)


def calculate_billing_totals(
    items: Sequence[Any],
    *,
    patient_type: str,
    currency: str,
    discount_type: DiscountType = DiscountType.ninguno,
    discount_value: int = 0,
    historical: bool = False,
    bypass_historical: bool = False,
) -> BillingTotals:
    """Price a completed-treatment visit.

    Elderly discounts apply per item (promotion items may opt out), the
    manual discount applies to what is left. A historical record that is not
    explicitly bypassed costs nothing.
    """
    zero_cost = historical and not bypass_historical
    totals = BillingTotals()
    reasons: list[str] = []
    elderly = ELDERLY_DISCOUNTS.get(patient_type)

    for item in items:
        quantity = int(_get(item, "quantity") or 0)
        subtotal = 0 if zero_cost else int(_get(item, "unit_price_cents") or 0) * quantity
        discount = 0
        reason = None
        skip_elderly = is_promotion_item(item) and bool(_get(item, "disable_elderly_discount"))
        if elderly and not zero_cost and not skip_elderly:
            percent, label = elderly
            discount = _percent_of(subtotal, percent)
            if discount > 0:
                reason = f"{label} - {_get(item, 'treatment_name')}"
                reasons.append(reason)
        totals.items.append(ItemCharge(subtotal_cents=subtotal, discount_cents=discount, reason=reason))
        totals.subtotal_cents += subtotal
        totals.discount_cents += discount

    if not zero_cost:
        remaining = totals.subtotal_cents - totals.discount_cents
        if discount_type == DiscountType.monto:
            manual = max(min(int(discount_value or 0), remaining), 0)
            if manual > 0:
                reasons.append(f"Descuento Manual ({format_money(manual, currency)})")
        elif discount_type == DiscountType.porcentaje:
            manual = max(min(_percent_of(remaining, int(discount_value or 0)), remaining), 0)
            if manual > 0:
                reasons.append(f"Descuento Manual ({discount_value}%)")
        else:
            manual = 0
        totals.discount_cents += manual

    totals.total_cents = totals.subtotal_cents - totals.discount_cents
    totals.discount_reason = HISTORICAL_REASON if zero_cost else " + ".join(reasons)
    return totals


@dataclass
class PaymentSummary:
    total_cents: int
    paid_cents: int
    balance_cents: int
    status: PaymentStatus


def summarize_payments(total_cents: int, amounts: Iterable[int]) -> PaymentSummary:
    paid = sum(amounts)
    if paid >= total_cents:
        status = PaymentStatus.pagado
    elif paid > 0:
        status = PaymentStatus.parcialmente_pagado
    else:
        status = PaymentStatus.pendiente
    return PaymentSummary(
        total_cents=total_cents,
        paid_cents=paid,
        balance_cents=max(total_cents - paid, 0),
        status=status,
    )


def convert_payment(
    amount_cents: int, from_currency: str, to_currency: str, exchange_rate: Decimal | None
) -> tuple[int, str | None]:
    """Convert a payment into the billing currency.

    Returns the converted amount plus an annotation describing the original
    payment, or ``(amount_cents, None)`` when no conversion is needed.
    """
    if from_currency == to_currency:
        return amount_cents, None
    if exchange_rate is None or exchange_rate <= 0:
        raise ValueError(f"exchange_rate is required to pay {to_currency} with {from_currency}")
    converted = int((Decimal(amount_cents) * exchange_rate).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    note = (
        f"Pago original: {format_money(amount_cents, from_currency)} "
        f"(tasa {exchange_rate} {to_currency}/{from_currency})"
    )
    logger.info(
        "Converted payment %s %s -> %s %s", amount_cents, from_currency, converted, to_currency
    )
    return converted, note


def completed_treatment_statistics(records: Sequence[Any]) -> dict[str, Any]:
    by_status = {status.value: 0 for status in CompletedTreatmentStatus}
    revenue: dict[str, int] = {}
    discounts: dict[str, int] = {}
    per_currency: dict[str, int] = {}
    for record in records:
        status = _get(record, "status")
        status = status.value if hasattr(status, "value") else str(status)
        by_status[status] = by_status.get(status, 0) + 1
        currency = _get(record, "currency") or "HNL"
        revenue[currency] = revenue.get(currency, 0) + int(_get(record, "total_cents") or 0)
        discounts[currency] = discounts.get(currency, 0) + int(_get(record, "discount_cents") or 0)
        per_currency[currency] = per_currency.get(currency, 0) + 1
    count = len(records)
    return {
        "total_treatments": count,
        "by_status": by_status,
        "revenue_by_currency": revenue,
        "discount_by_currency": discounts,
        "average_by_currency": {
            currency: amount // per_currency[currency] for currency, amount in revenue.items()
        },
    }
