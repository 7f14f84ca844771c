from decimal import Decimal

import pytest

from clinica_dental.models.completed_treatment import DiscountType, PaymentStatus
from clinica_dental.services.billing import (
    HISTORICAL_REASON,
    calculate_billing_totals,
    completed_treatment_statistics,
    convert_payment,
    summarize_payments,
)


def _item(name="Resina", quantity=1, unit_price_cents=100000, **extra):
    return {"treatment_name": name, "quantity": quantity, "unit_price_cents": unit_price_cents, **extra}


def test_adult_without_discount():
    totals = calculate_billing_totals([_item(quantity=2)], patient_type="adulto", currency="HNL")
    assert (totals.subtotal_cents, totals.discount_cents, totals.total_cents) == (200000, 0, 200000)
    assert totals.discount_reason == ""


def test_elderly_discount_applies_per_item():
    totals = calculate_billing_totals(
        [_item(), _item(name="Limpieza", unit_price_cents=50000)], patient_type="3ra_edad", currency="HNL"
    )
    assert totals.discount_cents == 37500
    assert totals.total_cents == 112500
    assert [charge.final_cents for charge in totals.items] == [75000, 37500]
    assert totals.discount_reason == (
        "Descuento 3ra Edad (25%) - Resina + Descuento 3ra Edad (25%) - Limpieza"
    )


def test_promotion_item_can_opt_out_of_elderly_discount():
    promo = _item(name="Blanqueamiento", promotion_id=4, disable_elderly_discount=True)
    marked = _item(name="Kit", notes="Promoción: 20% OFF", disable_elderly_discount=True)
    regular = _item(name="Consulta", disable_elderly_discount=True)
    totals = calculate_billing_totals([promo, marked, regular], patient_type="4ta_edad", currency="HNL")
    assert [charge.discount_cents for charge in totals.items] == [0, 0, 35000]


def test_manual_amount_discount_applies_after_elderly_discount():
    totals = calculate_billing_totals(
        [_item()],
        patient_type="4ta_edad",
        currency="HNL",
        discount_type=DiscountType.monto,
        discount_value=100000,
    )
    assert totals.discount_cents == 100000
    assert totals.total_cents == 0
    assert totals.discount_reason.endswith("Descuento Manual (L. 650.00)")


def test_manual_percent_discount_rounds_half_up():
    totals = calculate_billing_totals(
        [_item(unit_price_cents=333)],
        patient_type="adulto",
        currency="USD",
        discount_type=DiscountType.porcentaje,
        discount_value=50,
    )
    assert totals.discount_cents == 167
    assert totals.discount_reason == "Descuento Manual (50%)"


def test_historical_record_is_zero_cost_unless_bypassed():
    zero = calculate_billing_totals(
        [_item()], patient_type="3ra_edad", currency="HNL", historical=True
    )
    assert zero.total_cents == 0
    assert zero.discount_reason == HISTORICAL_REASON

    charged = calculate_billing_totals(
        [_item()], patient_type="adulto", currency="HNL", historical=True, bypass_historical=True
    )
    assert charged.total_cents == 100000


@pytest.mark.parametrize(
    ("total", "amounts", "status", "balance"),
    [
        (10000, [], PaymentStatus.pendiente, 10000),
        (10000, [2500, 2500], PaymentStatus.parcialmente_pagado, 5000),
        (10000, [10000], PaymentStatus.pagado, 0),
        (0, [], PaymentStatus.pagado, 0),
    ],
)
def test_summarize_payments(total, amounts, status, balance):
    summary = summarize_payments(total, amounts)
    assert summary.status == status
    assert summary.balance_cents == balance


def test_convert_payment_between_currencies():
    amount, note = convert_payment(1000, "USD", "HNL", Decimal("24.75"))
    assert amount == 24750
    assert note == "Pago original: $ 10.00 (tasa 24.75 HNL/USD)"
    assert convert_payment(500, "HNL", "HNL", None) == (500, None)
    with pytest.raises(ValueError):
        convert_payment(1000, "USD", "HNL", None)


def test_statistics_average_per_currency():
    stats = completed_treatment_statistics(
        [
            {"status": "pagado", "currency": "HNL", "total_cents": 1000, "discount_cents": 100},
            {"status": "firmado", "currency": "HNL", "total_cents": 3000, "discount_cents": 0},
            {"status": "pagado", "currency": "USD", "total_cents": 500, "discount_cents": 50},
        ]
    )
    assert stats["total_treatments"] == 3
    assert stats["by_status"] == {"pendiente_firma": 0, "firmado": 1, "pagado": 2}
    assert stats["revenue_by_currency"] == {"HNL": 4000, "USD": 500}
    assert stats["average_by_currency"] == {"HNL": 2000, "USD": 500}


def test_percent_discount_never_exceeds_remaining_amount():
    totals = calculate_billing_totals(
        [_item(unit_price_cents=30000)],
        patient_type="adulto",
        currency="HNL",
        discount_type=DiscountType.porcentaje,
        discount_value=150,
    )
    assert totals.discount_cents == 30000
    assert totals.total_cents == 0
