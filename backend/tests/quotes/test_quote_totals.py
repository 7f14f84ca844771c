import pytest

from clinica_dental.services.quote_totals import (
    calculate_quote_totals,
    format_money,
    recompute_item_total,
    resolve_item_currency,
)

CATALOG = [
    {"code": "IM01", "name": "Implante de titanio", "currency": "USD"},
    {"code": "PR01", "name": "Limpieza dental", "currency": "HNL"},
]


def test_mixed_currency_quote_reports_both_subtotals():
    items = [
        {"id": 1, "description": "IM01 - Implante de titanio", "quantity": 1, "unit_price_cents": 120000},
        {"id": 2, "description": "Blanqueamiento casero", "quantity": 2, "unit_price_cents": 150000},
    ]
    totals = calculate_quote_totals(items, CATALOG, "HNL")
    assert totals.by_currency == {"HNL": 300000, "USD": 120000}
    assert totals.has_foreign_currency is True
    assert totals.assumed_item_ids == [2]
    assert totals.display() == "L. 3,000.00 / $ 1,200.00"


def test_home_currency_always_listed_first():
    items = [{"id": 7, "description": "IM01 - Implante de titanio", "quantity": 1, "unit_price_cents": 5000}]
    totals = calculate_quote_totals(items, CATALOG, "HNL")
    assert list(totals.by_currency) == ["HNL", "USD"]
    assert totals.by_currency["HNL"] == 0


def test_totals_ignore_stale_item_totals():
    items = [
        {
            "id": 3,
            "description": "PR01 - Limpieza dental",
            "quantity": 3,
            "unit_price_cents": 80000,
            "total_price_cents": 1,
        }
    ]
    totals = calculate_quote_totals(items, CATALOG, "HNL")
    assert totals.by_currency == {"HNL": 240000}
    assert totals.assumed_item_ids == []
    assert totals.has_foreign_currency is False


def test_hand_edited_description_falls_back_to_home_currency():
    currency, matched = resolve_item_currency("Implante de titanio (IM01)", CATALOG, "HNL")
    assert currency == "HNL"
    assert matched is False


@pytest.mark.parametrize(
    ("quantity", "unit_price", "expected"),
    [(1, 100, 100), (3, 2500, 7500), (0, 2500, 0), (None, 2500, 0), (2, None, 0)],
)
def test_recompute_item_total(quantity, unit_price, expected):
    assert recompute_item_total(quantity, unit_price) == expected


def test_format_money_unknown_currency_uses_code():
    assert format_money(123456, "EUR") == "EUR 1,234.56"
