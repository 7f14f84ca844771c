"""Per-currency totals for quotes.

Line items do not store a currency. The currency of an item is inferred by
looking for a catalog label (``"<code> - <name>"``) inside the item
description, and items that match nothing fall back to the home currency.
This is a heuristic: a description edited by hand can land in the wrong
bucket, so every item whose currency was assumed is reported back in
``QuoteTotals.assumed_item_ids`` instead of being silently trusted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

CURRENCY_SYMBOLS: dict[str, str] = {
    "HNL": "L.",
    "USD": "$",
}


@dataclass
class QuoteTotals:
    home_currency: str
    by_currency: dict[str, int] = field(default_factory=dict)
    assumed_item_ids: list[Any] = field(default_factory=list)

    @property
    def has_foreign_currency(self) -> bool:
        return any(
            amount > 0 for currency, amount in self.by_currency.items() if currency != self.home_currency
        )

    def display(self) -> str:
        return " / ".join(format_money(amount, currency) for currency, amount in self.by_currency.items())


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def format_money(cents: int, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol} {cents / 100:,.2f}"


def recompute_item_total(quantity: int | None, unit_price_cents: int | None) -> int:
    return int(quantity or 0) * int(unit_price_cents or 0)


def catalog_label(entry: Any) -> str:
    return f"{_get(entry, 'code')} - {_get(entry, 'name')}"


def resolve_item_currency(
    description: str | None, catalog: Iterable[Any], home_currency: str
) -> tuple[str, bool]:
    """Return ``(currency, matched)`` for a line item description."""
    text = description or ""
    if text:
        for entry in catalog:
            if catalog_label(entry) in text:
                return (_get(entry, "currency") or home_currency), True
    return home_currency, False


def calculate_quote_totals(items: Iterable[Any], catalog: Iterable[Any], home_currency: str) -> QuoteTotals:
    catalog = list(catalog)
    totals = QuoteTotals(home_currency=home_currency, by_currency={home_currency: 0})
    for index, item in enumerate(items):
        currency, matched = resolve_item_currency(_get(item, "description"), catalog, home_currency)
        amount = recompute_item_total(_get(item, "quantity"), _get(item, "unit_price_cents"))
        totals.by_currency[currency] = totals.by_currency.get(currency, 0) + amount
        if not matched:
            totals.assumed_item_ids.append(_get(item, "id", index))
    return totals
