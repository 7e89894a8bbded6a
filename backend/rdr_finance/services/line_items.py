# Overview: Line-item validation and total arithmetic shared by journal entries and reimbursements.

"""
Items arrive from the client as dicts. The client's own ``total`` and
``grand_total`` are ignored: each item total is recomputed as
``qty * price`` and the grand total as the sum of item totals, all in whole
currency units (int). Receipts are attached by reference only; the
``file_url`` must come from the upload store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..errors import ValidationError


@dataclass(frozen=True)
class LineItem:
    name: str
    qty: int
    price: int
    file_url: str | None = None

    @property
    def total(self) -> int:
        return self.qty * self.price


def _as_int(value: Any, field: str, index: int) -> int:
    # bool is an int subclass; a JSON true must not become qty=1
    if isinstance(value, bool):
        raise ValidationError(f"items[{index}].{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"items[{index}].{field} must be a whole number")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValidationError(f"items[{index}].{field} must be an integer") from None
    raise ValidationError(f"items[{index}].{field} must be an integer")


def parse_items(raw_items: Any) -> list[LineItem]:
    """Validate an items payload. At least one item; qty >= 1; price >= 0."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    items: list[LineItem] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        name = str(raw.get("name") or "").strip()
        if not name:
            raise ValidationError(f"items[{index}].name is required")

        qty = _as_int(raw.get("qty"), "qty", index)
        price = _as_int(raw.get("price"), "price", index)
        if qty < 1:
            raise ValidationError(f"items[{index}].qty must be at least 1")
        if price < 0:
            raise ValidationError(f"items[{index}].price must not be negative")

        file_url = raw.get("file_url") or raw.get("file_preview_url")
        items.append(LineItem(name=name, qty=qty, price=price, file_url=file_url or None))
    return items


def grand_total(items: Iterable[LineItem]) -> int:
    return sum(item.total for item in items)


def build_rows(model, items: Iterable[LineItem]) -> list:
    """Instantiate item rows (TransactionItem / ReimbursementItem) with computed totals."""
    return [
        model(name=item.name, qty=item.qty, price=item.price, total=item.total, file_url=item.file_url)
        for item in items
    ]
