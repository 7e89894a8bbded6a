# Overview: Display helpers for currency and dates (Indonesian locale).

from __future__ import annotations

MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def format_currency(amount: int) -> str:
    """
    Render a whole-Rupiah amount as ``Rp 1.500.000``.

    Display only: amounts are stored as integers and never rounded here.
    """
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(int(amount)):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"


def format_date(value: str | None) -> str:
    """YYYY-MM-DD -> '05 Januari 2025'. Anything unparseable is returned unchanged."""
    if not value:
        return "-"
    parts = value[:10].split("-")
    if len(parts) == 3 and parts[1].isdigit():
        month_index = int(parts[1]) - 1
        if 0 <= month_index < 12:
            return f"{parts[2]} {MONTHS_ID[month_index]} {parts[0]}"
    return value
