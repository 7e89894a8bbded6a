# Overview: Report aggregation over journal entries and approved reimbursements; CSV and print export.

"""
Ledger Report

Merges journal transactions and APPROVED reimbursements into one row set,
filters it, sorts it newest first and summarizes it.

Row building, filtering, sorting and summarizing are pure functions over
plain objects so they can be exercised without a database. ``ledger_report``
is the only function that queries.

SUMMARY:
    income          sum of INCOME rows
    expense         sum of EXPENSE rows (every sub-type)
    reimburse_total sum of rows in the reimbursed family
    cash_expense    expense - reimburse_total
    balance         income - expense
"""

from __future__ import annotations

import csv
import io
from dataclasses import asdict, dataclass
from typing import Iterable

from flask import render_template_string

from ..errors import ValidationError
from ..extensions import db
from ..formatting import format_currency, format_date
from ..models import Reimbursement, Transaction
from ..models.journal import (
    EXPENSE_NORMAL,
    EXPENSE_REIMBURSED,
    TYPE_EXPENSE,
    TYPE_INCOME,
)
from ..models.reimbursements import STATUS_APPROVED
from ..time_utils import parse_iso_date, to_epoch_ms

SUB_NORMAL = EXPENSE_NORMAL
SUB_REIMBURSED = EXPENSE_REIMBURSED
# report-only sub-type; journal entries are never stored with it
SUB_REIMBURSE_SOURCED = "REIMBURSE_SOURCED"
REIMBURSED_FAMILY = {SUB_REIMBURSED, SUB_REIMBURSE_SOURCED}

SOURCE_JOURNAL = "JOURNAL"
SOURCE_REIMBURSEMENT = "REIMBURSEMENT"

FILTER_ALL = "ALL"
FILTER_REIMBURSE = "REIMBURSE"
VALID_TYPE_FILTERS = {FILTER_ALL, TYPE_INCOME, TYPE_EXPENSE, FILTER_REIMBURSE}

CSV_HEADER = ["Date", "Type", "SubType", "Category", "Activity", "Description", "Total"]


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


@dataclass(frozen=True)
class ReportRow:
    id: int
    date: str
    type: str
    sub_type: str
    category: str
    activity: str
    total: int
    description: str
    timestamp: int
    source_module: str

    @property
    def is_reimbursed(self) -> bool:
        return self.sub_type in REIMBURSED_FAMILY

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReportSummary:
    income: int = 0
    expense: int = 0
    reimburse_total: int = 0
    cash_expense: int = 0
    balance: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReportFilters:
    start_date: str | None = None
    end_date: str | None = None
    type: str = FILTER_ALL
    category: str | None = None

    @classmethod
    def from_args(cls, args) -> "ReportFilters":
        """Build from request query args (start_date, end_date, type, category)."""
        try:
            start_date = parse_iso_date(args.get("start_date"))
            end_date = parse_iso_date(args.get("end_date"))
        except ValueError:
            raise ReportError("start_date and end_date must be YYYY-MM-DD")

        report_type = (args.get("type") or FILTER_ALL).strip().upper()
        if report_type not in VALID_TYPE_FILTERS:
            raise ReportError(f"type must be one of: {', '.join(sorted(VALID_TYPE_FILTERS))}")

        category = (args.get("category") or "").strip() or None
        return cls(start_date=start_date, end_date=end_date, type=report_type, category=category)


# =============================================================================
# PURE ROW LOGIC
# =============================================================================

def transaction_row(tx) -> ReportRow:
    if tx.type == TYPE_EXPENSE:
        sub_type = tx.expense_type or EXPENSE_NORMAL
    else:
        sub_type = SUB_NORMAL
    return ReportRow(
        id=tx.id,
        date=tx.date,
        type=tx.type,
        sub_type=sub_type,
        category=tx.category,
        activity=tx.activity_name,
        total=int(tx.grand_total),
        description=tx.description or "",
        timestamp=to_epoch_ms(tx.created_at),
        source_module=SOURCE_JOURNAL,
    )


def reimbursement_row(reimbursement) -> ReportRow:
    return ReportRow(
        id=reimbursement.id,
        date=reimbursement.date,
        type=TYPE_EXPENSE,
        sub_type=SUB_REIMBURSED,
        category=reimbursement.category,
        activity=reimbursement.activity_name,
        total=int(reimbursement.grand_total),
        description=f"Reimbursed to: {reimbursement.requestor_name} - {reimbursement.description or ''}",
        timestamp=to_epoch_ms(reimbursement.created_at),
        source_module=SOURCE_REIMBURSEMENT,
    )


def build_rows(transactions: Iterable, reimbursements: Iterable) -> list[ReportRow]:
    """
    Journal rows in the given order, then approved reimbursement rows.

    Reimbursements in any other status are dropped here regardless of what
    the caller passed in.
    """
    rows = [transaction_row(tx) for tx in transactions]
    rows.extend(reimbursement_row(r) for r in reimbursements if r.status == STATUS_APPROVED)
    return rows


def filter_rows(rows: Iterable[ReportRow], filters: ReportFilters) -> list[ReportRow]:
    result = []
    for row in rows:
        # ISO dates compare correctly as strings; both bounds inclusive
        if filters.start_date and row.date < filters.start_date:
            continue
        if filters.end_date and row.date > filters.end_date:
            continue
        if filters.type == FILTER_REIMBURSE:
            if not row.is_reimbursed:
                continue
        elif filters.type != FILTER_ALL and row.type != filters.type:
            continue
        if filters.category and row.category != filters.category:
            continue
        result.append(row)
    return result


def sort_rows(rows: Iterable[ReportRow]) -> list[ReportRow]:
    """Newest first. sorted() is stable, so equal timestamps keep merge order."""
    return sorted(rows, key=lambda row: row.timestamp, reverse=True)


def summarize(rows: Iterable[ReportRow]) -> ReportSummary:
    income = 0
    expense = 0
    reimburse_total = 0
    for row in rows:
        if row.type == TYPE_INCOME:
            income += row.total
        elif row.type == TYPE_EXPENSE:
            expense += row.total
        if row.is_reimbursed:
            reimburse_total += row.total
    return ReportSummary(
        income=income,
        expense=expense,
        reimburse_total=reimburse_total,
        cash_expense=expense - reimburse_total,
        balance=income - expense,
    )


def assemble(transactions: Iterable, reimbursements: Iterable, filters: ReportFilters) -> tuple[list[ReportRow], ReportSummary]:
    rows = sort_rows(filter_rows(build_rows(transactions, reimbursements), filters))
    return rows, summarize(rows)


# =============================================================================
# DATABASE ENTRY POINT
# =============================================================================

def ledger_rows(filters: ReportFilters) -> tuple[list[ReportRow], ReportSummary]:
    transactions = db.session.query(Transaction).order_by(Transaction.id.asc()).all()
    reimbursements = (
        db.session.query(Reimbursement)
        .filter(Reimbursement.status == STATUS_APPROVED)
        .order_by(Reimbursement.id.asc())
        .all()
    )
    return assemble(transactions, reimbursements, filters)


def ledger_report(filters: ReportFilters | None = None) -> dict:
    filters = filters or ReportFilters()
    rows, summary = ledger_rows(filters)
    return {
        "filters": asdict(filters),
        "summary": summary.to_dict(),
        "rows": [row.to_dict() for row in rows],
    }


# =============================================================================
# EXPORT
# =============================================================================

def table_rows(rows: Iterable[ReportRow]) -> list[list]:
    """The flat table shared by the CSV download and the print view."""
    return [
        [row.date, row.type, row.sub_type, row.category, row.activity, row.description, row.total]
        for row in rows
    ]


def to_csv(rows: Iterable[ReportRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(table_rows(rows))
    return buffer.getvalue()


PRINT_TEMPLATE = """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>Financial Report</title>
</head>
<body onload="window.print()">
<h1>Financial Report</h1>
<p>Period: {{ period }}</p>
<table border="1" cellspacing="0" cellpadding="4">
<thead><tr>{% for h in header %}<th>{{ h }}</th>{% endfor %}</tr></thead>
<tbody>
{% for r in rows %}<tr><td>{{ r[0] }}</td><td>{{ r[1] }}</td><td>{{ r[2] }}</td><td>{{ r[3] }}</td><td>{{ r[4] }}</td><td>{{ r[5] }}</td><td>{{ r[6] }}</td></tr>
{% endfor %}</tbody>
</table>
<table>
<tr><td>Income</td><td>{{ summary.income }}</td></tr>
<tr><td>Expense</td><td>{{ summary.expense }}</td></tr>
<tr><td>Reimbursed</td><td>{{ summary.reimburse_total }}</td></tr>
<tr><td>Cash expense</td><td>{{ summary.cash_expense }}</td></tr>
<tr><td>Balance</td><td>{{ summary.balance }}</td></tr>
</table>
</body>
</html>
"""


def render_print_html(rows: list[ReportRow], summary: ReportSummary, filters: ReportFilters) -> str:
    """Printable table with display-formatted dates and currency. Needs an app context."""
    display_rows = []
    for date, tx_type, sub_type, category, activity, description, total in table_rows(rows):
        display_rows.append(
            [format_date(date), tx_type, sub_type, category, activity, description, format_currency(total)]
        )
    if filters.start_date or filters.end_date:
        period = f"{format_date(filters.start_date)} - {format_date(filters.end_date)}"
    else:
        period = "All time"
    return render_template_string(
        PRINT_TEMPLATE,
        header=CSV_HEADER,
        rows=display_rows,
        period=period,
        summary={key: format_currency(value) for key, value in summary.to_dict().items()},
    )
