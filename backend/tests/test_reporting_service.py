"""Ledger report: inclusion, filters, stable ordering, summary and export."""

import csv
import io
from datetime import datetime
from types import SimpleNamespace

import pytest

from rdr_finance.services import journal_service, reimbursement_service, reporting_service
from rdr_finance.services.reporting_service import ReportError, ReportFilters

from conftest import claim_payload

T0 = datetime(2025, 1, 5, 9, 0, 0)
T1 = datetime(2025, 1, 6, 9, 0, 0)


def tx(id, type="EXPENSE", expense_type=None, total=0, date="2025-01-05", category="Ops", created_at=T0,
       description="desc"):
    if type == "EXPENSE" and expense_type is None:
        expense_type = "NORMAL"
    return SimpleNamespace(
        id=id, type=type, expense_type=expense_type, grand_total=total, date=date, category=category,
        activity_name=f"activity {id}", description=description, created_at=created_at,
    )


def reimb(id, status="APPROVED", total=0, date="2025-01-05", category="Transport", created_at=T0):
    return SimpleNamespace(
        id=id, status=status, grand_total=total, date=date, category=category,
        activity_name=f"claim {id}", description="Taxi", requestor_name="Budi", created_at=created_at,
    )


# =============================================================================
# PURE ROW LOGIC
# =============================================================================


def test_only_approved_reimbursements_are_included():
    rows = reporting_service.build_rows(
        [tx(1, total=100)],
        [reimb(1, status=s, total=10) for s in ("PENDING", "PROCESSING", "REJECTED")] + [reimb(2, total=20)],
    )
    assert [(r.source_module, r.id) for r in rows] == [("JOURNAL", 1), ("REIMBURSEMENT", 2)]


def test_row_shapes():
    income, expense, claim = reporting_service.build_rows(
        [tx(1, type="INCOME", total=500), tx(2, expense_type="REIMBURSED", total=40)],
        [reimb(3, total=75)],
    )
    assert (income.type, income.sub_type) == ("INCOME", "NORMAL")
    assert (expense.type, expense.sub_type) == ("EXPENSE", "REIMBURSED")
    assert (claim.type, claim.sub_type) == ("EXPENSE", "REIMBURSED")
    assert claim.description == "Reimbursed to: Budi - Taxi"
    assert claim.activity == "claim 3"


def test_summary_over_mixed_rows():
    rows = reporting_service.build_rows(
        [
            tx(1, type="INCOME", total=1000),
            tx(2, total=300),
            tx(3, expense_type="REIMBURSE_SOURCED", total=50),
        ],
        [reimb(4, total=75)],
    )
    summary = reporting_service.summarize(rows)
    assert summary.income == 1000
    assert summary.expense == 425
    assert summary.reimburse_total == 125
    assert summary.cash_expense == 300
    assert summary.balance == 575


def test_empty_set_summarizes_to_zero():
    assert reporting_service.summarize([]).to_dict() == {
        "income": 0, "expense": 0, "reimburse_total": 0, "cash_expense": 0, "balance": 0,
    }


def test_date_bounds_are_inclusive():
    rows = reporting_service.build_rows(
        [tx(1, date="2025-01-01"), tx(2, date="2025-01-15"), tx(3, date="2025-01-31"), tx(4, date="2025-02-01")],
        [],
    )
    kept = reporting_service.filter_rows(rows, ReportFilters(start_date="2025-01-01", end_date="2025-01-31"))
    assert [r.id for r in kept] == [1, 2, 3]


def test_type_and_category_filters():
    rows = reporting_service.build_rows(
        [
            tx(1, type="INCOME", category="Sales"),
            tx(2, category="Ops"),
            tx(3, expense_type="REIMBURSE_SOURCED", category="Ops"),
        ],
        [reimb(4, category="Transport")],
    )

    def ids(**kwargs):
        return [(r.source_module[0], r.id) for r in reporting_service.filter_rows(rows, ReportFilters(**kwargs))]

    assert ids(type="INCOME") == [("J", 1)]
    assert ids(type="EXPENSE") == [("J", 2), ("J", 3), ("R", 4)]
    assert ids(type="REIMBURSE") == [("J", 3), ("R", 4)]
    assert ids(category="Ops") == [("J", 2), ("J", 3)]
    assert ids(type="REIMBURSE", category="Transport") == [("R", 4)]


def test_sort_is_descending_and_stable():
    rows = reporting_service.build_rows(
        [tx(1, created_at=T0), tx(2, created_at=T1), tx(3, created_at=T0)],
        [reimb(9, created_at=T0)],
    )
    ordered = reporting_service.sort_rows(rows)
    assert [(r.source_module[0], r.id) for r in ordered] == [("J", 2), ("J", 1), ("J", 3), ("R", 9)]


def test_filters_from_args():
    filters = ReportFilters.from_args({"type": "reimburse", "start_date": "2025-01-01", "category": " Ops "})
    assert filters == ReportFilters(start_date="2025-01-01", end_date=None, type="REIMBURSE", category="Ops")

    with pytest.raises(ReportError):
        ReportFilters.from_args({"type": "TRANSFER"})
    with pytest.raises(ReportError):
        ReportFilters.from_args({"start_date": "31-01-2025"})


# =============================================================================
# EXPORT
# =============================================================================


def test_csv_header_and_quoting():
    rows = reporting_service.build_rows(
        [tx(1, total=1500, description='Paper, "A4"\nand ink')],
        [],
    )
    text = reporting_service.to_csv(rows)
    parsed = list(csv.reader(io.StringIO(text)))
    assert parsed[0] == ["Date", "Type", "SubType", "Category", "Activity", "Description", "Total"]
    assert parsed[1] == ["2025-01-05", "EXPENSE", "NORMAL", "Ops", "activity 1", 'Paper, "A4"\nand ink', "1500"]
    assert '"Paper, ""A4""\nand ink"' in text


def test_print_view_matches_table_rows(app):
    rows = reporting_service.sort_rows(reporting_service.build_rows(
        [tx(1, total=1500000, created_at=T0), tx(2, type="INCOME", total=10, created_at=T1)],
        [],
    ))
    summary = reporting_service.summarize(rows)
    with app.test_request_context():
        html = reporting_service.render_print_html(rows, summary, ReportFilters())
    assert "Rp 1.500.000" in html
    assert "05 Januari 2025" in html
    assert html.index("activity 2") < html.index("activity 1")


# =============================================================================
# DATABASE SCENARIO
# =============================================================================


def test_approval_moves_claim_into_the_report(db_session, admin, employee_user):
    journal_service.create_transaction(admin, claim_payload(
        type="EXPENSE", items=[{"name": "Paper", "qty": 2, "price": 50000}],
    ))
    claim = reimbursement_service.submit_reimbursement(employee_user, claim_payload(
        items=[{"name": "Taxi", "qty": 1, "price": 75000}],
    ))

    before = reporting_service.ledger_report()["summary"]
    assert (before["expense"], before["reimburse_total"], before["cash_expense"]) == (100000, 0, 100000)

    reimbursement_service.approve(admin, claim.id, "/uploads/proof.png")

    report = reporting_service.ledger_report()
    after = report["summary"]
    assert (after["expense"], after["reimburse_total"], after["cash_expense"]) == (175000, 75000, 100000)
    assert {r["source_module"] for r in report["rows"]} == {"JOURNAL", "REIMBURSEMENT"}


def test_report_endpoints(client, admin, admin_headers, employee_headers):
    journal_service.create_transaction(admin, claim_payload(type="INCOME", category="Sales"))

    resp = client.get("/api/reports/ledger?type=INCOME", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["summary"]["income"] == 75000

    resp = client.get("/api/reports/ledger?type=BOGUS", headers=admin_headers)
    assert resp.status_code == 400

    resp = client.get("/api/reports/ledger.csv", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert resp.get_data(as_text=True).splitlines()[0] == "Date,Type,SubType,Category,Activity,Description,Total"

    resp = client.get("/api/reports/ledger/print", headers=admin_headers)
    assert resp.status_code == 200
    assert "Rp 75.000" in resp.get_data(as_text=True)

    assert client.get("/api/reports/ledger", headers=employee_headers).status_code == 403
