"""Journal entries: admin-only, totals recomputed, one atomic write."""

import pytest

from rdr_finance.errors import AuthorizationError, NotFoundError, ValidationError
from rdr_finance.models import Transaction, TransactionItem
from rdr_finance.services import journal_service

from conftest import claim_payload


def test_expense_defaults_to_normal_and_recomputes_total(db_session, admin):
    tx = journal_service.create_transaction(admin, claim_payload(
        type="EXPENSE",
        grand_total=1,
        items=[{"name": "Paper", "qty": 2, "price": 50000}],
    ))
    assert tx.id is not None
    assert tx.expense_type == "NORMAL"
    assert tx.grand_total == 100000
    assert tx.items[0].total == 100000
    assert tx.to_dict()["timestamp"] > 0


def test_income_rejects_expense_type(db_session, admin):
    with pytest.raises(ValidationError):
        journal_service.create_transaction(admin, claim_payload(type="INCOME", expense_type="NORMAL"))
    assert db_session.query(Transaction).count() == 0


def test_invalid_item_writes_nothing(db_session, admin):
    with pytest.raises(ValidationError):
        journal_service.create_transaction(admin, claim_payload(
            type="EXPENSE",
            items=[{"name": "ok", "qty": 1, "price": 1}, {"name": "bad", "qty": 0, "price": 1}],
        ))
    assert db_session.query(Transaction).count() == 0
    assert db_session.query(TransactionItem).count() == 0


def test_bad_date_is_rejected(db_session, admin):
    with pytest.raises(ValidationError):
        journal_service.create_transaction(admin, claim_payload(type="INCOME", date="05/01/2025"))


@pytest.mark.parametrize("value", ["2025-01-05junk", "20250105", "2025-02-30"])
def test_malformed_dates_are_rejected(db_session, admin, value):
    with pytest.raises(ValidationError):
        journal_service.create_transaction(admin, claim_payload(type="INCOME", date=value))
    assert db_session.query(Transaction).count() == 0


def test_reimburse_sourced_is_not_a_journal_expense_type(db_session, admin):
    with pytest.raises(ValidationError) as exc:
        journal_service.create_transaction(admin, claim_payload(type="EXPENSE", expense_type="REIMBURSE_SOURCED"))
    assert "NORMAL, REIMBURSED" in exc.value.message
    assert db_session.query(Transaction).count() == 0


def test_employees_cannot_record_entries(db_session, employee_user):
    with pytest.raises(AuthorizationError):
        journal_service.create_transaction(employee_user, claim_payload(type="INCOME"))


def test_list_filters_and_newest_first(db_session, admin):
    first = journal_service.create_transaction(admin, claim_payload(type="INCOME", date="2025-01-01", category="Sales"))
    second = journal_service.create_transaction(admin, claim_payload(type="EXPENSE", date="2025-02-01"))

    assert [t.id for t in journal_service.list_transactions()] == [second.id, first.id]
    assert [t.id for t in journal_service.list_transactions(tx_type="income")] == [first.id]
    assert [t.id for t in journal_service.list_transactions(start_date="2025-02-01")] == [second.id]
    assert [t.id for t in journal_service.list_transactions(category="Sales")] == [first.id]


def test_get_missing_transaction(db_session):
    with pytest.raises(NotFoundError):
        journal_service.get_transaction(999)


def test_create_via_api(client, admin_headers):
    resp = client.post("/api/transactions", headers=admin_headers, json=claim_payload(
        type="EXPENSE",
        expense_type="REIMBURSED",
        items=[{"name": "Fuel", "qty": 4, "price": 10000}],
    ))
    assert resp.status_code == 201
    body = resp.get_json()["transaction"]
    assert body["grand_total"] == 40000
    assert body["expense_type"] == "REIMBURSED"

    resp = client.get(f"/api/transactions/{body['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["transaction"]["items"][0]["name"] == "Fuel"
