# Overview: Service-layer operations for journal entries (income and expense transactions).

"""
Journal Service

A journal entry is written together with all of its items in one commit.
grand_total is derived from the items here; the client's figure is ignored.
Entries are immutable once recorded.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Transaction, TransactionItem, User
from ..models.journal import (
    TYPE_EXPENSE,
    EXPENSE_NORMAL,
    VALID_EXPENSE_TYPES,
    VALID_TRANSACTION_TYPES,
)
from ..time_utils import parse_iso_date
from . import line_items
from .concurrency import atomic
from .permission_service import require_admin


def _required_text(payload: dict, key: str) -> str:
    value = str(payload.get(key) or "").strip()
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def _entry_date(payload: dict) -> str:
    try:
        value = parse_iso_date(payload.get("date"))
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD")
    if not value:
        raise ValidationError("date is required")
    return value


def create_transaction(actor: User, payload: dict) -> Transaction:
    """
    Record an income or expense entry with its items.

    Payload:
        date, type (INCOME|EXPENSE), expense_type (NORMAL|REIMBURSED, EXPENSE only),
        category, activity_name, description, items: [{name, qty, price, file_url?}]

    Raises:
        AuthorizationError: actor is not an admin
        ValidationError: any field invalid; nothing is written
    """
    require_admin(actor, "record journal entries")

    tx_type = str(payload.get("type") or "").strip().upper()
    if tx_type not in VALID_TRANSACTION_TYPES:
        raise ValidationError("type must be INCOME or EXPENSE")

    expense_type = payload.get("expense_type")
    if tx_type == TYPE_EXPENSE:
        expense_type = str(expense_type or EXPENSE_NORMAL).strip().upper()
        if expense_type not in VALID_EXPENSE_TYPES:
            raise ValidationError(f"expense_type must be one of: {', '.join(sorted(VALID_EXPENSE_TYPES))}")
    elif expense_type:
        raise ValidationError("expense_type is only allowed on EXPENSE entries")
    else:
        expense_type = None

    items = line_items.parse_items(payload.get("items"))

    transaction = Transaction(
        date=_entry_date(payload),
        type=tx_type,
        expense_type=expense_type,
        category=_required_text(payload, "category"),
        activity_name=_required_text(payload, "activity_name"),
        description=(payload.get("description") or "").strip() or None,
        grand_total=line_items.grand_total(items),
        created_by_user_id=actor.id,
        items=line_items.build_rows(TransactionItem, items),
    )

    with atomic() as session:
        session.add(transaction)

    current_app.logger.info(
        "Journal entry %s recorded: %s %s", transaction.id, transaction.type, transaction.grand_total
    )
    return transaction


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.get(Transaction, transaction_id)
    if not transaction:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def list_transactions(
    *,
    tx_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    category: str | None = None,
) -> list[Transaction]:
    """Newest first. Bounds are inclusive YYYY-MM-DD strings."""
    query = db.session.query(Transaction)
    if tx_type:
        query = query.filter(Transaction.type == tx_type.upper())
    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)
    if category:
        query = query.filter(Transaction.category == category)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()
