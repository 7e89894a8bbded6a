# Overview: Flask API routes for journal entries; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import activity_service, journal_service
from ..formatting import format_currency
from ..decorators import require_auth, require_role


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
@require_role("admin")
def list_transactions_route():
    """
    List journal entries, newest first.

    Query params: type (INCOME|EXPENSE), start_date, end_date, category
    """
    transactions = journal_service.list_transactions(
        tx_type=request.args.get("type"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        category=request.args.get("category"),
    )
    return jsonify({"transactions": [t.to_dict() for t in transactions]})


@transactions_bp.post("")
@require_auth
@require_role("admin")
def create_transaction_route():
    """
    Record an income or expense.

    Request body:
    {
        "date": "2025-01-05",
        "type": "EXPENSE",
        "expense_type": "NORMAL",  (EXPENSE only, default NORMAL)
        "category": "Operations",
        "activity_name": "Office supplies",
        "description": "...",
        "items": [{"name": "Paper", "qty": 2, "price": 50000, "file_url": "/uploads/x.png"}]
    }

    grand_total and item totals are computed here; values sent by the client
    are ignored.

    Returns:
        201: Transaction created
        400: Invalid input
    """
    data = request.get_json(silent=True) or {}
    transaction = journal_service.create_transaction(g.current_user, data)
    activity_service.record(
        g.current_user,
        f"Recorded {transaction.type} {transaction.activity_name} ({format_currency(transaction.grand_total)})",
    )
    return jsonify({"transaction": transaction.to_dict()}), 201


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_role("admin")
def get_transaction_route(transaction_id: int):
    transaction = journal_service.get_transaction(transaction_id)
    return jsonify({"transaction": transaction.to_dict()})
