from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_epoch_ms, utcnow

TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"
VALID_TRANSACTION_TYPES = {TYPE_INCOME, TYPE_EXPENSE}

EXPENSE_NORMAL = "NORMAL"
EXPENSE_REIMBURSED = "REIMBURSED"
VALID_EXPENSE_TYPES = {EXPENSE_NORMAL, EXPENSE_REIMBURSED}


class Transaction(db.Model):
    """
    A journal entry: one income or expense with its line items.

    grand_total is always the sum of the item totals and is computed by the
    journal service, never taken from the client. Entries are immutable once
    written.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    type = db.Column(db.String(16), nullable=False, index=True)  # INCOME, EXPENSE
    expense_type = db.Column(db.String(16), nullable=True)  # NORMAL, REIMBURSED (EXPENSE only)
    category = db.Column(db.String(255), nullable=False, index=True)
    activity_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    grand_total = db.Column(db.BigInteger, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "type": self.type,
            "expense_type": self.expense_type,
            "category": self.category,
            "activity_name": self.activity_name,
            "description": self.description,
            "grand_total": self.grand_total,
            "items": [item.to_dict() for item in self.items],
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "timestamp": to_epoch_ms(self.created_at),
        }


class TransactionItem(db.Model):
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.BigInteger, nullable=False)
    total = db.Column(db.BigInteger, nullable=False)
    file_url = db.Column(db.Text, nullable=True)  # receipt reference from the upload store

    transaction = db.relationship("Transaction", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "qty": self.qty,
            "price": self.price,
            "total": self.total,
            "file_url": self.file_url,
        }
