from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_epoch_ms, utcnow

STATUS_PENDING = "PENDING"
STATUS_PROCESSING = "PROCESSING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
VALID_STATUSES = {STATUS_PENDING, STATUS_PROCESSING, STATUS_APPROVED, STATUS_REJECTED}
TERMINAL_STATUSES = {STATUS_APPROVED, STATUS_REJECTED}

# Labels used by the employee and admin screens. They are display synonyms of
# the four states, accepted on input and never stored.
STATUS_LABELS = {
    STATUS_PENDING: "PENDING",
    STATUS_PROCESSING: "PROSES",
    STATUS_APPROVED: "BERHASIL",
    STATUS_REJECTED: "DITOLAK",
}
STATUS_SYNONYMS = {label: status for status, label in STATUS_LABELS.items()}


class Reimbursement(db.Model):
    """
    Employee expense claim awaiting admin adjudication and payout.

    STATE MACHINE:
        PENDING -> PROCESSING -> APPROVED | REJECTED
        PENDING -> APPROVED | REJECTED

    APPROVED requires transfer_proof_url, REJECTED requires rejection_reason.
    Only APPROVED claims count in financial reports.
    """
    __tablename__ = "reimbursements"
    __table_args__ = (
        db.Index("ix_reimbursements_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    requestor_name = db.Column(db.String(150), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    category = db.Column(db.String(255), nullable=False)
    activity_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    grand_total = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    transfer_proof_url = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee")
    items = db.relationship(
        "ReimbursementItem",
        back_populates="reimbursement",
        cascade="all, delete-orphan",
        order_by="ReimbursementItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "requestor_name": self.requestor_name,
            "employee_id": self.employee_id,
            "category": self.category,
            "activity_name": self.activity_name,
            "description": self.description,
            "grand_total": self.grand_total,
            "status": self.status,
            "status_label": STATUS_LABELS.get(self.status, self.status),
            "transfer_proof_url": self.transfer_proof_url,
            "rejection_reason": self.rejection_reason,
            "items": [item.to_dict() for item in self.items],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "timestamp": to_epoch_ms(self.created_at),
        }


class ReimbursementItem(db.Model):
    __tablename__ = "reimbursement_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    reimbursement_id = db.Column(db.Integer, db.ForeignKey("reimbursements.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.BigInteger, nullable=False)
    total = db.Column(db.BigInteger, nullable=False)
    file_url = db.Column(db.Text, nullable=True)  # receipt reference from the upload store

    reimbursement = db.relationship("Reimbursement", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "qty": self.qty,
            "price": self.price,
            "total": self.total,
            "file_url": self.file_url,
        }
