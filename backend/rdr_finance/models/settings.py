from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class AppSetting(db.Model):
    """
    Process-wide key/value configuration (database_config, drive_config, ...).

    value_json holds the JSON-encoded value. version increments on every write
    so callers can update with optimistic concurrency.
    """
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value_json = db.Column(db.Text, nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Category(db.Model):
    """Journal/reimbursement category; unique per type, listed in insertion order."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", "type", name="uq_categories_name_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="EXPENSE")  # INCOME, EXPENSE
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }
