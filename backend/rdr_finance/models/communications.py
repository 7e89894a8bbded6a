from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

TYPE_INFO = "info"
TYPE_SUCCESS = "success"
TYPE_WARNING = "warning"
TYPE_ERROR = "error"
NOTIFICATION_TYPES = (TYPE_INFO, TYPE_SUCCESS, TYPE_WARNING, TYPE_ERROR)

TARGET_EMPLOYEE = "employee"
TARGET_ADMIN = "admin"


class Notification(db.Model):
    """
    Messages for employees (direct or broadcast) and for the admin inbox.

    Employee-facing rows: employee_id set for a direct message, NULL for a
    broadcast. Employees pull them by polling; nothing is marked as read for
    them. Admin-facing rows (target_role=admin) use is_read for the inbox.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_target", "target_role", "employee_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    target_role = db.Column(db.String(16), nullable=False, default=TARGET_EMPLOYEE)

    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False, default=TYPE_INFO)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    employee = db.relationship("Employee")

    @property
    def is_broadcast(self) -> bool:
        return self.target_role == TARGET_EMPLOYEE and self.employee_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "target_role": self.target_role,
            "message": self.message,
            "type": self.type,
            "is_read": self.is_read,
            "is_broadcast": self.is_broadcast,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
