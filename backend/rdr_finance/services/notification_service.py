# Overview: Service-layer operations for the notification relay (server side).

"""
Notification Relay

Admins compose messages for one employee or for everyone (broadcast).
Workflow transitions emit messages to the requesting employee, and new
reimbursement requests land in the admin inbox.

Delivery is pull-based: employee clients poll ``notifications_for_employee`` and get
the whole current list, newest first. Nothing is marked as read for
employees; "new" is decided on the client (see notification_poller.py).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, Notification, Reimbursement, User
from ..models.communications import (
    NOTIFICATION_TYPES,
    TARGET_ADMIN,
    TARGET_EMPLOYEE,
    TYPE_INFO,
)
from ..models.reimbursements import STATUS_PENDING
from .permission_service import require_admin

BROADCAST_LABEL = "All employees (broadcast)"
EMPLOYEE_FEED_LIMIT = 50
ADMIN_INBOX_LIMIT = 50


def validate_type(notification_type: str | None) -> str:
    normalized = (notification_type or TYPE_INFO).strip().lower()
    if normalized not in NOTIFICATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(NOTIFICATION_TYPES)}")
    return normalized


def send_notification(
    actor: User,
    *,
    employee_id: int | None,
    message: str,
    notification_type: str | None = None,
) -> Notification:
    """Compose a message; employee_id=None broadcasts to all employees."""
    require_admin(actor, "send notifications")

    message = (message or "").strip()
    if not message:
        raise ValidationError("message is required")
    notification_type = validate_type(notification_type)

    if employee_id is not None and not db.session.get(Employee, employee_id):
        raise NotFoundError(f"Employee {employee_id} not found")

    notification = Notification(
        employee_id=employee_id,
        target_role=TARGET_EMPLOYEE,
        message=message,
        type=notification_type,
        created_by_user_id=actor.id,
    )
    db.session.add(notification)
    db.session.commit()
    return notification


def _emit(notification: Notification) -> Notification | None:
    try:
        db.session.add(notification)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Failed to store notification: %s", notification.message, exc_info=True)
        return None
    return notification


def notify_employee(
    employee_id: int | None,
    message: str,
    notification_type: str,
    created_by_user_id: int | None = None,
) -> Notification | None:
    """
    Best-effort direct message used by workflow side effects.

    Never raises for storage failures; the caller's operation has already
    committed and must not be undone by a missing notification.
    """
    if employee_id is None:
        current_app.logger.warning("No employee linked; notification skipped: %s", message)
        return None
    return _emit(
        Notification(
            employee_id=employee_id,
            target_role=TARGET_EMPLOYEE,
            message=message,
            type=validate_type(notification_type),
            created_by_user_id=created_by_user_id,
        )
    )


def notify_admins(message: str, notification_type: str = TYPE_INFO,
                  created_by_user_id: int | None = None) -> Notification | None:
    return _emit(
        Notification(
            employee_id=None,
            target_role=TARGET_ADMIN,
            message=message,
            type=validate_type(notification_type),
            created_by_user_id=created_by_user_id,
        )
    )


def notifications_for_employee(employee: Employee) -> dict:
    """
    Everything addressed to this employee (direct + broadcast), newest first.

    Also reports how many of the employee's reimbursements are still PENDING.
    """
    rows = (
        db.session.query(Notification)
        .filter(
            Notification.target_role == TARGET_EMPLOYEE,
            or_(Notification.employee_id == employee.id, Notification.employee_id.is_(None)),
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(EMPLOYEE_FEED_LIMIT)
        .all()
    )
    pending_count = (
        db.session.query(Reimbursement)
        .filter_by(employee_id=employee.id, status=STATUS_PENDING)
        .count()
    )
    return {
        "count": len(rows),
        "pending_count": pending_count,
        "notifications": [n.to_dict() for n in rows],
    }


def admin_inbox() -> dict:
    rows = (
        db.session.query(Notification)
        .filter(Notification.target_role == TARGET_ADMIN)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(ADMIN_INBOX_LIMIT)
        .all()
    )
    return {
        "count": sum(1 for n in rows if not n.is_read),
        "notifications": [n.to_dict() for n in rows],
    }


def sent_history(actor: User) -> list[dict]:
    """Employee-facing notifications with recipient names, newest first."""
    require_admin(actor, "view notification history")
    rows = (
        db.session.query(Notification)
        .filter(Notification.target_role == TARGET_EMPLOYEE)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
    history = []
    for n in rows:
        data = n.to_dict()
        if n.employee_id is None:
            data["recipient_name"] = BROADCAST_LABEL
        else:
            data["recipient_name"] = n.employee.name if n.employee else "Unknown employee"
        history.append(data)
    return history


def mark_admin_inbox_read(actor: User) -> int:
    require_admin(actor, "update the admin inbox")
    updated = (
        db.session.query(Notification)
        .filter(Notification.target_role == TARGET_ADMIN, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def clear_admin_inbox(actor: User) -> int:
    require_admin(actor, "clear the admin inbox")
    deleted = (
        db.session.query(Notification)
        .filter(Notification.target_role == TARGET_ADMIN)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted


def delete_notification(actor: User, notification_id: int) -> None:
    require_admin(actor, "delete notifications")
    notification = db.session.get(Notification, notification_id)
    if not notification:
        raise NotFoundError(f"Notification {notification_id} not found")
    db.session.delete(notification)
    db.session.commit()
