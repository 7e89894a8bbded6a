# Overview: Service-layer operations for the activity log; append-only, best-effort.

from __future__ import annotations

from flask import current_app, request
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog, User


def log_activity(
    user: User | None,
    action: str,
    *,
    ip_address: str | None = None,
    device_info: str | None = None,
) -> ActivityLog | None:
    """
    Append an activity row and commit it.

    Call after the main operation has committed. A failure here is logged
    and swallowed: the activity log is best-effort, the operation is not.
    """
    entry = ActivityLog(
        user_id=user.id if user else None,
        username=user.username if user else None,
        action=action[:255],
        ip_address=ip_address,
        device_info=(device_info or "")[:255] or None,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Could not write activity log entry: %s", action, exc_info=True)
        return None
    return entry


def list_activity(search: str | None = None, limit: int = 200) -> list[dict]:
    query = db.session.query(ActivityLog)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                ActivityLog.username.ilike(pattern),
                ActivityLog.action.ilike(pattern),
                ActivityLog.ip_address.ilike(pattern),
            )
        )
    rows = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
    return [row.to_dict() for row in rows]


def record(user: User | None, action: str) -> ActivityLog | None:
    """log_activity with the client address and user agent of the current request."""
    return log_activity(
        user,
        action,
        ip_address=request.headers.get("X-Forwarded-For", request.remote_addr),
        device_info=request.headers.get("User-Agent"),
    )
