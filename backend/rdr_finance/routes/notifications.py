# Overview: Flask API routes for the notification relay; parses input and returns JSON responses.

"""
Notification API routes

- GET /api/notifications: employees get their feed (direct + broadcast),
  admins get the admin inbox
- POST /api/notifications: admin composes for one employee or everyone
- GET /api/admin/notifications: admin sent history with recipient names
"""

from flask import Blueprint, request, jsonify, g

from ..errors import ValidationError
from ..services import activity_service, notification_service
from ..decorators import require_auth, require_role


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")
admin_notifications_bp = Blueprint("admin_notifications", __name__, url_prefix="/api/admin/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    user = g.current_user
    if user.is_admin:
        return jsonify(notification_service.admin_inbox())
    if user.employee is None:
        return jsonify({"count": 0, "pending_count": 0, "notifications": []})
    return jsonify(notification_service.notifications_for_employee(user.employee))


@notifications_bp.post("")
@require_auth
@require_role("admin")
def send_notification_route():
    """
    Request body:
    {
        "employee_id": 3,  (null or omitted = broadcast)
        "message": "Payroll is out",
        "type": "info"  (info|success|warning|error)
    }
    """
    data = request.get_json(silent=True) or {}
    employee_id = data.get("employee_id")
    if employee_id in ("", "all"):
        employee_id = None
    if employee_id is not None:
        try:
            employee_id = int(employee_id)
        except (TypeError, ValueError):
            raise ValidationError("employee_id must be an integer or null")

    notification = notification_service.send_notification(
        g.current_user,
        employee_id=employee_id,
        message=data.get("message"),
        notification_type=data.get("type"),
    )
    target = "all employees" if employee_id is None else f"employee {employee_id}"
    activity_service.record(g.current_user, f"Sent notification to {target}")
    return jsonify({"notification": notification.to_dict()}), 201


@notifications_bp.put("/read-all")
@require_auth
@require_role("admin")
def mark_all_read_route():
    updated = notification_service.mark_admin_inbox_read(g.current_user)
    return jsonify({"updated": updated})


@notifications_bp.delete("/clear-all")
@require_auth
@require_role("admin")
def clear_all_route():
    deleted = notification_service.clear_admin_inbox(g.current_user)
    return jsonify({"deleted": deleted})


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@require_role("admin")
def delete_notification_route(notification_id: int):
    notification_service.delete_notification(g.current_user, notification_id)
    activity_service.record(g.current_user, f"Deleted notification {notification_id}")
    return jsonify({"status": "deleted"})


@admin_notifications_bp.get("")
@require_auth
@require_role("admin")
def sent_history_route():
    return jsonify({"notifications": notification_service.sent_history(g.current_user)})
