# Overview: Flask API routes for settings, categories and the activity log.

from flask import Blueprint, request, jsonify, g

from ..errors import ValidationError
from ..services import activity_service, settings_service
from ..decorators import require_auth, require_role


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@settings_bp.get("")
@require_auth
@require_role("admin")
def get_settings_route():
    """Current snapshot. Secrets are masked."""
    return jsonify({"settings": settings_service.load_app_settings().to_dict()})


@settings_bp.put("/<key>")
@require_auth
@require_role("admin")
def update_setting_route(key: str):
    """
    Request body:
    {
        "value": {"host": "...", "user": "...", "password": "..."},
        "expected_version": 2  (optional; 409 if stale)
    }
    """
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        raise ValidationError("value is required")
    row = settings_service.update_setting(
        g.current_user,
        key,
        data["value"],
        expected_version=data.get("expected_version"),
    )
    activity_service.record(g.current_user, f"Updated setting {key}")
    return jsonify({
        "key": key,
        "value": settings_service.mask_secrets(settings_service.get_setting(key)),
        "version": row.version,
    })


@categories_bp.get("")
@require_auth
def list_categories_route():
    """Query params: type (INCOME|EXPENSE). Insertion order."""
    categories = settings_service.list_categories(request.args.get("type"))
    return jsonify({"categories": [c.to_dict() for c in categories]})


@categories_bp.post("")
@require_auth
@require_role("admin")
def add_category_route():
    """Request body: {"name": "Transport", "type": "EXPENSE"}"""
    data = request.get_json(silent=True) or {}
    category = settings_service.add_category(g.current_user, data.get("name"), data.get("type"))
    activity_service.record(g.current_user, f"Added category {category.name}")
    return jsonify({"category": category.to_dict()}), 201


@categories_bp.delete("/<name>")
@require_auth
@require_role("admin")
def delete_category_route(name: str):
    deleted = settings_service.delete_category(g.current_user, name, request.args.get("type"))
    activity_service.record(g.current_user, f"Deleted category {name}")
    return jsonify({"deleted": deleted})


@logs_bp.get("")
@require_auth
@require_role("admin")
def list_logs_route():
    """Query params: q (matches username, action or IP)."""
    return jsonify({"logs": activity_service.list_activity(request.args.get("q"))})
