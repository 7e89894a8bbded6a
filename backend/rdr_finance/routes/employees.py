# Overview: Flask API routes for employees and admin accounts.

from flask import Blueprint, request, jsonify, g

from ..services import activity_service, employee_service
from ..decorators import require_auth, require_role


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _body() -> dict:
    return request.get_json(silent=True) or {}


@employees_bp.get("")
@require_auth
@require_role("admin")
def list_employees_route():
    return jsonify({"employees": [e.to_dict() for e in employee_service.list_employees()]})


@employees_bp.post("")
@require_auth
@require_role("admin")
def create_employee_route():
    """
    Create an employee with a login.

    Request body:
    {
        "name": "Budi Santoso",
        "username": "budi",
        "password": "secret123",
        "position": "Driver",
        "phone": "0812...",
        "email": "budi@example.com"
    }
    """
    employee = employee_service.create_employee(g.current_user, _body())
    activity_service.record(g.current_user, f"Created employee {employee.name}")
    return jsonify({"employee": employee.to_dict()}), 201


@employees_bp.put("/<int:employee_id>")
@require_auth
@require_role("admin")
def update_employee_route(employee_id: int):
    employee = employee_service.update_employee(g.current_user, employee_id, _body())
    activity_service.record(g.current_user, f"Updated employee {employee.name}")
    return jsonify({"employee": employee.to_dict()})


@employees_bp.delete("/<int:employee_id>")
@require_auth
@require_role("admin")
def delete_employee_route(employee_id: int):
    employee_service.delete_employee(g.current_user, employee_id)
    activity_service.record(g.current_user, f"Deleted employee {employee_id}")
    return jsonify({"status": "deleted"})


@users_bp.get("")
@require_auth
@require_role("admin")
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in employee_service.list_admins()]})


@users_bp.post("")
@require_auth
@require_role("admin")
def create_user_route():
    """Request body: {"username": ..., "password": ..., "full_name": ...}"""
    user = employee_service.create_admin(g.current_user, _body())
    activity_service.record(g.current_user, f"Created admin {user.username}")
    return jsonify({"user": user.to_dict()}), 201


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role("admin")
def delete_user_route(user_id: int):
    employee_service.delete_admin(g.current_user, user_id)
    activity_service.record(g.current_user, f"Deleted admin {user_id}")
    return jsonify({"status": "deleted"})
