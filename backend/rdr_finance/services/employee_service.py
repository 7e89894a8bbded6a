# Overview: Service-layer operations for employees and admin accounts.

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, Notification, Reimbursement, SessionToken, User
from ..models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from . import auth_service, session_service
from .concurrency import atomic
from .permission_service import require_admin


def _clean(value) -> str | None:
    return (str(value).strip() or None) if value is not None else None


def _check_email_free(email: str | None, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Employee).filter(Employee.email == email)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    if query.first():
        raise ConflictError(f"Email {email} is already used by another employee")


def list_employees() -> list[Employee]:
    return db.session.query(Employee).order_by(Employee.name.asc(), Employee.id.asc()).all()


def get_employee(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def create_employee(actor: User, payload: dict) -> Employee:
    """
    Create the login account and the employee profile in one commit.

    payload: name, username, password, position?, phone?, email?
    """
    require_admin(actor, "manage employees")
    name = _clean(payload.get("name"))
    if not name:
        raise ValidationError("name is required")
    email = _clean(payload.get("email"))
    _check_email_free(email)

    with atomic() as session:
        user = auth_service.create_user(
            payload.get("username"),
            payload.get("password"),
            role=ROLE_EMPLOYEE,
            full_name=name,
            commit=False,
        )
        session.flush()
        employee = Employee(
            user_id=user.id,
            name=name,
            position=_clean(payload.get("position")),
            phone=_clean(payload.get("phone")),
            email=email,
        )
        session.add(employee)

    current_app.logger.info("Employee %s created (user %s)", employee.id, user.username)
    return employee


def update_employee(actor: User, employee_id: int, payload: dict) -> Employee:
    require_admin(actor, "manage employees")
    employee = get_employee(employee_id)

    with atomic():
        if "name" in payload:
            name = _clean(payload.get("name"))
            if not name:
                raise ValidationError("name must not be empty")
            employee.name = name
            employee.user.full_name = name
        for key in ("position", "phone"):
            if key in payload:
                setattr(employee, key, _clean(payload.get(key)))
        if "email" in payload:
            email = _clean(payload.get("email"))
            _check_email_free(email, exclude_id=employee.id)
            employee.email = email
        if payload.get("username"):
            username = _clean(payload.get("username"))
            taken = db.session.query(User).filter(User.username == username, User.id != employee.user_id).first()
            if taken:
                raise ConflictError("Username already exists")
            employee.user.username = username
        if payload.get("password"):
            employee.user.password_hash = auth_service.hash_password(payload["password"])

    if payload.get("password"):
        session_service.revoke_all_user_sessions(employee.user_id, reason="Password reset by admin")
    return employee


def delete_employee(actor: User, employee_id: int) -> None:
    """
    Remove the employee and their login.

    Reimbursement history is kept under the requestor name; direct
    notifications and sessions go with the account.
    """
    require_admin(actor, "manage employees")
    employee = get_employee(employee_id)
    user = employee.user

    with atomic() as session:
        session.query(Reimbursement).filter_by(employee_id=employee.id).update(
            {Reimbursement.employee_id: None}, synchronize_session=False
        )
        session.query(Notification).filter_by(employee_id=employee.id).delete(synchronize_session=False)
        session.query(SessionToken).filter_by(user_id=user.id).delete(synchronize_session=False)
        session.delete(employee)
        session.delete(user)

    current_app.logger.info("Employee %s deleted by %s", employee_id, actor.username)


# =============================================================================
# ADMIN ACCOUNTS
# =============================================================================

def list_admins() -> list[User]:
    return db.session.query(User).filter(User.role == ROLE_ADMIN).order_by(User.id.asc()).all()


def create_admin(actor: User, payload: dict) -> User:
    require_admin(actor, "manage admin users")
    return auth_service.create_user(
        payload.get("username"),
        payload.get("password"),
        role=ROLE_ADMIN,
        full_name=payload.get("full_name"),
    )


def delete_admin(actor: User, user_id: int) -> None:
    require_admin(actor, "manage admin users")
    user = db.session.get(User, user_id)
    if not user or user.role != ROLE_ADMIN:
        raise NotFoundError(f"Admin user {user_id} not found")
    if user.id == actor.id:
        raise ConflictError("You cannot delete your own account")
    if db.session.query(User).filter(User.role == ROLE_ADMIN).count() <= 1:
        raise ConflictError("At least one admin account must remain")

    with atomic() as session:
        session.query(SessionToken).filter_by(user_id=user.id).delete(synchronize_session=False)
        session.delete(user)
