# Overview: Flask API routes for auth and profile; login, logout, current principal.

"""
Authentication API routes

Admins and employees share one login. The token returned by login goes in
``Authorization: Bearer <token>`` on every other call.
"""

from flask import Blueprint, request, jsonify, g

from ..errors import AuthenticationError, ValidationError
from ..services import activity_service, auth_service, session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Request body:
    {
        "username": "budi",
        "password": "secret123"
    }

    Returns:
        200: {"token": ..., "expires_at": ..., "user": {...}}
        400: Missing fields
        401: Invalid credentials
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password")

    if not username or not password:
        raise ValidationError("username and password required")

    user = auth_service.authenticate(username, password)
    if not user:
        raise AuthenticationError("Invalid credentials")

    session, token = session_service.create_session(
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    activity_service.record(user, "Login")

    return jsonify({
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
        "user": user.to_dict(),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.auth_token)
    activity_service.record(g.current_user, "Logout")
    return jsonify({"status": "logged_out"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()})


@profile_bp.put("")
@require_auth
def update_profile_route():
    """
    Update the caller's own display name, password or photo.

    Request body (all optional):
    {
        "full_name": "Budi Santoso",
        "password": "newpass123",
        "photo_url": "/uploads/abc.png"
    }
    """
    data = request.get_json(silent=True) or {}
    user = auth_service.update_profile(
        g.current_user,
        full_name=data.get("full_name"),
        password=data.get("password"),
        photo_url=data.get("photo_url"),
    )
    activity_service.record(user, "Updated profile")
    return jsonify({"user": user.to_dict()})
