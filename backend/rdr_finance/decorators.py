# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import AuthenticationError, AuthorizationError
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets:
    - g.current_user: the authenticated User
    - g.auth_token: the plaintext token (for logout)

    Returns 401 if the header is missing, or the token is unknown, expired,
    idle too long, revoked, or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            err = AuthenticationError("Authentication required")
            return jsonify(err.to_dict()), err.status_code

        user = session_service.validate_session(token)
        if not user:
            err = AuthenticationError("Invalid or expired token")
            return jsonify(err.to_dict()), err.status_code

        g.current_user = user
        g.auth_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the authenticated user to hold a role. Use below @require_auth.

    Services repeat the check for mutations; this only keeps screens the
    role can never use from answering at all.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                err = AuthenticationError("Authentication required")
                return jsonify(err.to_dict()), err.status_code

            if g.current_user.role != role:
                err = AuthorizationError(f"This action requires the {role} role")
                return jsonify(err.to_dict()), err.status_code

            return f(*args, **kwargs)

        return decorated_function

    return decorator
