# Overview: Role checks shared by every service that mutates state.

from __future__ import annotations

from ..errors import AuthorizationError
from ..models import User


def is_admin(actor: User | None) -> bool:
    return bool(actor is not None and actor.is_admin)


def require_admin(actor: User | None, action: str) -> None:
    """
    Raise AuthorizationError unless the actor is an admin.

    Checked in the service layer, so a call is rejected no matter which
    screen (or script) issued it.
    """
    if not is_admin(actor):
        raise AuthorizationError(f"Only admins may {action}")
