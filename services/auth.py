"""Session user and role gating.

Sign-in stores the profile id in the Flask session. Admin access is decided
by a single read of the ``profiles`` row on every guarded request, so a role
change takes effect without signing out.
"""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import session

ADMIN_ROLE = "admin"
SESSION_USER_KEY = "user_id"


def _get_models():
    from app import Profile, json_error

    return Profile, json_error


def current_user_id() -> Optional[int]:
    value = session.get(SESSION_USER_KEY)
    return int(value) if value is not None else None


def current_profile():
    user_id = current_user_id()
    if user_id is None:
        return None
    from app import Profile, db

    return db.session.get(Profile, user_id)


def fetch_user_role(user_id: int) -> Optional[str]:
    """Role string for ``user_id`` or ``None`` when no profile row exists."""

    Profile, _ = _get_models()
    row = Profile.query.with_entities(Profile.role).filter(Profile.id == user_id).first()
    return row.role if row else None


def is_admin(user_id: Optional[int]) -> bool:
    if user_id is None:
        return False
    return fetch_user_role(user_id) == ADMIN_ROLE


def sign_in_session(profile) -> None:
    session.clear()
    session[SESSION_USER_KEY] = profile.id


def sign_out_session() -> None:
    session.clear()


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        _, json_error = _get_models()
        if current_profile() is None:
            return json_error("Sign in required", status_code=401, code="unauthorized")
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        _, json_error = _get_models()
        user_id = current_user_id()
        if user_id is None or current_profile() is None:
            return json_error("Sign in required", status_code=401, code="unauthorized")
        if not is_admin(user_id):
            return json_error("Admin access required", status_code=403, code="forbidden")
        return view(*args, **kwargs)

    return wrapper


__all__ = [
    "ADMIN_ROLE",
    "admin_required",
    "current_profile",
    "current_user_id",
    "fetch_user_role",
    "is_admin",
    "login_required",
    "sign_in_session",
    "sign_out_session",
]
