"""Sign-up, sign-in and profile endpoints.

This module keeps app-level imports inside request handlers to avoid circular
imports when Flask initializes the application.
"""

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from services.auth import (
    current_profile,
    is_admin,
    login_required,
    sign_in_session,
    sign_out_session,
)

auth_bp = Blueprint("auth_api", __name__, url_prefix="/api")

MIN_PASSWORD_LENGTH = 6


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _user_payload(profile) -> dict:
    out = profile.to_dict()
    out["is_admin"] = is_admin(profile.id)
    return out


@auth_bp.post("/auth/signup")
def signup():
    from app import Profile, _build_ok, app, db, json_error

    data = _body()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")
    full_name = str(data.get("full_name") or "").strip() or None

    if not email or "@" not in email:
        return json_error("A valid email is required", status_code=400, code="validation_error")
    if len(password) < MIN_PASSWORD_LENGTH:
        return json_error(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            status_code=400,
            code="validation_error",
        )
    if Profile.query.filter_by(email=email).first():
        return json_error("Email is already registered", status_code=409, code="conflict")

    # New accounts are never admins; promotion happens in the database.
    profile = Profile(email=email, full_name=full_name, role="user")
    profile.set_password(password)
    try:
        db.session.add(profile)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        app.logger.exception("Sign up failed for %s", email)
        return json_error(str(exc), status_code=500, code="persistence_error")

    sign_in_session(profile)
    app.logger.info("[auth] signed up %s", email)
    return _build_ok({"user": _user_payload(profile)}, status_code=201)


@auth_bp.post("/auth/signin")
def signin():
    from app import Profile, _build_ok, app, json_error

    data = _body()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")

    profile = Profile.query.filter_by(email=email).first() if email else None
    if profile is None or not profile.check_password(password):
        app.logger.warning("[auth] failed sign in for %s", email or "<blank>")
        return json_error("Invalid email or password", status_code=401, code="unauthorized")

    sign_in_session(profile)
    return _build_ok({"user": _user_payload(profile)})


@auth_bp.post("/auth/signout")
def signout():
    from app import _build_ok

    sign_out_session()
    return _build_ok({})


@auth_bp.get("/auth/me")
@login_required
def me():
    """Current user with a freshly read admin flag (the role refresh)."""
    from app import _build_ok

    return _build_ok({"user": _user_payload(current_profile())})


@auth_bp.get("/profile")
@login_required
def get_profile():
    from app import _build_ok

    return _build_ok({"profile": current_profile().to_dict()})


@auth_bp.patch("/profile")
@login_required
def update_profile():
    from app import _build_ok, app, db, json_error

    data = _body()
    profile = current_profile()

    if "full_name" in data:
        profile.full_name = str(data.get("full_name") or "").strip() or None
    if "password" in data:
        password = str(data.get("password") or "")
        if len(password) < MIN_PASSWORD_LENGTH:
            return json_error(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                status_code=400,
                code="validation_error",
            )
        profile.set_password(password)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        app.logger.exception("Profile update failed for id=%s", profile.id)
        return json_error(str(exc), status_code=500, code="persistence_error")

    return _build_ok({"profile": profile.to_dict()})
