"""Simple admin authentication endpoints."""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from flask import Blueprint, session

from .. import config
from ..utils.query import clean_string
from ..utils.responses import json_error, json_success
from ..validation import request_payload

auth_simple_bp = Blueprint("auth_simple", __name__, url_prefix="/api/auth")

_F = TypeVar("_F", bound=Callable[..., Any])


def require_admin(func: _F) -> _F:
    """Ensure the current session belongs to the admin user."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not session.get("is_admin"):
            return json_error("Admin access required.", 403)
        return func(*args, **kwargs)

    return cast(_F, wrapper)


def _admin_user():
    return {"email": config.ADMIN_EMAIL, "name": "Admin", "role": "admin"}


@auth_simple_bp.post("/admin-login")
def admin_login():
    payload = request_payload() or {}
    email = clean_string(payload.get("email")).lower()
    password = str(payload.get("password") or "")

    if not email or not password:
        return json_error("Email and password are required.", 400)

    if email == config.ADMIN_EMAIL and hmac.compare_digest(
        password.encode("utf-8"), config.ADMIN_PASSWORD.encode("utf-8")
    ):
        session.clear()
        session["is_admin"] = True
        session.permanent = False
        return json_success(message="Login successful", user=_admin_user())

    session.pop("is_admin", None)
    return json_error("Invalid admin credentials.", 401)


@auth_simple_bp.post("/logout")
def logout():
    session.clear()
    return json_success(message="Logged out successfully")


@auth_simple_bp.get("/me")
def me():
    is_admin = bool(session.get("is_admin", False))
    return json_success(isAdmin=is_admin, user=_admin_user() if is_admin else None)


__all__ = ["auth_simple_bp", "require_admin"]
