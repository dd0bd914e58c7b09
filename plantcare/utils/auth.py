"""
Session helpers and decorators for the garden API.

Sign-in and email (OTP) verification are handled by the account service in
front of this app; it leaves the user's id and verification flag in the Flask
session. These helpers only read that state.

Provides:
- @require_auth: Decorator requiring a signed-in, verified user
- get_current_user_id(): Session lookup
"""

from __future__ import annotations
from functools import wraps
from typing import Optional
from flask import session, jsonify


SESSION_USER_ID_KEY = "user_id"
SESSION_VERIFIED_KEY = "verified"


def get_current_user_id() -> Optional[str]:
    """
    Get current user's ID.

    Returns:
        User id or None if not logged in
    """
    user_id = session.get(SESSION_USER_ID_KEY)
    return str(user_id) if user_id else None


def is_authenticated() -> bool:
    """Check if user is logged in."""
    return get_current_user_id() is not None


def is_verified() -> bool:
    """Check if the signed-in user has confirmed their email."""
    return bool(session.get(SESSION_VERIFIED_KEY))


def require_auth(f):
    """
    Decorator to require a signed-in, verified user for an API route.

    Unauthenticated callers get 401, unverified ones 403, each with a
    `redirect` hint for the front end.

    Usage:
        @garden_bp.route('/garden')
        @require_auth
        def list_garden():
            user_id = get_current_user_id()
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"error": "Not authenticated", "redirect": "/login"}), 401

        if not is_verified():
            return jsonify({"error": "Email not verified", "redirect": "/verify-otp"}), 403

        return f(*args, **kwargs)

    return decorated_function
