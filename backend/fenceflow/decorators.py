# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User, ROLE_ADMIN, USER_ROLES
from .services import token_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _load_current_user():
    """
    Resolve the bearer token to a User and store it in g.current_user.

    Returns an error response tuple, or None on success.
    """
    token = _bearer_token()
    if not token:
        return jsonify({"error": "Access token required"}), 401

    claims = token_service.decode_access_token(token)
    if not claims:
        return jsonify({"error": "Invalid or expired token"}), 401

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        return jsonify({"error": "Invalid or expired token"}), 401

    # Authorization always uses the stored role, never the token's copy
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "Invalid or expired token"}), 401

    g.current_user = user
    return None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the authenticated User.

    Returns 401 if:
    - No Authorization header
    - Invalid, tampered or expired token
    - The user no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _load_current_user()
        if error:
            return error
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an authenticated admin (403 for agency users)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _load_current_user()
        if error:
            return error
        if g.current_user.role != ROLE_ADMIN:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def require_any_role(f):
    """Require an authenticated admin or agency user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _load_current_user()
        if error:
            return error
        if g.current_user.role not in USER_ROLES:
            return jsonify({"error": "Access denied"}), 403
        return f(*args, **kwargs)

    return decorated_function
