# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration (agency accounts only)
- Username-or-email login returning a signed bearer token
- Login throttling to prevent brute-force attacks
- Profile read/update and password change for the current user
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..models import User, ROLE_AGENCY, USER_ROLES
from ..services import auth_service
from ..services import login_throttle_service
from ..services import token_service
from ..services.auth_service import PasswordValidationError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    BusinessRuleError,
)
from ..decorators import require_auth
from ..extensions import db

REGISTER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"username", "email", "name", "role", "agency_name", "phone", "address"}),
    required_on_create=frozenset({"username", "email", "name"}),
    choices={"role": USER_ROLES},
    email_fields=frozenset({"email"}),
    min_lengths={"username": 3},
)

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email", "agency_name", "phone", "address"}),
    email_fields=frozenset({"email"}),
)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Public self-registration.

    Request body:
    - username, email, password, name: required
    - role: optional, only "agency" is accepted here
    - agency_name, phone, address: optional
    """
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(
            model=User,
            payload=payload,
            policy=REGISTER_POLICY,
            partial=False,
            extra_fields=frozenset({"password"}),
        )
        password = payload.get("password")
        auth_service.validate_password_strength(password)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except PasswordValidationError as e:
        return jsonify({"errors": [{"field": "password", "message": str(e)}]}), 400

    patch.setdefault("role", ROLE_AGENCY)

    try:
        user = auth_service.create_user(patch=patch, password=password, allow_admin=False)
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered %s user %s", user.role, user.username)
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a bearer token.

    Token must be included in the Authorization header for protected routes.

    SECURITY:
    - Checks for account lockout before attempting authentication
    - Records failed attempts for throttling
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    errors = []
    if not isinstance(username, str) or not username.strip():
        errors.append({"field": "username", "message": "Username is required"})
    if not isinstance(password, str) or not password:
        errors.append({"field": "password", "message": "Password is required"})
    if errors:
        return jsonify({"errors": errors}), 400

    username = username.strip()
    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    try:
        throttle_key, known_user = login_throttle_service.resolve(username)
        is_locked, seconds_remaining = login_throttle_service.lockout_status(throttle_key)
        if is_locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429  # Too Many Requests

        user = auth_service.authenticate(username, password)

        if not user:
            failed_count = login_throttle_service.record_failed_attempt(
                throttle_key,
                user=known_user,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed_count
            if remaining <= 0:
                current_app.logger.warning("Login locked for %s", throttle_key)
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                }), 429
            return jsonify({"error": "Invalid credentials"}), 401

        login_throttle_service.record_successful_login(
            throttle_key,
            user=user,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        token = token_service.create_access_token(user)

        return jsonify({
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/verify")
@require_auth
def verify_route():
    """Token check for the SPA on reload."""
    return jsonify({"valid": True, "user": g.current_user.to_dict()})


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({"user": g.current_user.to_dict()})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """
    Update the current user's own contact details.

    Role and username are not editable here.
    """
    try:
        patch = validate_payload(
            model=User,
            payload=request.get_json(silent=True),
            policy=PROFILE_POLICY,
            partial=True,
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    if not patch:
        return jsonify({"error": "No fields to update"}), 400

    user = g.current_user
    try:
        if "email" in patch and patch["email"] != user.email:
            auth_service.ensure_unique_identity(None, patch["email"], exclude_user_id=user.id)
        for k, v in patch.items():
            setattr(user, k, v)
        db.session.commit()
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Profile updated successfully", "user": user.to_dict()})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")

    errors = []
    for name, value in (("current_password", current_password), ("new_password", new_password)):
        if not isinstance(value, str) or not value:
            errors.append({"field": name, "message": f"{name} is required and must be a string"})
    if errors:
        return jsonify({"errors": errors}), 400

    try:
        auth_service.change_password(g.current_user, current_password, new_password)
    except PasswordValidationError as e:
        return jsonify({"errors": [{"field": "new_password", "message": str(e)}]}), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Password changed successfully"})
