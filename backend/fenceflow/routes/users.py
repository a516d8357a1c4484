# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration routes.

SECURITY: Every route is admin-only. Password hashes are never serialized.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..models import User, USER_ROLES
from ..services import auth_service
from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..services.pagination import parse_pagination
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_choice_arg,
    ValidationError,
    BusinessRuleError,
    NotFoundError,
)
from ..decorators import require_admin

USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"username", "email", "name", "role", "agency_name", "phone", "address"}),
    required_on_create=frozenset({"username", "email", "name"}),
    choices={"role": USER_ROLES},
    email_fields=frozenset({"email"}),
    min_lengths={"username": 3},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_admin
def list_users_route():
    try:
        role = parse_choice_arg(request.args, "role", USER_ROLES)
        page, limit = parse_pagination(request.args)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    return jsonify(user_service.list_users(role=role, page=page, limit=limit))


@users_bp.get("/stats/overview")
@require_admin
def user_stats_route():
    return jsonify(user_service.user_stats())


@users_bp.get("/<int:user_id>")
@require_admin
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"user": user})


@users_bp.post("")
@require_admin
def create_user_route():
    """Admin-created account; unlike /api/auth/register any role is allowed."""
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(
            model=User,
            payload=payload,
            policy=USER_POLICY,
            partial=False,
            extra_fields=frozenset({"password"}),
        )
        password = payload.get("password")
        auth_service.validate_password_strength(password)
        user = auth_service.create_user(patch=patch, password=password, allow_admin=True)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except PasswordValidationError as e:
        return jsonify({"errors": [{"field": "password", "message": str(e)}]}), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s created %s user %s", g.current_user.id, user.role, user.username)
    return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201


@users_bp.put("/<int:user_id>")
@require_admin
def update_user_route(user_id: int):
    """
    Partial update. An optional "password" is re-hashed.
    """
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(
            model=User,
            payload=payload,
            policy=USER_POLICY,
            partial=True,
            extra_fields=frozenset({"password"}),
        )
        password = payload.get("password") if isinstance(payload, dict) else None
        if password is not None:
            auth_service.validate_password_strength(password)
        user = user_service.update_user(user_id=user_id, patch=patch, password=password)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except PasswordValidationError as e:
        return jsonify({"errors": [{"field": "password", "message": str(e)}]}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "User updated successfully", "user": user})


@users_bp.delete("/<int:user_id>")
@require_admin
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(actor=g.current_user, user_id=user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s deleted user %s", g.current_user.id, user_id)
    return jsonify({"message": "User deleted successfully"})
