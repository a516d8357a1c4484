# Overview: Flask API routes for product categories.

from flask import Blueprint, request, jsonify, current_app

from ..models import Category
from ..services import product_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, BusinessRuleError
from ..decorators import require_any_role, require_admin

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description"}),
    required_on_create=frozenset({"name"}),
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_any_role
def list_categories_route():
    """All categories by name, each with its product_count."""
    return jsonify({"categories": product_service.list_categories()})


@categories_bp.post("")
@require_admin
def create_category_route():
    try:
        patch = validate_payload(
            model=Category,
            payload=request.get_json(silent=True),
            policy=CATEGORY_POLICY,
            partial=False,
        )
        category = product_service.create_category(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Category created successfully", "category": category}), 201
