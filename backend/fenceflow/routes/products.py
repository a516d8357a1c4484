# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog and stock routes.

SECURITY: All routes require authentication.
- Catalog reads and the low-stock list are open to admin and agency users
- Catalog writes, stock movements and the stock ledger are admin-only
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..models import Product, PRODUCT_STATUSES, TRANSACTION_TYPES, TXN_ADJUSTMENT
from ..services import product_service
from ..services import inventory_service
from ..services.pagination import parse_pagination
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    coerce_int,
    parse_int_arg,
    parse_choice_arg,
    collect_query_errors,
    ValidationError,
    BusinessRuleError,
    NotFoundError,
)
from ..decorators import require_any_role, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "category_id", "sku", "price", "cost",
        "stock_quantity", "min_stock_level", "status", "image_url",
        "specifications", "supplier_info",
    }),
    required_on_create=frozenset({"name", "sku", "category_id", "price"}),
    choices={"status": PRODUCT_STATUSES},
    min_values={"price": 0, "cost": 0, "stock_quantity": 0, "min_stock_level": 0},
)

# Stock changes go through PATCH /<id>/stock so every movement hits the ledger
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"stock_quantity"},
    choices=PRODUCT_POLICY.choices,
    min_values=PRODUCT_POLICY.min_values,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_any_role
def list_products_route():
    """
    List products, newest first.

    Query params:
    - category: int (category id)
    - status: active|inactive|discontinued
    - search: substring of name, description or SKU
    - page, limit: pagination (limit max 100)
    """
    try:
        category_id, status = collect_query_errors(
            lambda: parse_int_arg(request.args, "category", minimum=1),
            lambda: parse_choice_arg(request.args, "status", PRODUCT_STATUSES),
        )
        page, limit = parse_pagination(request.args)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    search = request.args.get("search") or None

    return jsonify(product_service.list_products(
        category_id=category_id,
        status=status,
        search=search,
        page=page,
        limit=limit,
    ))


@products_bp.get("/low-stock/list")
@require_any_role
def low_stock_route():
    return jsonify({"products": inventory_service.list_low_stock()})


@products_bp.get("/<int:product_id>")
@require_any_role
def get_product_route(product_id: int):
    try:
        product = product_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product})


@products_bp.post("")
@require_admin
def create_product_route():
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_POLICY,
            partial=False,
        )
        product = product_service.create_product(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product created successfully", "product": product}), 201


@products_bp.put("/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        product = product_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product updated successfully", "product": product})


@products_bp.delete("/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    try:
        product_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product deleted successfully"})


def _parse_stock_patch(data) -> tuple[int, str, str | None]:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    errors = []
    txn_type = data.get("type")
    if txn_type not in TRANSACTION_TYPES:
        errors.append({"field": "type", "message": "Valid transaction type is required"})

    quantity = None
    try:
        quantity = coerce_int("quantity", data.get("quantity"))
    except ValueError as e:
        errors.append({"field": "quantity", "message": str(e)})
    else:
        floor = 0 if txn_type == TXN_ADJUSTMENT else 1
        if quantity < floor:
            errors.append({"field": "quantity", "message": f"quantity must be >= {floor}"})

    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        errors.append({"field": "notes", "message": "notes must be a string"})

    if errors:
        raise ValidationError(errors)
    return quantity, txn_type, (notes.strip() or None) if notes else None


@products_bp.patch("/<int:product_id>/stock")
@require_admin
def update_stock_route(product_id: int):
    """
    Manual stock movement.

    Request body:
    - type: "in" adds, "out" subtracts, "adjustment" sets an absolute count
    - quantity: int (>= 1 for in/out, >= 0 for adjustment)
    - notes: optional
    """
    try:
        quantity, txn_type, notes = _parse_stock_patch(request.get_json(silent=True))
        product = inventory_service.adjust_stock(
            product_id=product_id,
            quantity=quantity,
            transaction_type=txn_type,
            created_by=g.current_user.id,
            notes=notes,
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Stock updated successfully", "product": product})


@products_bp.get("/<int:product_id>/transactions")
@require_admin
def list_transactions_route(product_id: int):
    try:
        limit = parse_int_arg(request.args, "limit", minimum=1, maximum=500)
        rows = inventory_service.list_transactions(product_id, limit=limit or 100)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"transactions": rows})
