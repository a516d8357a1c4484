# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order routes.

SECURITY: All routes require authentication.
- Agency users see and place only their own orders
- Status transitions are admin-only
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..models import ORDER_STATUSES
from ..services import order_service
from ..services.order_service import OrderAccessError
from ..services.pagination import parse_pagination
from ..validation import (
    coerce_int,
    parse_int_arg,
    parse_choice_arg,
    collect_query_errors,
    ValidationError,
    BusinessRuleError,
    NotFoundError,
)
from ..decorators import require_any_role, require_admin

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _optional_text(data: dict, key: str, errors: list) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append({"field": key, "message": f"{key} must be a string"})
        return None
    return value.strip() or None


def _parse_order_payload(data) -> dict:
    """
    Validate the POST body shape.

    Product existence, status and stock are checked by the service.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    items = data.get("items")
    lines = []

    if not isinstance(items, list) or not items:
        errors.append({"field": "items", "message": "Order must contain at least one item"})
    else:
        for idx, item in enumerate(items):
            field = f"items[{idx}]"
            if not isinstance(item, dict):
                errors.append({"field": field, "message": "Each item must be an object"})
                continue
            try:
                product_id = coerce_int("product_id", item.get("product_id"))
                quantity = coerce_int("quantity", item.get("quantity"))
            except ValueError as e:
                errors.append({"field": field, "message": str(e)})
                continue
            if product_id < 1:
                errors.append({"field": field, "message": "Valid product ID is required"})
                continue
            if quantity < 1:
                errors.append({"field": field, "message": "Quantity must be at least 1"})
                continue
            lines.append({"product_id": product_id, "quantity": quantity})

    project_id = None
    if data.get("project_id") is not None:
        try:
            project_id = coerce_int("project_id", data["project_id"])
        except ValueError as e:
            errors.append({"field": "project_id", "message": str(e)})

    shipping_address = _optional_text(data, "shipping_address", errors)
    notes = _optional_text(data, "notes", errors)

    if errors:
        raise ValidationError(errors)

    return {
        "items": lines,
        "project_id": project_id,
        "shipping_address": shipping_address,
        "notes": notes,
    }


@orders_bp.get("")
@require_any_role
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - status: order status
    - user_id: int (admin only; ignored for agency users)
    - project_id: int
    - page, limit: pagination (limit max 100)
    """
    try:
        status, user_id, project_id = collect_query_errors(
            lambda: parse_choice_arg(request.args, "status", ORDER_STATUSES),
            lambda: parse_int_arg(request.args, "user_id", minimum=1),
            lambda: parse_int_arg(request.args, "project_id", minimum=1),
        )
        page, limit = parse_pagination(request.args)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    return jsonify(order_service.list_orders(
        user=g.current_user,
        status=status,
        user_id=user_id,
        project_id=project_id,
        page=page,
        limit=limit,
    ))


@orders_bp.get("/stats/overview")
@require_any_role
def order_stats_route():
    return jsonify(order_service.order_stats(user=g.current_user))


@orders_bp.get("/<int:order_id>")
@require_any_role
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(user=g.current_user, order_id=order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderAccessError as e:
        return jsonify({"error": str(e)}), 403
    return jsonify({"order": order})


@orders_bp.post("")
@require_any_role
def create_order_route():
    """
    Place an order.

    Request body:
    - items: [{"product_id": int, "quantity": int >= 1}, ...] (required, non-empty)
    - project_id: optional
    - shipping_address, notes: optional
    """
    try:
        parsed = _parse_order_payload(request.get_json(silent=True))
        order = order_service.create_order(user=g.current_user, **parsed)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Order created successfully", "order": order}), 201


def _parse_status_patch(data) -> tuple[str, str | None]:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    errors = []
    status = data.get("status")
    if status not in ORDER_STATUSES:
        errors.append({"field": "status", "message": f"status must be one of: {', '.join(ORDER_STATUSES)}"})

    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        errors.append({"field": "notes", "message": "notes must be a string"})

    if errors:
        raise ValidationError(errors)
    return status, notes


@orders_bp.patch("/<int:order_id>/status")
@require_admin
def update_order_status_route(order_id: int):
    try:
        status, notes = _parse_status_patch(request.get_json(silent=True))
        order = order_service.update_order_status(
            actor=g.current_user,
            order_id=order_id,
            status=status,
            notes=notes,
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Order status updated successfully", "order": order})
