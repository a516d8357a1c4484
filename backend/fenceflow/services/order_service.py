# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order invariants (authoritative)

Placement (create_order):
- Every line references an existing, active product with enough stock.
- Duplicate product lines are merged before the stock check, so two lines
  for the same product cannot together overdraw it.
- Line price = current product price x quantity; total = sum of lines.
- Order header, lines, stock decrements and one 'out' ledger row per line
  are written in a single DB transaction. Nothing is written if any line
  fails validation.
- Product rows are loaded FOR UPDATE where the backend supports it.

Status transitions (update_order_status):
- Any status may move to any other status, except that a cancelled
  order is terminal.
- Entering 'cancelled' restores every line's stock with an 'in' ledger row.

Visibility:
- Agency users only see their own orders; admins see everything.
"""
from __future__ import annotations

import time
import uuid
from collections import OrderedDict
from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Order, OrderItem, Project, User, ORDER_STATUSES, STATUS_CANCELLED
from ..money import to_decimal
from ..validation import BusinessRuleError, NotFoundError, max_amount
from . import inventory_service
from .pagination import paginate


class OrderAccessError(Exception):
    """Raised when an agency user touches another agency's order (403)."""


def generate_order_number() -> str:
    """ORD-<epoch millis>-<8 upper-case hex chars>."""
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


def _merge_lines(items: list[dict]) -> "OrderedDict[int, int]":
    merged: OrderedDict[int, int] = OrderedDict()
    for item in items:
        merged[item["product_id"]] = merged.get(item["product_id"], 0) + item["quantity"]
    return merged


def _visible_orders(user: User):
    query = db.session.query(Order)
    if not user.is_admin:
        query = query.filter(Order.user_id == user.id)
    return query


def list_orders(
    *,
    user: User,
    status: str | None = None,
    user_id: int | None = None,
    project_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """
    Newest first. user_id filtering is honored for admins only; agency
    users are always pinned to their own orders.
    """
    query = _visible_orders(user)
    if status:
        query = query.filter(Order.status == status)
    if user_id is not None and user.is_admin:
        query = query.filter(Order.user_id == user_id)
    if project_id is not None:
        query = query.filter(Order.project_id == project_id)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    rows, pagination = paginate(query, page, limit)

    return {
        "orders": [o.to_dict() for o in rows],
        "pagination": pagination,
    }


def get_order(*, user: User, order_id: int) -> dict:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order")
    if not user.is_admin and order.user_id != user.id:
        raise OrderAccessError("Access denied")
    return order.to_dict(include_items=True)


def create_order(
    *,
    user: User,
    items: list[dict],
    project_id: int | None = None,
    shipping_address: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Place an order for the given user.

    Args:
        items: validated [{"product_id": int, "quantity": int >= 1}, ...]

    Raises:
        BusinessRuleError: unknown project, unknown/inactive product,
            or insufficient stock (nothing is written)
    """
    if project_id is not None and db.session.get(Project, project_id) is None:
        raise BusinessRuleError("Project not found")

    lines = _merge_lines(items)

    # Validate every line before writing anything
    priced = []
    total = Decimal("0.00")
    for product_id, quantity in lines.items():
        product = inventory_service.get_product_for_update(product_id)
        if not product or product.status != "active":
            db.session.rollback()
            raise BusinessRuleError(f"Product {product_id} not found or inactive")
        if product.stock_quantity < quantity:
            db.session.rollback()
            raise BusinessRuleError(f"Insufficient stock for {product.name}")

        unit_price = to_decimal(product.price)
        line_total = unit_price * quantity
        total += line_total
        priced.append((product, quantity, unit_price, line_total))

    if total > max_amount(Order.__table__.c.total_amount.type):
        db.session.rollback()
        raise BusinessRuleError("Order total is too large")

    order = Order(
        order_number=generate_order_number(),
        user_id=user.id,
        project_id=project_id,
        status="pending",
        total_amount=total,
        shipping_address=shipping_address,
        notes=notes,
    )
    db.session.add(order)
    db.session.flush()  # ensure order.id exists before ledger rows reference it

    for product, quantity, unit_price, line_total in priced:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=line_total,
        ))
        inventory_service.issue_stock(
            product,
            quantity,
            created_by=user.id,
            reference_type="order",
            reference_id=order.id,
            notes=f"Order {order.order_number}",
        )

    db.session.commit()
    current_app.logger.info(
        "Order %s placed by user %s: %d line(s), total %s",
        order.order_number, user.id, len(priced), total,
    )
    return order.to_dict(include_items=True)


def update_order_status(*, actor: User, order_id: int, status: str, notes: str | None = None) -> dict:
    """
    Admin status transition. Entering 'cancelled' restores stock.

    Raises:
        NotFoundError: unknown order
        BusinessRuleError: attempt to move a cancelled order elsewhere
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order")

    previous = order.status
    if previous == STATUS_CANCELLED and status != STATUS_CANCELLED:
        raise BusinessRuleError("Cancelled orders cannot be reopened")

    if status == STATUS_CANCELLED and previous != STATUS_CANCELLED:
        for item in order.items:
            product = inventory_service.get_product_for_update(item.product_id)
            if product is None:
                continue
            inventory_service.receive_stock(
                product,
                item.quantity,
                created_by=actor.id,
                reference_type="order",
                reference_id=order.id,
                notes="Order cancellation - stock restored",
            )
        current_app.logger.info(
            "Restored stock for cancelled order %s (%d line(s))", order.order_number, len(order.items)
        )

    order.status = status
    if notes is not None:
        order.notes = notes
    db.session.commit()

    current_app.logger.info(
        "Order %s status %s -> %s by user %s", order.order_number, previous, status, actor.id
    )
    return order.to_dict()


def order_stats(*, user: User) -> dict:
    def _count(status: str):
        return func.coalesce(func.sum(case((Order.status == status, 1), else_=0)), 0)

    query = db.session.query(
        func.count(Order.id),
        *[_count(s) for s in ORDER_STATUSES],
        func.sum(Order.total_amount),
    )
    if not user.is_admin:
        query = query.filter(Order.user_id == user.id)

    total, *per_status, value = query.one()
    stats = {"total_orders": total}
    for status, count in zip(ORDER_STATUSES, per_status):
        stats[f"{status}_orders"] = int(count)
    stats["total_value"] = float(value) if value is not None else 0.0
    return stats
