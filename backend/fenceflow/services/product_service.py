# Overview: Service-layer operations for products and categories; encapsulates business logic and database work.

"""
Catalog rules:
- SKU is unique across the whole catalog
- category_id must reference an existing category
- stock_quantity is only set at creation; afterwards it changes through
  PATCH /api/products/<id>/stock or order placement/cancellation
- Products referenced by an order line cannot be deleted
"""
from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Category, Product, OrderItem, InventoryTransaction
from ..validation import BusinessRuleError, NotFoundError
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category_id", "sku", "price", "cost",
    "stock_quantity", "min_stock_level", "status", "image_url",
    "specifications", "supplier_info",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.get(Category, category_id) is None:
        raise BusinessRuleError("Category not found")


def _ensure_unique_sku(sku: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise BusinessRuleError("SKU already exists")


def list_products(
    *,
    category_id: int | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """
    Catalog listing, newest first.

    search matches name, description or SKU (case-insensitive substring).
    """
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if status:
        query = query.filter(Product.status == status)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(term),
            Product.description.ilike(term),
            Product.sku.ilike(term),
        ))

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    rows, pagination = paginate(query, page, limit)

    return {
        "products": [p.to_dict() for p in rows],
        "pagination": pagination,
    }


def get_product(product_id: int) -> dict:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product")
    return p.to_dict()


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        BusinessRuleError: duplicate SKU or unknown category
    """
    _ensure_unique_sku(patch["sku"])
    _require_category(patch.get("category_id"))

    p = Product(stock_quantity=0, min_stock_level=10, status="active")
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product")

    if not patch:
        raise BusinessRuleError("No fields to update")

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_unique_sku(patch["sku"], exclude_id=p.id)
    if "category_id" in patch:
        _require_category(patch["category_id"])

    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """
    Hard delete. Refused (400) once any order line references the product.
    Manual stock-ledger rows are removed along with the product.
    """
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product")

    ordered = db.session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
    if ordered:
        raise BusinessRuleError("Cannot delete product that has been ordered")

    db.session.query(InventoryTransaction).filter(
        InventoryTransaction.product_id == product_id
    ).delete(synchronize_session="fetch")
    db.session.delete(p)
    db.session.commit()


def list_categories() -> list[dict]:
    rows = (
        db.session.query(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )
    result = []
    for category, product_count in rows:
        data = category.to_dict()
        data["product_count"] = product_count
        result.append(data)
    return result


def create_category(*, patch: dict) -> dict:
    existing = db.session.query(Category.id).filter(
        func.lower(Category.name) == patch["name"].lower()
    ).first()
    if existing:
        raise BusinessRuleError("Category already exists")

    category = Category(**patch)
    db.session.add(category)
    db.session.commit()
    return category.to_dict()
