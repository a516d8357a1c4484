# Overview: Service-layer operations for inventory; encapsulates stock mutations and the stock ledger.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Product,
    InventoryTransaction,
    TXN_IN,
    TXN_OUT,
    TXN_ADJUSTMENT,
)
from ..validation import MAX_INT, BusinessRuleError, NotFoundError
from .concurrency import lock_for_update

"""
Inventory invariants (authoritative)

- Product.stock_quantity is the on-hand count and may never go negative.
- Every change to stock_quantity appends exactly one InventoryTransaction
  row, flushed in the same DB transaction as the stock change.
- Ledger quantity semantics:
    in          -> quantity added (> 0)
    out         -> quantity removed (> 0)
    adjustment  -> absolute on-hand value after the recount (>= 0)
- Callers own the commit: functions here flush, never commit, unless
  their docstring says otherwise.
"""


def record_transaction(
    *,
    product_id: int,
    transaction_type: str,
    quantity: int,
    created_by: int | None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction:
    txn = InventoryTransaction(
        product_id=product_id,
        transaction_type=transaction_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def get_product_for_update(product_id: int) -> Product | None:
    query = db.session.query(Product).filter(Product.id == product_id)
    return lock_for_update(query).first()


def issue_stock(
    product: Product,
    quantity: int,
    *,
    created_by: int | None,
    reference_type: str,
    reference_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction:
    """
    Remove stock. Raises BusinessRuleError if on-hand would go negative.
    """
    if quantity <= 0:
        raise BusinessRuleError("quantity must be > 0")
    if product.stock_quantity < quantity:
        raise BusinessRuleError(f"Insufficient stock for {product.name}")

    product.stock_quantity = product.stock_quantity - quantity
    return record_transaction(
        product_id=product.id,
        transaction_type=TXN_OUT,
        quantity=quantity,
        created_by=created_by,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )


def receive_stock(
    product: Product,
    quantity: int,
    *,
    created_by: int | None,
    reference_type: str,
    reference_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction:
    """Add stock (manual receipt or order cancellation)."""
    if quantity <= 0:
        raise BusinessRuleError("quantity must be > 0")

    if product.stock_quantity + quantity > MAX_INT:
        raise BusinessRuleError(f"Stock cannot exceed {MAX_INT:,}")

    product.stock_quantity = product.stock_quantity + quantity
    return record_transaction(
        product_id=product.id,
        transaction_type=TXN_IN,
        quantity=quantity,
        created_by=created_by,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )


def set_stock(
    product: Product,
    new_quantity: int,
    *,
    created_by: int | None,
    notes: str | None = None,
) -> InventoryTransaction:
    """Absolute recount: stock_quantity becomes new_quantity."""
    if new_quantity < 0:
        raise BusinessRuleError("Stock quantity cannot be negative")

    product.stock_quantity = new_quantity
    return record_transaction(
        product_id=product.id,
        transaction_type=TXN_ADJUSTMENT,
        quantity=new_quantity,
        created_by=created_by,
        reference_type="manual",
        notes=notes,
    )


def adjust_stock(
    *,
    product_id: int,
    quantity: int,
    transaction_type: str,
    created_by: int,
    notes: str | None = None,
) -> dict:
    """
    Manual stock movement from the admin UI. Commits.

    Raises:
        NotFoundError: unknown product
        BusinessRuleError: an 'out' larger than on-hand, or a negative recount
    """
    product = get_product_for_update(product_id)
    if not product:
        raise NotFoundError("Product")

    before = product.stock_quantity
    if transaction_type == TXN_IN:
        receive_stock(product, quantity, created_by=created_by, reference_type="manual", notes=notes)
    elif transaction_type == TXN_OUT:
        try:
            issue_stock(product, quantity, created_by=created_by, reference_type="manual", notes=notes)
        except BusinessRuleError:
            raise BusinessRuleError("Insufficient stock")
    elif transaction_type == TXN_ADJUSTMENT:
        set_stock(product, quantity, created_by=created_by, notes=notes)
    else:
        raise BusinessRuleError("Valid transaction type is required")

    db.session.commit()
    current_app.logger.info(
        "Stock %s for product %s (%s): %s -> %s by user %s",
        transaction_type, product.id, product.sku, before, product.stock_quantity, created_by,
    )
    return product.to_dict()


def list_low_stock() -> list[dict]:
    """Active products at or below their minimum stock level, lowest first."""
    products = (
        db.session.query(Product)
        .filter(Product.stock_quantity <= Product.min_stock_level, Product.status == "active")
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def list_transactions(product_id: int, *, limit: int = 100) -> list[dict]:
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product")

    rows = (
        db.session.query(InventoryTransaction)
        .filter(InventoryTransaction.product_id == product_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )
    return [t.to_dict() for t in rows]
