from __future__ import annotations

from ..extensions import db
from fenceflow.money import to_json_amount
from fenceflow.time_utils import to_utc_z

PRODUCT_STATUSES = ("active", "inactive", "discontinued")

TXN_IN = "in"
TXN_OUT = "out"
TXN_ADJUSTMENT = "adjustment"
TRANSACTION_TYPES = (TXN_IN, TXN_OUT, TXN_ADJUSTMENT)

REFERENCE_TYPES = ("order", "manual", "return")


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data with on-hand stock.

    SKU DESIGN DECISION:
    - SKUs are globally unique (the catalog is shared by every agency)
    - stock_quantity is the mutable on-hand count; every change to it writes
      an InventoryTransaction row in the same DB transaction
    - stock_quantity may never go negative (CHECK constraint + service guard)
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint(
            "status IN ('active', 'inactive', 'discontinued')",
            name="ck_products_status",
        ),
        db.Index("ix_products_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    cost = db.Column(db.Numeric(10, 2), nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    status = db.Column(db.String(32), nullable=False, default="active")
    image_url = db.Column(db.String(512), nullable=True)
    specifications = db.Column(db.Text, nullable=True)
    supplier_info = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "category_description": self.category.description if self.category else None,
            "sku": self.sku,
            "price": to_json_amount(self.price),
            "cost": to_json_amount(self.cost),
            "stock_quantity": self.stock_quantity,
            "min_stock_level": self.min_stock_level,
            "status": self.status,
            "image_url": self.image_url,
            "specifications": self.specifications,
            "supplier_info": self.supplier_info,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock ledger.

    - in: stock received (manual receipt or order cancellation)
    - out: stock issued (order placement or manual issue)
    - adjustment: absolute recount; quantity is the new on-hand value
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(
            "transaction_type IN ('in', 'out', 'adjustment')",
            name="ck_inventory_transactions_type",
        ),
        db.CheckConstraint(
            "reference_type IS NULL OR reference_type IN ('order', 'manual', 'return')",
            name="ck_inventory_transactions_reference_type",
        ),
        db.Index("ix_inventory_transactions_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(16), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("transactions", lazy="dynamic"))
    creator = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "quantity": self.quantity,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
            "created_at": to_utc_z(self.created_at),
        }
