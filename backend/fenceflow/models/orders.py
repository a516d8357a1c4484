from __future__ import annotations

from ..extensions import db
from fenceflow.money import to_json_amount
from fenceflow.time_utils import to_utc_z

ORDER_STATUSES = ("pending", "approved", "processing", "shipped", "delivered", "cancelled")
STATUS_CANCELLED = "cancelled"


class Order(db.Model):
    """
    Agency order header.

    total_amount is the sum of line totals, priced at the moment of ordering.
    Stock for every line is deducted when the order is created and restored
    when it moves to cancelled.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="ck_orders_status",
        ),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=True, index=True)
    status = db.Column(db.String(32), nullable=False, default="pending")
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    shipping_address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("orders", lazy="dynamic"))
    project = db.relationship("Project", backref=db.backref("orders", lazy="dynamic"))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "agency_name": self.user.agency_name if self.user else None,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "status": self.status,
            "total_amount": to_json_amount(self.total_amount),
            "shipping_address": self.shipping_address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product", backref=db.backref("order_items", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "image_url": self.product.image_url if self.product else None,
            "quantity": self.quantity,
            "unit_price": to_json_amount(self.unit_price),
            "total_price": to_json_amount(self.total_price),
        }
