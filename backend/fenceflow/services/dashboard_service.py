# Overview: Admin dashboard summary counts.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Project, Product, Order


def _count(model, *criteria) -> int:
    return db.session.query(func.count(model.id)).filter(*criteria).scalar() or 0


def get_summary() -> dict:
    """
    Counters for the admin landing page.

    Product buckets:
    - ready: active and stocked above the minimum level
    - in production: active but at or below the minimum level
    - under maintenance: inactive
    """
    return {
        "totalProjects": _count(Project),
        "completedProjects": _count(Project, Project.status == "completed"),
        "ongoingProjects": _count(Project, Project.status == "in_progress"),
        "totalProducts": _count(Product),
        "readyProducts": _count(
            Product,
            Product.status == "active",
            Product.stock_quantity > Product.min_stock_level,
        ),
        "inProductionProducts": _count(
            Product,
            Product.status == "active",
            Product.stock_quantity <= Product.min_stock_level,
        ),
        "underMaintenanceProducts": _count(Product, Product.status == "inactive"),
        "totalOrders": _count(Order),
        "pendingOrders": _count(Order, Order.status == "pending"),
        "systemStatus": "Online",
    }
