# Overview: Schema creation and first-run seed data.

"""
Seeding is idempotent: nothing is written when any user already exists.

Default accounts (change these passwords outside development!):
- admin   / admin123   (role admin)
- agency1 / agency123  (role agency)
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import User, Category, Project, Product, ROLE_ADMIN, ROLE_AGENCY
from .auth_service import hash_password

DEFAULT_CATEGORIES = [
    "Fencing Materials",
    "Security Equipment",
    "Construction Tools",
    "Electronic Components",
    "Safety Equipment",
    "Office Supplies",
]

DEFAULT_PROJECTS = [
    {
        "name": "Perimeter Security Enhancement",
        "description": "Upgrade perimeter fencing and security systems",
        "status": "in_progress",
        "start_date": date(2024, 1, 15),
        "end_date": date(2024, 6, 30),
        "budget": Decimal("500000.00"),
    },
    {
        "name": "Base Infrastructure Modernization",
        "description": "Modernize base infrastructure and facilities",
        "status": "planning",
        "start_date": date(2024, 3, 1),
        "end_date": date(2024, 12, 31),
        "budget": Decimal("750000.00"),
    },
]

DEFAULT_PRODUCTS = [
    {
        "name": "High-Security Fence Panel",
        "description": "Heavy-duty security fence panel with anti-climb design",
        "category": "Fencing Materials",
        "sku": "FENCE-001",
        "price": Decimal("250.00"),
        "cost": Decimal("180.00"),
        "stock_quantity": 50,
    },
    {
        "name": "Surveillance Camera System",
        "description": "4K surveillance camera with night vision and motion detection",
        "category": "Security Equipment",
        "sku": "CAM-001",
        "price": Decimal("1200.00"),
        "cost": Decimal("800.00"),
        "stock_quantity": 25,
    },
    {
        "name": "Security Gate Controller",
        "description": "Automated gate controller with RFID access",
        "category": "Security Equipment",
        "sku": "GATE-001",
        "price": Decimal("850.00"),
        "cost": Decimal("600.00"),
        "stock_quantity": 15,
    },
    {
        "name": "Construction Drill Set",
        "description": "Professional grade drill set for construction work",
        "category": "Construction Tools",
        "sku": "TOOL-001",
        "price": Decimal("450.00"),
        "cost": Decimal("320.00"),
        "stock_quantity": 30,
    },
    {
        "name": "Safety Helmet",
        "description": "High-visibility safety helmet with chin strap",
        "category": "Safety Equipment",
        "sku": "SAFETY-001",
        "price": Decimal("35.00"),
        "cost": Decimal("25.00"),
        "stock_quantity": 100,
    },
]


def init_database() -> bool:
    """
    Create missing tables, then seed. Returns True if seed data was written.
    """
    db.create_all()
    return seed_initial_data()


def seed_initial_data() -> bool:
    if db.session.query(User.id).first():
        current_app.logger.info("Database already seeded")
        return False

    admin = User(
        username="admin",
        email="admin@adrde.gov",
        password_hash=hash_password("admin123"),
        role=ROLE_ADMIN,
        name="System Administrator",
        agency_name="ADRDE",
    )
    agency = User(
        username="agency1",
        email="agency1@adrde.gov",
        password_hash=hash_password("agency123"),
        role=ROLE_AGENCY,
        name="Defense Agency 1",
        agency_name="Defense Agency 1",
    )
    db.session.add_all([admin, agency])
    db.session.flush()

    categories = {}
    for name in DEFAULT_CATEGORIES:
        category = Category(name=name, description=f"{name} for defense projects")
        db.session.add(category)
        categories[name] = category
    db.session.flush()

    for row in DEFAULT_PROJECTS:
        db.session.add(Project(manager_id=admin.id, **row))

    for row in DEFAULT_PRODUCTS:
        fields = dict(row)
        category = categories[fields.pop("category")]
        db.session.add(Product(category_id=category.id, status="active", min_stock_level=10, **fields))

    db.session.commit()
    current_app.logger.info(
        "Seeded %d categories, %d projects, %d products and default users",
        len(DEFAULT_CATEGORIES), len(DEFAULT_PROJECTS), len(DEFAULT_PRODUCTS),
    )
    return True


def reset_database() -> None:
    """DEV/TEST only: drop and recreate every table."""
    db.drop_all()
    db.create_all()
