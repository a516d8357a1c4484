# Overview: Service-layer operations for user administration; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import User, Order, Project, InventoryTransaction, SecurityEvent, ROLE_ADMIN, ROLE_AGENCY
from ..validation import BusinessRuleError, NotFoundError
from . import auth_service
from .pagination import paginate

USER_MUTABLE_FIELDS = {"username", "email", "role", "name", "agency_name", "phone", "address"}


def apply_user_patch(u: User, patch: dict) -> None:
    for k, v in patch.items():
        if k not in USER_MUTABLE_FIELDS:
            continue
        setattr(u, k, v)


def _admin_count() -> int:
    return db.session.query(func.count(User.id)).filter(User.role == ROLE_ADMIN).scalar()


def list_users(*, role: str | None = None, page: int = 1, limit: int = 20) -> dict:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)

    query = query.order_by(User.created_at.desc(), User.id.desc())
    rows, pagination = paginate(query, page, limit)

    return {
        "users": [u.to_dict() for u in rows],
        "pagination": pagination,
    }


def get_user(user_id: int) -> dict:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User")
    return user.to_dict()


def update_user(*, user_id: int, patch: dict, password: str | None = None) -> dict:
    """
    Admin edit of any user.

    Raises:
        NotFoundError: unknown user
        BusinessRuleError: duplicate username/email, empty update, or
            demoting the last admin
        PasswordValidationError: new password too weak
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User")

    if not patch and password is None:
        raise BusinessRuleError("No fields to update")

    auth_service.ensure_unique_identity(
        patch.get("username") if patch.get("username") != user.username else None,
        patch.get("email") if patch.get("email") != user.email else None,
        exclude_user_id=user.id,
    )

    if user.role == ROLE_ADMIN and patch.get("role") == ROLE_AGENCY and _admin_count() <= 1:
        raise BusinessRuleError("Cannot demote the last admin user")

    apply_user_patch(user, patch)
    if password is not None:
        user.password_hash = auth_service.hash_password(password)

    db.session.commit()
    return user.to_dict()


def delete_user(*, actor: User, user_id: int) -> None:
    """
    Hard delete.

    Refused (400) for: your own account, the last admin, users with orders.
    Managed projects lose their manager; ledger and login-audit rows keep
    their history with the author cleared.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User")

    if user.id == actor.id:
        raise BusinessRuleError("Cannot delete your own account")

    if user.role == ROLE_ADMIN and _admin_count() <= 1:
        raise BusinessRuleError("Cannot delete the last admin user")

    has_orders = db.session.query(Order.id).filter(Order.user_id == user_id).first()
    if has_orders:
        raise BusinessRuleError("Cannot delete user that has orders")

    db.session.query(Project).filter(Project.manager_id == user_id).update(
        {Project.manager_id: None}, synchronize_session="fetch"
    )
    db.session.query(InventoryTransaction).filter(InventoryTransaction.created_by == user_id).update(
        {InventoryTransaction.created_by: None}, synchronize_session="fetch"
    )
    db.session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).update(
        {SecurityEvent.user_id: None}, synchronize_session="fetch"
    )
    db.session.delete(user)
    db.session.commit()


def user_stats() -> dict:
    total, admins, agencies = db.session.query(
        func.count(User.id),
        func.coalesce(func.sum(case((User.role == ROLE_ADMIN, 1), else_=0)), 0),
        func.coalesce(func.sum(case((User.role == ROLE_AGENCY, 1), else_=0)), 0),
    ).one()
    return {
        "total_users": total,
        "admin_users": int(admins),
        "agency_users": int(agencies),
    }
