# Overview: Service-layer operations for projects; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import Project, Order, User, PROJECT_STATUSES
from ..validation import BusinessRuleError, NotFoundError, ValidationError
from .pagination import paginate

PROJECT_MUTABLE_FIELDS = {"name", "description", "status", "start_date", "end_date", "budget", "manager_id"}


def apply_project_patch(p: Project, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PROJECT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_manager(manager_id: int | None) -> None:
    if manager_id is None:
        return
    if db.session.get(User, manager_id) is None:
        raise BusinessRuleError("Manager not found")


def _check_date_range(start, end) -> None:
    if start is not None and end is not None and end < start:
        raise ValidationError("end_date must be on or after start_date", "end_date")


def list_projects(
    *,
    status: str | None = None,
    manager_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Newest first, with manager name/agency embedded."""
    query = db.session.query(Project)
    if status:
        query = query.filter(Project.status == status)
    if manager_id is not None:
        query = query.filter(Project.manager_id == manager_id)

    query = query.order_by(Project.created_at.desc(), Project.id.desc())
    rows, pagination = paginate(query, page, limit)

    return {
        "projects": [p.to_dict() for p in rows],
        "pagination": pagination,
    }


def get_project(project_id: int) -> dict:
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project")

    orders = (
        project.orders
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    data = project.to_dict()
    data["orders"] = [o.to_dict() for o in orders]
    return data


def create_project(*, patch: dict) -> dict:
    """
    Create a project from a validated patch.

    Raises:
        BusinessRuleError: manager_id does not reference a user
        ValidationError: end_date before start_date
    """
    _require_manager(patch.get("manager_id"))
    _check_date_range(patch.get("start_date"), patch.get("end_date"))

    p = Project()
    apply_project_patch(p, patch)
    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_project(*, project_id: int, patch: dict) -> dict:
    p = db.session.get(Project, project_id)
    if not p:
        raise NotFoundError("Project")

    if not patch:
        raise BusinessRuleError("No fields to update")

    if "manager_id" in patch:
        _require_manager(patch["manager_id"])
    _check_date_range(
        patch.get("start_date", p.start_date),
        patch.get("end_date", p.end_date),
    )

    apply_project_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_project(*, project_id: int) -> None:
    """
    Hard delete. Projects referenced by any order are kept (400).
    """
    p = db.session.get(Project, project_id)
    if not p:
        raise NotFoundError("Project")

    has_orders = db.session.query(Order.id).filter(Order.project_id == project_id).first()
    if has_orders:
        raise BusinessRuleError("Cannot delete project that has orders")

    db.session.delete(p)
    db.session.commit()


def project_stats() -> dict:
    def _count(status: str):
        return func.coalesce(func.sum(case((Project.status == status, 1), else_=0)), 0)

    row = db.session.query(
        func.count(Project.id),
        *[_count(s) for s in PROJECT_STATUSES],
        func.sum(Project.budget),
    ).one()

    total, planning, in_progress, completed, on_hold, budget = row
    return {
        "total_projects": total,
        "planning_projects": int(planning),
        "in_progress_projects": int(in_progress),
        "completed_projects": int(completed),
        "on_hold_projects": int(on_hold),
        "total_budget": float(budget) if budget is not None else 0.0,
    }
