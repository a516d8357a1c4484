from __future__ import annotations

from ..extensions import db
from fenceflow.money import to_json_amount
from fenceflow.time_utils import to_utc_z, to_iso_date

PROJECT_STATUSES = ("planning", "in_progress", "completed", "on_hold")


class Project(db.Model):
    """
    Defense project that orders can be charged against.

    manager_id is optional; when set it must reference an existing user.
    """
    __tablename__ = "projects"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('planning', 'in_progress', 'completed', 'on_hold')",
            name="ck_projects_status",
        ),
        db.Index("ix_projects_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default="planning")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    budget = db.Column(db.Numeric(12, 2), nullable=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    manager = db.relationship("User", backref=db.backref("managed_projects", lazy=True))

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "budget": to_json_amount(self.budget),
            "manager_id": self.manager_id,
            "manager_name": self.manager.name if self.manager else None,
            "manager_agency": self.manager.agency_name if self.manager else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
