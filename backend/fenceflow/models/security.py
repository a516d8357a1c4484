from __future__ import annotations

from ..extensions import db
from fenceflow.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Login successes and failures. Failed attempts drive the login throttle
    (see services/login_throttle_service.py).

    Rows are never updated. Old rows are pruned only by
    `flask maintenance cleanup-security-events`.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_type_action", "event_type", "action"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)  # Nullable for anonymous

    # LOGIN_FAILED, LOGIN_SUCCESS
    event_type = db.Column(db.String(64), nullable=False)
    resource = db.Column(db.String(128), nullable=True)
    # Lockout key: "user:<id>" for a known account, else "login:<identifier>"
    action = db.Column(db.String(255), nullable=True)

    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
