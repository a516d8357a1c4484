# Overview: Pruning of the login audit trail behind the lockout.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent
from ..validation import BusinessRuleError
from fenceflow.time_utils import utcnow
from .login_throttle_service import LOCKOUT_WINDOW

DEFAULT_RETENTION_DAYS = 90


def cleanup_security_events(*, retention_days: int = DEFAULT_RETENTION_DAYS) -> dict[str, int]:
    """
    Delete LOGIN_SUCCESS / LOGIN_FAILED rows older than retention_days.

    Returns deleted row counts keyed by event_type. The retention must cover
    the lockout window, otherwise pruning would unlock locked accounts.

    Raises:
        BusinessRuleError: retention_days shorter than the lockout window
    """
    if timedelta(days=retention_days) < LOCKOUT_WINDOW:
        raise BusinessRuleError("retention_days must be at least 1")

    cutoff = utcnow() - timedelta(days=retention_days)
    stale = SecurityEvent.occurred_at < cutoff

    counts = dict(
        db.session.query(SecurityEvent.event_type, db.func.count(SecurityEvent.id))
        .filter(stale)
        .group_by(SecurityEvent.event_type)
        .all()
    )
    if counts:
        db.session.query(SecurityEvent).filter(stale).delete(synchronize_session=False)
        db.session.commit()
        current_app.logger.info(
            "Pruned %d login audit row(s) older than %s", sum(counts.values()), cutoff.isoformat()
        )
    return counts
