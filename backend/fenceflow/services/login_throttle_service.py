# Overview: Failed-login lockout keyed on the account behind a login identifier.

"""
Login lockout rules:
- A username and every letter-case spelling of the same user's email share
  one counter (key "user:<id>")
- Identifiers that match no account are counted on their lower-cased text
  (key "login:<identifier>")
- MAX_FAILED_ATTEMPTS failures inside LOCKOUT_WINDOW lock the key until
  LOCKOUT_DURATION after the newest failure
- A successful login starts the count over
- Events live in security_events; the key is stored in `action`
"""
from __future__ import annotations

from datetime import datetime, timedelta

from ..extensions import db
from ..models import SecurityEvent, User
from .auth_service import find_by_identifier
from fenceflow.time_utils import utcnow

MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

EVENT_FAILED = "LOGIN_FAILED"
EVENT_SUCCESS = "LOGIN_SUCCESS"
LOGIN_RESOURCE = "/api/auth/login"

_KEY_MAX = 255


def throttle_key(identifier: str, user: User | None = None) -> str:
    if user is not None:
        return f"user:{user.id}"
    return f"login:{identifier.strip().lower()}"[:_KEY_MAX]


def resolve(identifier: str) -> tuple[str, User | None]:
    """Map a login identifier to (throttle key, matching user or None)."""
    user = find_by_identifier(identifier.strip())
    return throttle_key(identifier, user), user


def _failure_times(key: str, now: datetime) -> list[datetime]:
    """Failures for key inside the window and after the last successful login, newest first."""
    since = now - LOCKOUT_WINDOW
    last_success = db.session.query(db.func.max(SecurityEvent.occurred_at)).filter(
        SecurityEvent.event_type == EVENT_SUCCESS,
        SecurityEvent.action == key,
    ).scalar()
    if last_success is not None and last_success > since:
        since = last_success

    rows = (
        db.session.query(SecurityEvent.occurred_at)
        .filter(
            SecurityEvent.event_type == EVENT_FAILED,
            SecurityEvent.action == key,
            SecurityEvent.occurred_at >= since,
        )
        .order_by(SecurityEvent.occurred_at.desc())
        .all()
    )
    return [r[0] for r in rows]


def failed_attempt_count(key: str) -> int:
    return len(_failure_times(key, utcnow()))


def lockout_status(key: str) -> tuple[bool, int | None]:
    """
    Returns (True, seconds_remaining) while key is locked, else (False, None).
    """
    now = utcnow()
    failures = _failure_times(key, now)
    if len(failures) < MAX_FAILED_ATTEMPTS:
        return False, None

    lockout_end = failures[0] + LOCKOUT_DURATION
    if now >= lockout_end:
        return False, None
    return True, max(1, int((lockout_end - now).total_seconds()))


def _record(key: str, event_type: str, *, user: User | None, success: bool,
            reason: str | None, ip_address: str | None, user_agent: str | None) -> None:
    db.session.add(SecurityEvent(
        user_id=user.id if user is not None else None,
        event_type=event_type,
        resource=LOGIN_RESOURCE,
        action=key,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(
    key: str,
    *,
    user: User | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """Store a LOGIN_FAILED event and return the failure count for key."""
    _record(key, EVENT_FAILED, user=user, success=False, reason=reason,
            ip_address=ip_address, user_agent=user_agent)
    return failed_attempt_count(key)


def record_successful_login(
    key: str,
    *,
    user: User,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    _record(key, EVENT_SUCCESS, user=user, success=True, reason=None,
            ip_address=ip_address, user_agent=user_agent)
