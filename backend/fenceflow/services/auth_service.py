# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12). Users log in with either
their username or their email address.

SECURITY NOTES:
- Minimum 6 characters (the seeded defaults are "admin123" / "agency123")
- Bearer tokens are issued separately (see token_service.py)
- Self-registration can only create agency accounts; admins create admins
"""

import bcrypt
from sqlalchemy import func

from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_AGENCY, USER_ROLES
from ..validation import BusinessRuleError
from fenceflow.time_utils import utcnow

MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password) -> None:
    """
    Raises PasswordValidationError if the password is too short or not a string.
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def find_by_identifier(identifier: str) -> User | None:
    """Look up a user by username or email (email match is case-insensitive)."""
    return db.session.query(User).filter(
        db.or_(User.username == identifier, func.lower(User.email) == identifier.lower())
    ).first()


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User on success and stamps last_login_at; None otherwise.
    """
    user = find_by_identifier(identifier)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def ensure_unique_identity(username: str | None, email: str | None, *, exclude_user_id: int | None = None) -> None:
    """
    Raises BusinessRuleError if the username or email is already taken.
    """
    if username is not None:
        query = db.session.query(User.id).filter(User.username == username)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise BusinessRuleError("Username already exists")

    if email is not None:
        query = db.session.query(User.id).filter(func.lower(User.email) == email.lower())
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise BusinessRuleError("Email already exists")


def create_user(*, patch: dict, password: str, allow_admin: bool) -> User:
    """
    Create new user with bcrypt password hashing.

    Args:
        patch: Validated user fields (username, email, name, role, ...)
        password: Plaintext password meeting strength requirements
        allow_admin: False for public self-registration

    Raises:
        PasswordValidationError: If password doesn't meet requirements
        BusinessRuleError: Duplicate username/email or forbidden role
    """
    role = patch.get("role") or ROLE_AGENCY
    if role not in USER_ROLES:
        raise BusinessRuleError("Valid role is required")
    if role == ROLE_ADMIN and not allow_admin:
        raise BusinessRuleError("Self-registration is limited to agency accounts")

    ensure_unique_identity(patch.get("username"), patch.get("email"))

    user = User(password_hash=hash_password(password))
    for k, v in patch.items():
        setattr(user, k, v)
    user.role = role
    if role == ROLE_AGENCY and not user.agency_name:
        user.agency_name = user.name

    db.session.add(user)
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Raises BusinessRuleError if current_password is wrong,
    PasswordValidationError if new_password is too weak.
    """
    if not verify_password(current_password or "", user.password_hash):
        raise BusinessRuleError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()
