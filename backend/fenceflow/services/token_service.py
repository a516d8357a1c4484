# Overview: Bearer token issuance and verification (signed JWTs).

"""
Tokens are stateless HS256 JWTs:
- sub: user id (string)
- username, role: informational; authorization always re-reads the user row
- iat / exp: issue and expiry time (JWT_EXPIRES_HOURS, default 24h)

Logout is client-side (drop the token); there is no server-side revocation list.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from flask import current_app

from ..models import User


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    hours = current_app.config.get("JWT_EXPIRES_HOURS", 24)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_access_token(token: str) -> Optional[dict]:
    """Return the claims, or None if the token is malformed, tampered or expired."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
