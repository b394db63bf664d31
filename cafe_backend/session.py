"""
Admin session gate.

The ``adminLoggedIn`` cookie holds a signed, expiring token instead of a bare
"true" flag. There is still a single shared admin password and no user or
role model, so treat this as a lightweight gate rather than real access
control.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt

from cafe_backend.config import Settings, get_settings
from cafe_backend.errors import UnauthorizedError

COOKIE_NAME = "adminLoggedIn"
ALGORITHM = "HS256"
SUBJECT = "admin"


def check_password(candidate: str, settings: Settings) -> bool:
    return secrets.compare_digest(
        candidate.encode("utf-8"), settings.admin_password.encode("utf-8")
    )


def create_session_token(
    settings: Settings, now: Optional[datetime] = None
) -> str:
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.session_ttl_minutes)
    return jwt.encode(
        {"sub": SUBJECT, "iat": now, "exp": expire},
        settings.session_secret,
        algorithm=ALGORITHM,
    )


def is_logged_in(token: Optional[str], settings: Settings) -> bool:
    if not token:
        return False
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[ALGORITHM])
    except JWTError:
        return False
    return payload.get("sub") == SUBJECT


def require_admin(
    request: Request, settings: Settings = Depends(get_settings)
) -> None:
    if not is_logged_in(request.cookies.get(COOKIE_NAME), settings):
        raise UnauthorizedError("Please log in to access the admin dashboard.")
