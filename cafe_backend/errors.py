"""
Error kinds shared by the submission flow, the editors and the admin views.

Every failure that reaches the user is a ``CafeError`` carrying an
``ErrorKind`` and a notification title, so the HTTP layer can render them
uniformly.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPLOAD = "upload"
    GATEWAY = "gateway"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"


class CafeError(Exception):
    kind: ErrorKind = ErrorKind.GATEWAY
    status_code: int = 500
    title: str = "Error"

    def __init__(self, detail: str, *, title: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if title is not None:
            self.title = title

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "title": self.title, "detail": self.detail}


class ValidationError(CafeError):
    kind = ErrorKind.VALIDATION
    status_code = 422
    title = "Invalid input"

    def __init__(
        self,
        errors: dict[str, list[str]],
        *,
        detail: str = "Please correct the highlighted fields.",
        title: Optional[str] = None,
    ):
        super().__init__(detail, title=title)
        self.errors = errors

    def as_dict(self) -> dict:
        payload = super().as_dict()
        payload["errors"] = self.errors
        return payload


class UploadError(CafeError):
    """Object storage rejected a file. Never fatal to a registration."""

    kind = ErrorKind.UPLOAD
    status_code = 502
    title = "Upload Failed"


class GatewayError(CafeError):
    """The table store failed a read or write."""

    kind = ErrorKind.GATEWAY
    status_code = 502
    title = "Request Failed"


class PermissionDeniedError(CafeError):
    """The store accepted a write but reported zero affected rows."""

    kind = ErrorKind.PERMISSION_DENIED
    status_code = 403
    title = "Delete Failed"


class NotFoundError(CafeError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    title = "Not Found"


class UnauthorizedError(CafeError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401
    title = "Login Required"
