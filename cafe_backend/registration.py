"""
Coffee-tasting registration submission.

A storage outage must never block a registration: when the payment
screenshot cannot be uploaded the row is still inserted, without a URL, and
the caller gets a separate warning notification.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from dataclasses import dataclass, field
from typing import Optional

from cafe_backend.db import DbClient, RegistrationRecord
from cafe_backend.errors import CafeError, GatewayError, UploadError, ValidationError
from cafe_backend.schemas import Notification
from cafe_backend.storage import StorageClient
from cafe_backend.validation import (
    RegistrationForm,
    ScreenshotUpload,
    validate_form,
    validate_payment_screenshot,
)

logger = logging.getLogger(__name__)

SCREENSHOT_PREFIX = "payment-screenshots"
GENERIC_FAILURE = "Please try again or contact us directly."


@dataclass
class SubmissionResult:
    registration: RegistrationRecord
    notifications: list[Notification] = field(default_factory=list)
    upload_failed: bool = False
    reset_form: bool = True


def screenshot_object_name(filename: str, now: Optional[float] = None) -> str:
    """``<epoch millis>-<random suffix>.<original extension>``."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = secrets.token_hex(4)
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or "bin"
    return f"{millis}-{suffix}.{ext}"


def validate_submission(
    data: dict, screenshot: Optional[ScreenshotUpload] = None
) -> RegistrationForm:
    """Validate the form fields and the optional file together."""
    errors: dict[str, list[str]] = {}
    form = None
    try:
        form = validate_form(RegistrationForm, data)
    except ValidationError as exc:
        errors.update(exc.errors)
    if screenshot is not None:
        file_errors = validate_payment_screenshot(screenshot)
        if file_errors:
            errors["payment_screenshot"] = file_errors
    if errors:
        raise ValidationError(errors)
    return form


def _upload_screenshot(
    storage: StorageClient, upload: ScreenshotUpload
) -> Optional[str]:
    path = f"{SCREENSHOT_PREFIX}/{screenshot_object_name(upload.filename)}"
    try:
        return storage.upload_bytes(path, upload.data, upload.content_type)
    except UploadError as exc:
        logger.warning("Payment screenshot upload failed for %s: %s", path, exc)
    except Exception:
        logger.warning("Payment screenshot upload failed for %s", path, exc_info=True)
    return None


def submit_registration(
    form: RegistrationForm,
    db: DbClient,
    storage: StorageClient,
    screenshot: Optional[ScreenshotUpload] = None,
) -> SubmissionResult:
    if screenshot is not None:
        file_errors = validate_payment_screenshot(screenshot)
        if file_errors:
            raise ValidationError({"payment_screenshot": file_errors})

    screenshot_url = None
    upload_failed = False
    if screenshot is not None:
        screenshot_url = _upload_screenshot(storage, screenshot)
        upload_failed = screenshot_url is None

    record = RegistrationRecord(
        name=form.name,
        email=form.email,
        phone=form.phone,
        experience=form.experience,
        payment_screenshot_url=screenshot_url,
    )
    try:
        saved = db.create_registration(record)
    except CafeError as exc:
        logger.error("Registration insert failed: %s", exc.detail)
        raise GatewayError(
            exc.detail or GENERIC_FAILURE, title="Registration Failed"
        ) from exc
    except Exception as exc:
        logger.exception("Registration insert failed")
        raise GatewayError(
            str(exc) or GENERIC_FAILURE, title="Registration Failed"
        ) from exc

    logger.info("Registered %s (%s)", saved.email, saved.id)
    notifications = [
        Notification(
            title="Registration Successful!",
            description=(
                "We'll send you a confirmation email shortly with event details."
            ),
        )
    ]
    if upload_failed:
        notifications.append(
            Notification(
                title="Screenshot Upload Failed",
                description=(
                    "Your registration was saved, but the payment screenshot "
                    "could not be uploaded. Please send it to us directly."
                ),
                variant="warning",
            )
        )
    return SubmissionResult(
        registration=saved, notifications=notifications, upload_failed=upload_failed
    )
