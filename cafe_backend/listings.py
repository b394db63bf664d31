"""
Admin listing views: participants, feedback and the visitor log.

Each view is a fresh read of the table store. Read failures never break a
view; they come back as an empty list plus a notification.
"""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from cafe_backend.db import (
    DbClient,
    FeedbackRecord,
    RegistrationRecord,
    VisitRecord,
)
from cafe_backend.errors import GatewayError, NotFoundError, PermissionDeniedError
from cafe_backend.schemas import (
    DashboardStats,
    FeedbackOut,
    Notification,
    PageStat,
    RegistrationOut,
    VisitOut,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PARTICIPANTS_DATASET = "coffee-tasting-participants"
FEEDBACK_DATASET = "feedback"
VISITORS_DATASET = "visitor-stats"


def display_timestamp(value: Optional[float]) -> str:
    if value is None:
        return ""
    dt = datetime.fromtimestamp(value, tz=timezone.utc)
    return f"{dt:%b} {dt.day}, {dt:%Y}, {dt:%I:%M %p}"


def csv_filename(dataset: str, today: Optional[date] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"{dataset}-{today.isoformat()}.csv"


def build_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    """Every cell quoted, embedded quotes doubled, one record per line."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buf.getvalue()


def fetch_or_empty(
    loader: Callable[[], list[T]], what: str
) -> tuple[list[T], Optional[Notification]]:
    try:
        return loader(), None
    except GatewayError:
        logger.exception("Failed to load %s", what)
        return [], Notification(
            title="Error",
            description=f"Failed to load {what} data",
            variant="destructive",
        )


# Participants


def experience_label(experience: str) -> str:
    if not experience:
        return ""
    return experience[0].upper() + experience[1:].replace("-", " ")


def participant_out(record: RegistrationRecord) -> RegistrationOut:
    return RegistrationOut(
        **record.as_dict(),
        experience_label=experience_label(record.experience),
        payment_status="Paid" if record.payment_screenshot_url else "Pending",
    )


def participants_csv(records: Iterable[RegistrationRecord]) -> str:
    return build_csv(
        ["Name", "Email", "Phone", "Experience", "Registration Date"],
        (
            [r.name, r.email, r.phone, r.experience, display_timestamp(r.created_at)]
            for r in records
        ),
    )


def delete_participant(db: DbClient, participant_id: str) -> RegistrationRecord:
    """
    Delete a registration, telling apart three failures:

    * the row is already gone (``NotFoundError``),
    * the store accepted the delete but removed nothing, which is how access
      rules reject it silently (``PermissionDeniedError``),
    * the store itself failed (``GatewayError``).
    """
    try:
        existing = db.get_registration(participant_id)
    except GatewayError as exc:
        raise GatewayError(exc.detail, title="Delete Failed") from exc
    if existing is None:
        raise NotFoundError(
            "This registration no longer exists. It may have already been removed.",
            title="Delete Failed",
        )

    try:
        affected = db.delete_registration(participant_id)
    except GatewayError as exc:
        raise GatewayError(exc.detail, title="Delete Failed") from exc
    if affected < 1:
        raise PermissionDeniedError(
            "The registration could not be deleted. "
            "Your account may not have permission to remove it."
        )
    logger.info("Deleted registration %s (%s)", existing.id, existing.email)
    return existing


# Feedback


def rating_label(rating: Optional[int]) -> str:
    if not rating:
        return "No Rating"
    if rating >= 4:
        return "Excellent"
    if rating >= 3:
        return "Good"
    if rating >= 2:
        return "Fair"
    return "Poor"


def feedback_out(record: FeedbackRecord) -> FeedbackOut:
    return FeedbackOut(**record.as_dict(), rating_label=rating_label(record.rating))


def feedback_csv(records: Iterable[FeedbackRecord]) -> str:
    return build_csv(
        ["Name", "Email", "Rating", "Message", "Date"],
        (
            [
                f.name,
                f.email,
                f.rating or "No rating",
                f.message,
                display_timestamp(f.created_at),
            ]
            for f in records
        ),
    )


# Visitors


def browser_from_user_agent(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "Unknown"
    for browser in ("Chrome", "Firefox", "Safari", "Edge"):
        if browser in user_agent:
            return browser
    return "Other"


def visit_out(record: VisitRecord) -> VisitOut:
    return VisitOut(
        **record.as_dict(), browser=browser_from_user_agent(record.user_agent)
    )


def visitors_csv(records: Iterable[VisitRecord]) -> str:
    return build_csv(
        ["IP Address", "Page Visited", "Browser", "Visit Time", "Referrer"],
        (
            [
                v.ip_address or "N/A",
                v.page_visited,
                browser_from_user_agent(v.user_agent),
                display_timestamp(v.visit_timestamp),
                v.referrer or "Direct",
            ]
            for v in records
        ),
    )


def page_stats(pages: Iterable[str]) -> list[PageStat]:
    counts = Counter(pages)
    total = sum(counts.values())
    stats = [
        PageStat(
            page=page,
            visits=visits,
            percentage=int(visits * 100 / total + 0.5) if total else 0,
        )
        for page, visits in counts.items()
    ]
    return sorted(stats, key=lambda s: s.visits, reverse=True)


def record_visit(db: DbClient, visit: VisitRecord) -> Optional[VisitRecord]:
    """Analytics write. Failures are logged and otherwise ignored."""
    try:
        return db.record_visit(visit)
    except Exception:
        logger.warning("Failed to record visit to %s", visit.page_visited, exc_info=True)
        return None


def start_of_day(now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return midnight.timestamp()


def dashboard_stats(db: DbClient, now: Optional[datetime] = None) -> DashboardStats:
    try:
        return DashboardStats(
            total_visitors=db.count_visits(),
            today_visitors=db.count_visits(since=start_of_day(now)),
            total_participants=db.count_registrations(),
            total_feedback=db.count_feedback(),
        )
    except GatewayError:
        logger.exception("Failed to load dashboard stats")
        return DashboardStats()

