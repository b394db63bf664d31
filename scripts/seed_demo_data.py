"""
Seed the configured table store with an event config, terms and sample feedback.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cafe_backend.db import DbClient, FeedbackRecord, PostgresDbClient
from cafe_backend.dependencies import get_db_client
from cafe_backend.event_config import DEFAULT_EVENT_CONFIG, save_event_config
from cafe_backend.terms import save_terms
from cafe_backend.validation import EventConfigForm, TermsForm

logger = logging.getLogger(__name__)

DEFAULT_TERMS = (
    "By registering you agree that the information you provide is used only "
    "to manage your booking. Down payments are non-refundable within 48 hours "
    "of the session."
)

SAMPLE_FEEDBACK = [
    ("Maria Santos", "maria@x.com", "Loved the Ethiopian pour-over!", 5),
    ("Paolo Reyes", "paolo@x.com", "Great session, a bit crowded.", 4),
    ("Ana Cruz", "ana@x.com", "Would like more milk-based drinks.", None),
]


def seed(db: DbClient, *, title: str, with_feedback: bool) -> None:
    config = save_event_config(
        db, EventConfigForm(**{**DEFAULT_EVENT_CONFIG, "title": title})
    )
    logger.info("Active event config: %s", config.id)

    terms = save_terms(
        db,
        TermsForm(title="Terms and Agreements", content=DEFAULT_TERMS, version="1.0"),
    )
    logger.info("Active terms: %s (v%s)", terms.id, terms.version)

    if with_feedback:
        for name, email, message, rating in SAMPLE_FEEDBACK:
            db.save_feedback(
                FeedbackRecord(name=name, email=email, message=message, rating=rating)
            )
        logger.info("Inserted %d feedback rows", len(SAMPLE_FEEDBACK))


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed cafe demo data")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL; defaults to DATABASE_URL from settings",
    )
    parser.add_argument(
        "--title",
        type=str,
        default=DEFAULT_EVENT_CONFIG["title"],
        help="Event title to publish",
    )
    parser.add_argument(
        "--no-feedback",
        action="store_true",
        help="Skip inserting sample feedback",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    db = PostgresDbClient(args.database_url) if args.database_url else get_db_client()
    seed(db, title=args.title, with_feedback=not args.no_feedback)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
