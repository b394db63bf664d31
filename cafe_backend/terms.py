"""
Versioned terms and agreements. Saving never edits a row: the active
version is deactivated and a new active row is appended.
"""

from __future__ import annotations

import logging
from typing import Optional

from cafe_backend.db import DbClient, TermsRecord
from cafe_backend.errors import GatewayError
from cafe_backend.validation import TermsForm

logger = logging.getLogger(__name__)


def get_active_terms(db: DbClient) -> Optional[TermsRecord]:
    return db.get_active_terms()


def list_terms_history(db: DbClient) -> list[TermsRecord]:
    return db.list_terms()


def save_terms(db: DbClient, form: TermsForm) -> TermsRecord:
    try:
        retired = db.deactivate_terms()
        saved = db.insert_terms(
            TermsRecord(
                title=form.title,
                content=form.content,
                version=form.version,
                is_active=True,
            )
        )
    except GatewayError as exc:
        raise GatewayError(exc.detail, title="Save Failed") from exc
    logger.info(
        "Published terms version %s (%s), retired %d", saved.version, saved.id, retired
    )
    return saved
