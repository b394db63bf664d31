"""
Coffee-tasting event configuration: public read path and admin save path.

Only one configuration row is meant to be active. Saving deactivates every
row and then re-activates (or inserts) the saved one; the two steps are not
transactional, so readers fall back to the latest row and then to defaults.
"""

from __future__ import annotations

import logging
import time
from typing import Literal, Optional

from cafe_backend.db import DbClient, EventConfigRecord
from cafe_backend.errors import GatewayError, PermissionDeniedError
from cafe_backend.schemas import EventDetails
from cafe_backend.validation import EventConfigForm

logger = logging.getLogger(__name__)

DEFAULT_EVENT_CONFIG = {
    "title": "Coffee Tasting Session",
    "description": "Join us for an exclusive coffee tasting experience",
    "event_date": "September 2024",
    "start_time": "10:00 AM",
    "end_time": "12:00 PM",
    "min_participants": 4,
    "max_participants": 6,
    "price_per_person": 1000,
    "down_payment_percentage": 50,
    "featured_coffees": "Premium coffees from our curated collection",
    "additional_info": "50% down payment required to secure your spot.",
}

CONFIG_FIELDS = tuple(DEFAULT_EVENT_CONFIG)


def format_peso(amount: float, *, always_decimals: bool = False) -> str:
    amount = float(amount)
    if not always_decimals and amount.is_integer():
        return f"₱{int(amount)}"
    return f"₱{amount:.2f}"


def down_payment_amount(price_per_person: float, percentage: int) -> float:
    return round(float(price_per_person) * percentage / 100, 2)


def merge_with_defaults(config: Optional[EventConfigRecord]) -> dict:
    """Take each field from ``config`` when set, otherwise from the defaults."""
    values = dict(DEFAULT_EVENT_CONFIG)
    if config is None:
        return values
    for name in CONFIG_FIELDS:
        value = getattr(config, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        values[name] = value
    return values


def build_event_details(
    config: Optional[EventConfigRecord],
) -> EventDetails:
    values = merge_with_defaults(config)
    amount = down_payment_amount(
        values["price_per_person"], values["down_payment_percentage"]
    )
    down_payment_label = format_peso(amount, always_decimals=True)
    return EventDetails(
        id=config.id if config else None,
        price_label=f"{format_peso(values['price_per_person'])} per person",
        capacity_label=(
            f"{values['min_participants']}-{values['max_participants']} "
            "participants max"
        ),
        time_label=f"{values['start_time']} - {values['end_time']}",
        down_payment_amount=amount,
        down_payment_label=down_payment_label,
        payment_instruction=(
            f"Scan the QR code below to pay {down_payment_label} via GCash"
        ),
        is_default=config is None,
        **values,
    )


def fetch_authoritative_config(
    db: DbClient, mode: Literal["active", "latest"] = "active"
) -> Optional[EventConfigRecord]:
    if mode == "active":
        config = db.get_active_event_config()
        if config is not None:
            return config
    return db.get_latest_event_config()


def load_public_event_details(
    db: DbClient, mode: Literal["active", "latest"] = "active"
) -> EventDetails:
    """Event details for the public page. Never raises."""
    try:
        config = fetch_authoritative_config(db, mode)
    except Exception:
        logger.warning("Falling back to default event details", exc_info=True)
        config = None
    return build_event_details(config)


def save_event_config(db: DbClient, form: EventConfigForm) -> EventConfigRecord:
    values = form.model_dump(exclude={"id"})
    try:
        existing = db.get_event_config(form.id) if form.id else None
        db.deactivate_event_configs()
        record = EventConfigRecord(
            is_active=True, updated_at=time.time(), **values
        )
        if existing is not None:
            record.id = existing.id
            if db.update_event_config(record) == 0:
                raise PermissionDeniedError(
                    "The configuration update was rejected by the data store.",
                    title="Save Failed",
                )
            saved = record
        else:
            if form.id:
                logger.info("Config %s no longer exists, inserting a new row", form.id)
            saved = db.insert_event_config(record)
    except GatewayError as exc:
        raise GatewayError(exc.detail, title="Save Failed") from exc

    logger.info("Saved event config %s (%s)", saved.id, saved.title)
    return saved
