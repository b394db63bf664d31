import unittest

from cafe_backend.db import EventConfigRecord, InMemoryDbClient
from cafe_backend.errors import GatewayError, PermissionDeniedError
from cafe_backend.event_config import (
    DEFAULT_EVENT_CONFIG,
    build_event_details,
    fetch_authoritative_config,
    format_peso,
    load_public_event_details,
    merge_with_defaults,
    save_event_config,
)
from cafe_backend.validation import EventConfigForm


def _form(**overrides):
    values = {
        "title": "Holiday Tasting",
        "description": "Seasonal single origins",
        "event_date": "December 20",
        "start_time": "2:00 PM",
        "end_time": "4:00 PM",
        "min_participants": 4,
        "max_participants": 6,
        "price_per_person": 1200,
        "down_payment_percentage": 50,
    }
    values.update(overrides)
    return EventConfigForm(**values)


class DownDb(InMemoryDbClient):
    def get_active_event_config(self):
        raise GatewayError("timeout")

    def get_latest_event_config(self):
        raise GatewayError("timeout")

    def deactivate_event_configs(self):
        raise GatewayError("timeout")


class ReadOnlyDb(InMemoryDbClient):
    def update_event_config(self, config):
        return 0


class EventDetailsTests(unittest.TestCase):
    def test_peso_formatting(self):
        self.assertEqual(format_peso(1200), "₱1200")
        self.assertEqual(format_peso(1250.5), "₱1250.50")
        self.assertEqual(format_peso(600, always_decimals=True), "₱600.00")

    def test_defaults_without_config(self):
        details = build_event_details(None)
        self.assertTrue(details.is_default)
        self.assertEqual(details.title, DEFAULT_EVENT_CONFIG["title"])
        self.assertEqual(details.capacity_label, "4-6 participants max")
        self.assertEqual(details.time_label, "10:00 AM - 12:00 PM")

    def test_derived_labels(self):
        details = build_event_details(
            EventConfigRecord(**_form(price_per_person=1250.5).model_dump(exclude={"id"}))
        )
        self.assertEqual(details.price_label, "₱1250.50 per person")
        self.assertEqual(details.down_payment_amount, 625.25)
        self.assertEqual(
            details.payment_instruction, "Scan the QR code below to pay ₱625.25 via GCash"
        )

    def test_blank_fields_fall_back_per_field(self):
        record = EventConfigRecord(**_form().model_dump(exclude={"id"}))
        record.description = "  "
        merged = merge_with_defaults(record)
        self.assertEqual(merged["title"], "Holiday Tasting")
        self.assertEqual(merged["description"], DEFAULT_EVENT_CONFIG["description"])
        self.assertEqual(
            merged["featured_coffees"], DEFAULT_EVENT_CONFIG["featured_coffees"]
        )

    def test_public_details_never_raise(self):
        details = load_public_event_details(DownDb())
        self.assertTrue(details.is_default)
        self.assertEqual(details.price_label, "₱1000 per person")


class SaveEventConfigTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def _active(self):
        return [c for c in self.db.event_configs.values() if c.is_active]

    def test_exactly_one_active_after_any_save_sequence(self):
        first = save_event_config(self.db, _form(title="One"))
        save_event_config(self.db, _form(title="Two"))
        save_event_config(self.db, _form(id=first.id, title="One again"))
        last = save_event_config(self.db, _form(title="Three"))

        active = self._active()
        self.assertEqual(len(active), 1)
        self.assertEqual(active[0].id, last.id)
        self.assertEqual(fetch_authoritative_config(self.db).title, "Three")

    def test_update_keeps_id(self):
        first = save_event_config(self.db, _form())
        again = save_event_config(self.db, _form(id=first.id, max_participants=10))
        self.assertEqual(again.id, first.id)
        self.assertEqual(len(self.db.event_configs), 1)
        self.assertEqual(self.db.event_configs[first.id].max_participants, 10)

    def test_stale_id_inserts_new_row(self):
        saved = save_event_config(self.db, _form(id="gone"))
        self.assertNotEqual(saved.id, "gone")
        self.assertEqual(len(self._active()), 1)

    def test_latest_row_is_used_when_none_active(self):
        save_event_config(self.db, _form(title="Only"))
        self.db.deactivate_event_configs()
        self.assertIsNone(self.db.get_active_event_config())
        self.assertEqual(fetch_authoritative_config(self.db, "active").title, "Only")
        self.assertEqual(fetch_authoritative_config(self.db, "latest").title, "Only")

    def test_rejected_update(self):
        db = ReadOnlyDb()
        first = save_event_config(db, _form())
        with self.assertRaises(PermissionDeniedError) as ctx:
            save_event_config(db, _form(id=first.id))
        self.assertEqual(ctx.exception.title, "Save Failed")

    def test_store_failure(self):
        with self.assertRaises(GatewayError) as ctx:
            save_event_config(DownDb(), _form())
        self.assertEqual(ctx.exception.title, "Save Failed")
        self.assertEqual(ctx.exception.detail, "timeout")


if __name__ == "__main__":
    unittest.main()
