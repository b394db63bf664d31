import re
import unittest

from cafe_backend.db import InMemoryDbClient
from cafe_backend.errors import GatewayError, ValidationError
from cafe_backend.registration import (
    GENERIC_FAILURE,
    screenshot_object_name,
    submit_registration,
    validate_submission,
)
from cafe_backend.storage import InMemoryStorageClient
from cafe_backend.validation import RegistrationForm, ScreenshotUpload

FORM = RegistrationForm(
    name="Jane Doe",
    email="jane@x.com",
    phone="09171234567",
    experience="enthusiast",
    agree_to_terms=True,
)

SCREENSHOT = ScreenshotUpload("gcash.jpeg", "image/jpeg", b"\xff\xd8\xff" + b"0" * 32)


class BrokenInsertDb(InMemoryDbClient):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def create_registration(self, registration):
        raise self.exc


class SubmitRegistrationTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()

    def test_object_name_format(self):
        name = screenshot_object_name("Receipt.JPG", now=1700000000.123)
        self.assertRegex(name, r"^1700000000123-[0-9a-f]{8}\.jpg$")
        self.assertTrue(screenshot_object_name("noext").endswith(".bin"))

    def test_without_screenshot(self):
        result = submit_registration(FORM, self.db, self.storage)
        self.assertFalse(result.upload_failed)
        self.assertIsNone(result.registration.payment_screenshot_url)
        self.assertEqual(len(result.notifications), 1)
        self.assertEqual(self.storage.stored_objects, {})

    def test_with_screenshot(self):
        result = submit_registration(FORM, self.db, self.storage, SCREENSHOT)
        (path,) = self.storage.stored_objects
        self.assertTrue(re.match(r"payment-screenshots/\d+-[0-9a-f]{8}\.jpeg$", path))
        self.assertEqual(
            result.registration.payment_screenshot_url, self.storage.public_url(path)
        )
        self.assertEqual(self.storage.stored_objects[path][1], "image/jpeg")
        self.assertEqual(self.storage.get_bytes(path), SCREENSHOT.data)

    def test_upload_failure_keeps_registration(self):
        self.storage.fail_uploads = True
        with self.assertLogs("cafe_backend.registration", level="WARNING"):
            result = submit_registration(FORM, self.db, self.storage, SCREENSHOT)
        self.assertTrue(result.upload_failed)
        self.assertTrue(result.reset_form)
        self.assertIsNone(result.registration.payment_screenshot_url)
        self.assertEqual(
            [n.title for n in result.notifications],
            ["Registration Successful!", "Screenshot Upload Failed"],
        )
        self.assertIn(result.registration.id, self.db.registrations)

    def test_insert_failure_reports_store_message(self):
        db = BrokenInsertDb(GatewayError("duplicate key value"))
        with self.assertRaises(GatewayError) as ctx:
            submit_registration(FORM, db, self.storage)
        self.assertEqual(ctx.exception.title, "Registration Failed")
        self.assertEqual(ctx.exception.detail, "duplicate key value")

    def test_insert_failure_without_message(self):
        db = BrokenInsertDb(RuntimeError())
        with self.assertRaises(GatewayError) as ctx:
            submit_registration(FORM, db, self.storage)
        self.assertEqual(ctx.exception.detail, GENERIC_FAILURE)

    def test_oversized_file_is_rejected_before_upload(self):
        big = ScreenshotUpload("big.png", "image/png", b"0" * 5_000_001)
        with self.assertRaises(ValidationError):
            submit_registration(FORM, self.db, self.storage, big)
        self.assertEqual(self.storage.stored_objects, {})
        self.assertEqual(self.db.registrations, {})


class ValidateSubmissionTests(unittest.TestCase):
    def test_form_and_file_errors_are_merged(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_submission(
                {
                    "name": "Jane Doe",
                    "email": "jane@x.com",
                    "phone": "123",
                    "experience": "beginner",
                    "agree_to_terms": True,
                },
                ScreenshotUpload("a.txt", "text/plain", b"hi"),
            )
        self.assertEqual(set(ctx.exception.errors), {"phone", "payment_screenshot"})


if __name__ == "__main__":
    unittest.main()
