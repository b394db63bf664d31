import unittest

from cafe_backend.errors import ValidationError
from cafe_backend.validation import (
    EventConfigForm,
    RegistrationForm,
    ScreenshotUpload,
    TermsForm,
    validate_field,
    validate_form,
    validate_payment_screenshot,
)

VALID_REGISTRATION = {
    "name": "Jane Doe",
    "email": "jane@x.com",
    "phone": "09171234567",
    "experience": "homebrewer",
    "agree_to_terms": True,
}

VALID_CONFIG = {
    "title": "Cupping",
    "description": "Light roasts",
    "event_date": "Oct 30",
    "start_time": "9:00 AM",
    "end_time": "11:00 AM",
    "min_participants": 4,
    "max_participants": 6,
    "price_per_person": 1000,
    "down_payment_percentage": 50,
}


class RegistrationFormTests(unittest.TestCase):
    def _errors(self, **overrides):
        with self.assertRaises(ValidationError) as ctx:
            validate_form(RegistrationForm, {**VALID_REGISTRATION, **overrides})
        return ctx.exception.errors

    def test_valid_form(self):
        form = validate_form(RegistrationForm, VALID_REGISTRATION)
        self.assertEqual(form.name, "Jane Doe")
        self.assertEqual(form.experience, "homebrewer")

    def test_name_is_trimmed_before_length_check(self):
        errors = self._errors(name="  J  ")
        self.assertEqual(errors, {"name": ["Name must be at least 2 characters"]})

    def test_invalid_email(self):
        errors = self._errors(email="jane@")
        self.assertEqual(errors, {"email": ["Please enter a valid email address"]})

    def test_phone_length_only(self):
        self.assertEqual(
            self._errors(phone="123456789"),
            {"phone": ["Please enter a valid phone number"]},
        )
        form = validate_form(
            RegistrationForm, {**VALID_REGISTRATION, "phone": "call me pls"}
        )
        self.assertEqual(form.phone, "call me pls")

    def test_experience_must_be_known(self):
        self.assertEqual(
            self._errors(experience=""),
            {"experience": ["Please select your coffee experience level"]},
        )
        message = self._errors(experience="connoisseur")["experience"][0]
        self.assertTrue(message.startswith("Experience level must be one of:"))

    def test_terms_must_be_accepted(self):
        data = dict(VALID_REGISTRATION)
        del data["agree_to_terms"]
        with self.assertRaises(ValidationError) as ctx:
            validate_form(RegistrationForm, data)
        self.assertEqual(
            ctx.exception.errors,
            {"agree_to_terms": ["You must agree to the terms and conditions"]},
        )

    def test_missing_fields_are_reported_together(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_form(RegistrationForm, {"agree_to_terms": True})
        self.assertEqual(
            set(ctx.exception.errors), {"name", "email", "phone", "experience"}
        )
        self.assertEqual(ctx.exception.errors["name"], ["This field is required"])

    def test_validate_single_field(self):
        self.assertEqual(validate_field(RegistrationForm, "name", "Jo"), [])
        self.assertEqual(
            validate_field(RegistrationForm, "phone", "555"),
            ["Please enter a valid phone number"],
        )
        with self.assertRaises(ValidationError):
            validate_field(RegistrationForm, "favourite_bean", "geisha")


class ScreenshotTests(unittest.TestCase):
    def test_image_under_limit(self):
        upload = ScreenshotUpload("pay.jpg", "image/jpeg", b"\xff" * 5_000_000)
        self.assertEqual(validate_payment_screenshot(upload), [])

    def test_over_limit(self):
        upload = ScreenshotUpload("pay.jpg", "image/jpeg", b"\xff" * 5_000_001)
        self.assertEqual(
            validate_payment_screenshot(upload), ["File size must be less than 5MB"]
        )

    def test_not_an_image(self):
        upload = ScreenshotUpload("receipt.pdf", "application/pdf", b"%PDF")
        self.assertEqual(
            validate_payment_screenshot(upload), ["Payment screenshot must be an image"]
        )


class EventConfigFormTests(unittest.TestCase):
    def _errors(self, **overrides):
        with self.assertRaises(ValidationError) as ctx:
            validate_form(EventConfigForm, {**VALID_CONFIG, **overrides})
        return ctx.exception.errors

    def test_required_text_fields(self):
        errors = self._errors(event_date="   ", start_time="")
        self.assertEqual(errors["event_date"], ["Event date is required"])
        self.assertEqual(errors["start_time"], ["Start time is required"])

    def test_negative_numbers_rejected(self):
        errors = self._errors(price_per_person=-1, min_participants=-2)
        self.assertEqual(
            errors["price_per_person"], ["Price per person must not be negative"]
        )
        self.assertIn("min_participants", errors)

    def test_percentage_range(self):
        self.assertEqual(
            self._errors(down_payment_percentage=101),
            {"down_payment_percentage": ["Percentage must be between 0-100"]},
        )
        form = validate_form(
            EventConfigForm, {**VALID_CONFIG, "down_payment_percentage": 0}
        )
        self.assertEqual(form.down_payment_percentage, 0)

    def test_min_above_max_is_accepted(self):
        form = validate_form(
            EventConfigForm,
            {**VALID_CONFIG, "min_participants": 9, "max_participants": 3},
        )
        self.assertEqual((form.min_participants, form.max_participants), (9, 3))

    def test_blank_optional_text_becomes_none(self):
        form = validate_form(
            EventConfigForm, {**VALID_CONFIG, "featured_coffees": "  "}
        )
        self.assertIsNone(form.featured_coffees)


class TermsFormTests(unittest.TestCase):
    def test_content_required(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_form(TermsForm, {"title": "Terms", "content": " "})
        self.assertEqual(ctx.exception.errors, {"content": ["Content is required"]})

    def test_default_version(self):
        form = validate_form(TermsForm, {"title": "Terms", "content": "Be nice"})
        self.assertEqual(form.version, "1.0")


if __name__ == "__main__":
    unittest.main()
