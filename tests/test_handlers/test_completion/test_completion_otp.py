import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from factories import make_booking
from handler_support import api_event, load_handler, response_body

from servicehub.common.models.bookings import BookingStatus
from servicehub.common.utils.custom_exceptions import (
    InvalidOTP,
    OTPDeliveryFailed,
    RateLimited,
    Unauthorized,
)

PATH = {"booking_id": "book-1"}


class GenerateOTPHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mod, cls.patchers = load_handler("servicehub.handlers.completion.completion_otp")

    @classmethod
    def tearDownClass(cls):
        for patcher in reversed(cls.patchers):
            patcher.stop()

    def setUp(self):
        self.p_generate = patch.object(self.mod.otp_service, "generate_otp")
        self.mock_generate = self.p_generate.start()

    def tearDown(self):
        self.p_generate.stop()

    def test_success_masks_phone(self):
        self.mock_generate.return_value = {
            "sent_to": "*****3210",
            "expires_at": datetime(2026, 10, 19, 6, 10, tzinfo=timezone.utc),
        }

        resp = self.mod.generate_otp(api_event("prov-1", "PROVIDER", path=PATH), None)

        body = response_body(resp)
        self.assertEqual(200, resp["statusCode"])
        self.assertIn("*****3210", body["message"])
        self.assertEqual("*****3210", body["data"]["sent_to"])

    def test_rate_limited_returns_429_with_retry(self):
        self.mock_generate.side_effect = RateLimited(90)

        resp = self.mod.generate_otp(api_event("prov-1", "PROVIDER", path=PATH), None)

        body = response_body(resp)
        self.assertEqual(429, resp["statusCode"])
        self.assertEqual("RateLimited", body["error"])
        self.assertEqual(90, body["data"]["retry_after_seconds"])

    def test_sms_failure_returns_502(self):
        self.mock_generate.side_effect = OTPDeliveryFailed("Failed to send OTP")

        resp = self.mod.generate_otp(api_event("prov-1", "PROVIDER", path=PATH), None)

        self.assertEqual(502, resp["statusCode"])

    def test_customer_cannot_generate(self):
        self.mock_generate.side_effect = Unauthorized("Only the assigned provider can do this")

        resp = self.mod.generate_otp(api_event(path=PATH), None)

        self.assertEqual(403, resp["statusCode"])


class VerifyOTPHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mod, cls.patchers = load_handler("servicehub.handlers.completion.completion_otp")

    @classmethod
    def tearDownClass(cls):
        for patcher in reversed(cls.patchers):
            patcher.stop()

    def setUp(self):
        self.p_verify = patch.object(self.mod.otp_service, "verify_otp")
        self.mock_verify = self.p_verify.start()

    def tearDown(self):
        self.p_verify.stop()

    def test_numeric_otp_is_accepted_as_text(self):
        self.mock_verify.return_value = make_booking(status=BookingStatus.COMPLETED)

        resp = self.mod.verify_otp(
            api_event(
                "prov-1",
                "PROVIDER",
                path=PATH,
                body={"otp": 123456, "work_images": ["s3://img/1.jpg"], "notes": "Rewired"},
            ),
            None,
        )

        self.assertEqual(200, resp["statusCode"])
        args, kwargs = self.mock_verify.call_args
        self.assertEqual("123456", args[2])
        self.assertEqual(["s3://img/1.jpg"], kwargs["work_images"])
        self.assertEqual("Rewired", kwargs["notes"])

    def test_missing_body(self):
        resp = self.mod.verify_otp(api_event("prov-1", "PROVIDER", path=PATH), None)

        self.assertEqual(400, resp["statusCode"])
        self.mock_verify.assert_not_called()

    def test_missing_otp_field(self):
        resp = self.mod.verify_otp(api_event("prov-1", "PROVIDER", path=PATH, body={}), None)

        self.assertEqual(400, resp["statusCode"])
        self.assertEqual("ValidationError", response_body(resp)["error"])

    def test_wrong_otp_reports_attempts_remaining(self):
        self.mock_verify.side_effect = InvalidOTP("Invalid OTP", attempts_remaining=2)

        resp = self.mod.verify_otp(
            api_event("prov-1", "PROVIDER", path=PATH, body={"otp": "000000"}), None
        )

        body = response_body(resp)
        self.assertEqual(400, resp["statusCode"])
        self.assertEqual("InvalidOTP", body["error"])
        self.assertEqual(2, body["data"]["attempts_remaining"])


if __name__ == "__main__":
    unittest.main()
