import json
import unittest

from pydantic import BaseModel, ValidationError as PydanticValidationError

from factories import BANGALORE, MYSORE, NEARBY

from servicehub.common.models.users import UserRole
from servicehub.common.utils.constants import is_valid_service, service_duration, CONFLICT_BUFFER
from servicehub.common.utils.custom_exceptions import (
    InvalidOTP,
    NotFoundException,
    RateLimited,
    Unauthenticated,
    Unauthorized,
    ValidationError,
)
from servicehub.common.utils.custom_response import (
    send_custom_response,
    send_error_response,
    send_validation_error,
)
from servicehub.common.utils.geo import distance_meters
from servicehub.common.utils.identity import caller_from_event, json_body, path_param


def _event(authorizer=None, **extra):
    event = {"requestContext": {"authorizer": authorizer}} if authorizer is not None else {}
    event.update(extra)
    return event


class TestIdentity(unittest.TestCase):

    def test_caller_from_authorizer_context(self):
        caller = caller_from_event(
            _event({"user_id": "u1", "role": "provider", "is_active": "true"})
        )

        self.assertEqual("u1", caller.user_id)
        self.assertEqual(UserRole.PROVIDER, caller.role)
        self.assertFalse(caller.is_admin)

    def test_missing_context(self):
        with self.assertRaises(Unauthenticated):
            caller_from_event({})
        with self.assertRaises(Unauthenticated):
            caller_from_event(_event({}))

    def test_unknown_role(self):
        with self.assertRaises(Unauthorized):
            caller_from_event(_event({"user_id": "u1", "role": "MANAGER"}))

    def test_deactivated(self):
        with self.assertRaises(Unauthorized):
            caller_from_event(_event({"user_id": "u1", "role": "ADMIN", "is_active": "false"}))

    def test_path_param(self):
        self.assertEqual("b1", path_param({"pathParameters": {"booking_id": "b1"}}, "booking_id"))
        with self.assertRaises(ValidationError):
            path_param({"pathParameters": None}, "booking_id")

    def test_json_body(self):
        self.assertEqual({"a": 1}, json_body({"body": '{"a": 1}'}))
        self.assertIsNone(json_body({}, required=False))
        with self.assertRaises(ValidationError):
            json_body({})
        with self.assertRaises(ValidationError):
            json_body({"body": "{not json"})


class TestResponses(unittest.TestCase):

    def test_custom_response_envelope(self):
        resp = send_custom_response(201, "Created", {"id": "b1"})

        body = json.loads(resp["body"])
        self.assertEqual(201, resp["statusCode"])
        self.assertEqual("application/json", resp["headers"]["Content-Type"])
        self.assertEqual({"status_code": 201, "message": "Created", "data": {"id": "b1"}, "error": None}, body)

    def test_error_response_carries_kind(self):
        body = json.loads(send_error_response(NotFoundException("booking", "b1"))["body"])

        self.assertEqual("NotFound", body["error"])
        self.assertEqual(404, body["status_code"])
        self.assertIn("b1", body["message"])

    def test_rate_limited_details(self):
        resp = send_error_response(RateLimited(42))

        body = json.loads(resp["body"])
        self.assertEqual(429, resp["statusCode"])
        self.assertEqual({"retry_after_seconds": 42}, body["data"])

    def test_invalid_otp_details(self):
        body = json.loads(send_error_response(InvalidOTP("Invalid OTP", attempts_remaining=2))["body"])

        self.assertEqual({"attempts_remaining": 2}, body["data"])
        self.assertEqual("InvalidOTP", body["error"])

    def test_validation_error_response(self):
        class Model(BaseModel):
            count: int

        try:
            Model.model_validate({"count": "many"})
        except PydanticValidationError as err:
            resp = send_validation_error(err)

        self.assertEqual(400, resp["statusCode"])
        self.assertEqual("ValidationError", json.loads(resp["body"])["error"])


class TestGeoAndCatalogue(unittest.TestCase):

    def test_distance_zero(self):
        self.assertAlmostEqual(0.0, distance_meters(BANGALORE, BANGALORE))

    def test_distance_nearby_and_far(self):
        self.assertLess(distance_meters(BANGALORE, NEARBY), 10_000)
        self.assertGreater(distance_meters(BANGALORE, MYSORE), 100_000)

    def test_distance_is_symmetric(self):
        self.assertAlmostEqual(
            distance_meters(BANGALORE, MYSORE), distance_meters(MYSORE, BANGALORE)
        )

    def test_service_taxonomy(self):
        self.assertTrue(is_valid_service("Home Repair & Maintenance", "Plumbing"))
        self.assertFalse(is_valid_service("Home Repair & Maintenance", "Sofa & Carpet Cleaning"))
        self.assertFalse(is_valid_service("Space Travel", "Plumbing"))

    def test_service_duration_defaults_to_buffer(self):
        self.assertEqual(CONFLICT_BUFFER, service_duration("Plumbing"))


if __name__ == "__main__":
    unittest.main()
