import unittest
from datetime import date
from unittest.mock import patch

from handler_support import api_event, load_handler, response_body

from servicehub.common.models.providers import DayHours
from servicehub.common.utils.custom_exceptions import (
    NotFoundException,
    SchedulingConflict,
    ValidationError,
)


class CheckAvailabilityHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mod, cls.patchers = load_handler("servicehub.handlers.providers.availability")

    @classmethod
    def tearDownClass(cls):
        for patcher in reversed(cls.patchers):
            patcher.stop()

    def setUp(self):
        self.p_check = patch.object(self.mod.booking_service, "check_provider_availability")
        self.mock_check = self.p_check.start()

    def tearDown(self):
        self.p_check.stop()

    def test_parses_date_and_duration(self):
        self.mock_check.return_value = {
            "available": True,
            "available_slots": [{"start": "09:00", "end": "11:00"}],
            "working_hours": {"start": "09:00", "end": "17:00"},
        }

        resp = self.mod.check_availability(
            api_event(path={"provider_id": "prov-1"}, query={"date": "2026-10-19", "duration": "2"}),
            None,
        )

        self.assertEqual(200, resp["statusCode"])
        self.assertEqual("Available slots retrieved", response_body(resp)["message"])
        self.mock_check.assert_called_once_with("prov-1", date(2026, 10, 19), 2)

    def test_day_off(self):
        self.mock_check.return_value = {
            "available": False,
            "available_slots": [],
            "reason": "Provider is not available on Sunday",
        }

        resp = self.mod.check_availability(
            api_event(path={"provider_id": "prov-1"}, query={"date": "2026-10-25"}), None
        )

        self.assertEqual(200, resp["statusCode"])
        self.assertEqual("No available slots", response_body(resp)["message"])

    def test_missing_date(self):
        resp = self.mod.check_availability(api_event(path={"provider_id": "prov-1"}), None)

        self.assertEqual(400, resp["statusCode"])
        self.mock_check.assert_not_called()

    def test_unknown_provider(self):
        self.mock_check.side_effect = NotFoundException("provider", "prov-x")

        resp = self.mod.check_availability(
            api_event(path={"provider_id": "prov-x"}, query={"date": "2026-10-19"}), None
        )

        self.assertEqual(404, resp["statusCode"])


class ToggleAvailabilityHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mod, cls.patchers = load_handler("servicehub.handlers.providers.availability")

    @classmethod
    def tearDownClass(cls):
        for patcher in reversed(cls.patchers):
            patcher.stop()

    def setUp(self):
        self.p_toggle = patch.object(self.mod.provider_service, "toggle_availability")
        self.mock_toggle = self.p_toggle.start()

    def tearDown(self):
        self.p_toggle.stop()

    def test_toggle(self):
        self.mock_toggle.return_value = {
            "is_available": False,
            "auto_disabled": False,
            "message": "Availability turned off",
        }

        resp = self.mod.toggle_availability(api_event("prov-1", "PROVIDER"), None)

        body = response_body(resp)
        self.assertEqual(200, resp["statusCode"])
        self.assertEqual("Availability turned off", body["message"])
        self.assertFalse(body["data"]["is_available"])

    def test_day_off_returns_409(self):
        self.mock_toggle.side_effect = SchedulingConflict("Cannot go available on a day off")

        resp = self.mod.toggle_availability(api_event("prov-1", "PROVIDER"), None)

        self.assertEqual(409, resp["statusCode"])


class UpdateWorkingHoursHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mod, cls.patchers = load_handler("servicehub.handlers.providers.availability")

    @classmethod
    def tearDownClass(cls):
        for patcher in reversed(cls.patchers):
            patcher.stop()

    def setUp(self):
        self.p_update = patch.object(self.mod.provider_service, "update_working_hours")
        self.mock_update = self.p_update.start()

    def tearDown(self):
        self.p_update.stop()

    def test_update(self):
        self.mock_update.return_value = {
            "monday": DayHours("08:00", "14:00", True),
            "sunday": None,
        }
        body = {
            "working_hours": {
                "Monday": {"start": "08:00", "end": "14:00"},
                "sunday": None,
            }
        }

        resp = self.mod.update_working_hours(api_event("prov-1", "PROVIDER", body=body), None)

        self.assertEqual(200, resp["statusCode"])
        caller, schedule = self.mock_update.call_args[0]
        self.assertEqual("prov-1", caller.user_id)
        self.assertEqual({"monday": DayHours("08:00", "14:00", True), "sunday": None}, schedule)
        data = response_body(resp)["data"]["working_hours"]
        self.assertEqual({"start": "08:00", "end": "14:00", "available": True}, data["monday"])
        self.assertIsNone(data["sunday"])

    def test_malformed_time_returns_400(self):
        body = {"working_hours": {"monday": {"start": "8am", "end": "14:00"}}}

        resp = self.mod.update_working_hours(api_event("prov-1", "PROVIDER", body=body), None)

        self.assertEqual(400, resp["statusCode"])
        self.mock_update.assert_not_called()

    def test_unknown_day_returns_400(self):
        body = {"working_hours": {"funday": {"start": "08:00", "end": "14:00"}}}

        resp = self.mod.update_working_hours(api_event("prov-1", "PROVIDER", body=body), None)

        self.assertEqual(400, resp["statusCode"])

    def test_inverted_hours_returns_400(self):
        self.mock_update.side_effect = ValidationError(
            "Working hours on monday must end after they start"
        )
        body = {"working_hours": {"monday": {"start": "17:00", "end": "09:00"}}}

        resp = self.mod.update_working_hours(api_event("prov-1", "PROVIDER", body=body), None)

        self.assertEqual(400, resp["statusCode"])
        self.assertEqual("ValidationError", response_body(resp)["error"])


if __name__ == "__main__":
    unittest.main()
