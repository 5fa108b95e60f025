import unittest
from datetime import timedelta

from factories import MONDAY, local, make_booking

from servicehub.common.models.bookings import AdditionalCharge, BookingStatus, PaymentStatus
from servicehub.common.services.pricing import calculate_refund_amount, compute_pricing
from servicehub.common.utils.custom_exceptions import ValidationError


class TestComputePricing(unittest.TestCase):

    def test_commission_split(self):
        pricing = compute_pricing(1000.0)

        self.assertEqual(1000.0, pricing.total_amount)
        self.assertEqual(100.0, pricing.platform_fee)
        self.assertEqual(900.0, pricing.provider_amount)

    def test_charges_and_discount(self):
        pricing = compute_pricing(
            500.0, [AdditionalCharge("Cable", 150.0), AdditionalCharge("Visit", 50.0)], 100.0
        )

        self.assertEqual(600.0, pricing.total_amount)
        self.assertEqual(60.0, pricing.platform_fee)
        self.assertEqual(2, len(pricing.additional_charges))

    def test_discount_above_total_is_rejected(self):
        with self.assertRaises(ValidationError):
            compute_pricing(100.0, discount=150.0)


class TestRefunds(unittest.TestCase):

    def setUp(self):
        self.scheduled = local(MONDAY, 10)
        self.paid = make_booking(
            scheduled_at=self.scheduled,
            status=BookingStatus.ACCEPTED,
            payment_status=PaymentStatus.PAID,
        )

    def test_full_refund_more_than_a_day_ahead(self):
        self.assertEqual(
            1000.0, calculate_refund_amount(self.paid, self.scheduled - timedelta(hours=30))
        )

    def test_half_refund_between_two_and_twenty_four_hours(self):
        self.assertEqual(
            500.0, calculate_refund_amount(self.paid, self.scheduled - timedelta(hours=5))
        )

    def test_no_refund_inside_two_hours(self):
        self.assertEqual(
            0.0, calculate_refund_amount(self.paid, self.scheduled - timedelta(hours=1))
        )

    def test_boundaries_are_exclusive(self):
        self.assertEqual(
            500.0, calculate_refund_amount(self.paid, self.scheduled - timedelta(hours=24))
        )
        self.assertEqual(
            0.0, calculate_refund_amount(self.paid, self.scheduled - timedelta(hours=2))
        )

    def test_unpaid_booking_refunds_nothing(self):
        unpaid = make_booking(scheduled_at=self.scheduled)

        self.assertEqual(0.0, calculate_refund_amount(unpaid, self.scheduled - timedelta(hours=30)))

    def test_same_inputs_same_amount(self):
        now = self.scheduled - timedelta(hours=5)

        first = calculate_refund_amount(self.paid, now)
        second = calculate_refund_amount(self.paid, now)

        self.assertEqual(first, second)
        self.assertEqual(PaymentStatus.PAID, self.paid.payment_status)


if __name__ == "__main__":
    unittest.main()
