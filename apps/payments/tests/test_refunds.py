from datetime import datetime, timedelta
from fractions import Fraction

from django.test import SimpleTestCase

from apps.common.utils import KST
from apps.payments.refunds import (
    FREE_COURSE_REASON,
    FULL_REFUND_REASON,
    HALF_REASON,
    NO_REFUND_REASON,
    TWO_THIRDS_REASON,
    compute_refund,
)

START = datetime(2025, 3, 1, 10, 0, tzinfo=KST)
END = START + timedelta(days=30)


def on_day(day):
    return START + timedelta(days=day)


class ComputeRefundTests(SimpleTestCase):
    """30일 일정, 300,000원 기준 환불 구간"""

    def assertQuote(self, day, rate, amount, reason):
        quote = compute_refund(300000, START, END, on_day(day))
        self.assertEqual(quote.rate, rate)
        self.assertEqual(quote.amount, amount)
        self.assertEqual(quote.reason, reason)

    def test_before_start_is_full_refund(self):
        self.assertQuote(-1, Fraction(1), 300000, FULL_REFUND_REASON)

    def test_start_instant_is_two_thirds(self):
        self.assertQuote(0, Fraction(2, 3), 200000, TWO_THIRDS_REASON)

    def test_before_one_third(self):
        self.assertQuote(9, Fraction(2, 3), 200000, TWO_THIRDS_REASON)

    def test_one_third_instant_moves_to_half(self):
        self.assertQuote(10, Fraction(1, 2), 150000, HALF_REASON)

    def test_just_before_one_third(self):
        quote = compute_refund(300000, START, END, on_day(10) - timedelta(microseconds=1))
        self.assertEqual(quote.rate, Fraction(2, 3))

    def test_half_instant_is_no_refund(self):
        self.assertQuote(15, Fraction(0), 0, NO_REFUND_REASON)

    def test_just_before_half(self):
        quote = compute_refund(300000, START, END, on_day(15) - timedelta(microseconds=1))
        self.assertEqual(quote.rate, Fraction(1, 2))
        self.assertEqual(quote.amount, 150000)

    def test_near_end_is_no_refund(self):
        self.assertQuote(29, Fraction(0), 0, NO_REFUND_REASON)

    def test_amount_is_floored(self):
        quote = compute_refund(100000, START, END, on_day(1))
        self.assertEqual(quote.amount, 66666)

    def test_free_course(self):
        quote = compute_refund(0, START, END, on_day(-1))
        self.assertEqual(quote.rate, Fraction(0))
        self.assertEqual(quote.amount, 0)
        self.assertEqual(quote.reason, FREE_COURSE_REASON)
        self.assertFalse(quote.is_refundable)

    def test_degenerate_window_after_start(self):
        quote = compute_refund(300000, START, START, on_day(0))
        self.assertEqual(quote.amount, 0)
