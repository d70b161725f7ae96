"""
Tests for seat pricing and billing dates.
"""

from datetime import datetime

import pytest

from easemail.pricing import billing_amount, calculate_arr, calculate_mrr, next_billing_date, price_per_seat


@pytest.mark.parametrize(
    "plan,seats,mrr",
    [
        ("FREE", 10, 0),
        ("PRO", 0, 0),
        ("PRO", 1, 30),
        ("PRO", 2, 50),
        ("PRO", 10, 250),
        ("PRO", 11, 220),
        ("ENTERPRISE", 50, 1000),
    ],
)
def test_mrr(plan, seats, mrr):
    assert calculate_mrr(plan, seats) == mrr


def test_annual_billing_gets_two_months_free():
    assert calculate_arr(100, "annual") == 1000
    assert calculate_arr(100, "monthly") == 1200


@pytest.mark.parametrize(
    "plan,seats,price",
    [("PRO", 1, 30), ("PRO", 5, 25), ("PRO", 11, 20), ("ENTERPRISE", 3, 25), ("ENTERPRISE", 11, 20)],
)
def test_price_per_seat(plan, seats, price):
    assert price_per_seat(plan, seats) == price


@pytest.mark.parametrize("seats", [1, 2, 10, 11, 40])
def test_mrr_matches_the_quoted_seat_price(seats):
    assert calculate_mrr("PRO", seats) == seats * price_per_seat("PRO", seats)


def test_enterprise_single_seat_keeps_the_single_seat_rate():
    assert calculate_mrr("ENTERPRISE", 1) == 30
    assert price_per_seat("ENTERPRISE", 1) == 25


class TestNextBillingDate:
    def test_monthly_is_thirty_days(self):
        assert next_billing_date("monthly", datetime(2026, 1, 31)) == datetime(2026, 3, 2)

    def test_annual_is_one_year(self):
        assert next_billing_date("annual", datetime(2026, 5, 4)) == datetime(2027, 5, 4)

    def test_leap_day_rolls_back(self):
        assert next_billing_date("annual", datetime(2028, 2, 29)) == datetime(2029, 2, 28)


def test_billing_amount_follows_cycle():
    assert billing_amount(125, 1250, "annual") == 1250
    assert billing_amount(125, 1500, "monthly") == 125
