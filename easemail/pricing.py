"""
Seat-based pricing for organizations.
Paid plans are billed per seat with volume tiers; annual billing gets two months free.
"""

from datetime import datetime, timedelta
from typing import Optional

from .models import PLAN_ENTERPRISE, PLAN_FREE

# (minimum seats, monthly price per seat), checked from the largest tier down
SEAT_TIERS = [(11, 20), (2, 25), (1, 30)]
ANNUAL_MONTHS_BILLED = 10
MONTHLY_CYCLE_DAYS = 30


def seat_tier_price(seats: int) -> int:
    """Monthly price per seat for the volume tier this seat count falls in"""
    for minimum, price in SEAT_TIERS:
        if seats >= minimum:
            return price
    return SEAT_TIERS[-1][1]


def calculate_mrr(plan: str, seats: int) -> float:
    """Monthly recurring revenue for a plan and seat count"""
    if plan == PLAN_FREE or seats < 1:
        return 0
    return seats * seat_tier_price(seats)


def calculate_arr(mrr: float, billing_cycle: str) -> float:
    if billing_cycle == "annual":
        return mrr * ANNUAL_MONTHS_BILLED
    return mrr * 12


def price_per_seat(plan: str, seats: int) -> int:
    """Per-seat price quoted in billing emails"""
    if plan == PLAN_ENTERPRISE:
        # Enterprise has no single-seat tier
        return seat_tier_price(max(seats, SEAT_TIERS[1][0]))
    return seat_tier_price(seats)


def next_billing_date(billing_cycle: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    if billing_cycle == "annual":
        try:
            return now.replace(year=now.year + 1)
        except ValueError:
            # Feb 29 rolls to Feb 28
            return now.replace(year=now.year + 1, day=28)
    return now + timedelta(days=MONTHLY_CYCLE_DAYS)


def billing_amount(mrr: float, arr: float, billing_cycle: str) -> float:
    """Amount charged per billing period"""
    return arr if billing_cycle == "annual" else mrr
