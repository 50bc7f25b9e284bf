"""
Cash Flow Calculations

Generates annual lease cash flow projections with discrete escalations.
Rents are quoted per square meter per year and projected per hectare.
"""

import math
from typing import List
from datetime import date
from dateutil.relativedelta import relativedelta
from dataclasses import dataclass

SQUARE_METERS_PER_HECTARE = 10000

# Longest lease horizon accepted, in years
MAX_TIME_PERIOD = 200

INCREASE_AMOUNT = "amount"
INCREASE_PERCENT = "percent"

TIMING_BEGINNING = "beginning"
TIMING_MIDDLE = "middle"
TIMING_END = "end"


@dataclass
class CashFlow:
    """A single year's nominal lease cash flow."""

    year: int  # 1-based year of the lease
    amount: float  # Cash flow per hectare
    rate_per_m2: float  # Running rent per m² that produced the amount


def apply_escalation(rate: float, increase_value: float, increase_type: str) -> float:
    """
    Apply one escalation step to a running rate.

    Args:
        rate: Current rate per m²
        increase_value: Fixed amount, or percentage (e.g., 10 for 10%)
        increase_type: 'amount' (additive) or 'percent' (compounding)

    Returns:
        Escalated rate
    """
    if increase_type == INCREASE_AMOUNT:
        return rate + increase_value
    if increase_type == INCREASE_PERCENT:
        return rate * (1 + increase_value / 100)
    return rate


def round_cents(value: float) -> float:
    """Round to 2 decimals, ties toward +infinity."""
    return math.floor(value * 100 + 0.5) / 100


def is_escalation_year(year: int, increase_frequency: int) -> bool:
    """Escalations land at year boundaries: years 1 + k * frequency, k >= 1."""
    return year > 1 and (year - 1) % increase_frequency == 0


def generate_cash_flows(
    base_cash_flow: float,
    increase_value: float,
    increase_type: str,
    increase_frequency: int,
    time_period: int,
) -> List[CashFlow]:
    """
    Generate annual cash flow projections.

    The running rate per m² starts at base_cash_flow and is escalated before
    computing the flow of each escalation year. With frequency 3 the rate
    steps up at years 4, 7, 10, ...

    Inputs are expected to be sanitized by the caller (time_period and
    increase_frequency integers >= 1, non-negative amounts).

    Args:
        base_cash_flow: Initial rent per m² per year
        increase_value: Escalation amount or percentage
        increase_type: 'amount' or 'percent'
        increase_frequency: Years between escalations
        time_period: Lease horizon in years

    Returns:
        One CashFlow per year, years 1..time_period
    """
    cash_flows = []
    rate_per_m2 = base_cash_flow

    for year in range(1, time_period + 1):
        if is_escalation_year(year, increase_frequency):
            rate_per_m2 = apply_escalation(rate_per_m2, increase_value, increase_type)

        per_hectare = rate_per_m2 * SQUARE_METERS_PER_HECTARE

        cash_flows.append(
            CashFlow(
                year=year,
                amount=max(0.0, round_cents(per_hectare)),
                rate_per_m2=rate_per_m2,
            )
        )

    return cash_flows


def cash_flow_dates(
    lease_start_date: date, time_period: int, payment_timing: str = TIMING_END
) -> List[date]:
    """
    Calendar date on which each year's cash flow is paid.

    Args:
        lease_start_date: First day of the lease
        time_period: Lease horizon in years
        payment_timing: 'beginning', 'middle' or 'end' of each lease year
    """
    dates = []
    for year in range(1, time_period + 1):
        year_start = lease_start_date + relativedelta(years=year - 1)
        if payment_timing == TIMING_BEGINNING:
            dates.append(year_start)
        elif payment_timing == TIMING_MIDDLE:
            dates.append(year_start + relativedelta(months=6))
        else:
            dates.append(year_start + relativedelta(years=1))
    return dates


def total_cash_flow(cash_flows: List[CashFlow]) -> float:
    """Sum of nominal cash flows."""
    return sum(cf.amount for cf in cash_flows)
