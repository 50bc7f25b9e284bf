"""
NPV and Present Value Calculations

Discounts year-indexed lease cash flows and date-based payments.
Rates are annual percentages (e.g., 10 for 10%).
"""

from typing import List, Dict
from datetime import date
from dataclasses import dataclass
import numpy as np

from app.calculations.cashflow import (
    CashFlow,
    TIMING_BEGINNING,
    TIMING_MIDDLE,
    TIMING_END,
    generate_cash_flows,
    total_cash_flow,
)

DAYS_PER_YEAR = 365.25

TIMING_OFFSETS = {
    TIMING_BEGINNING: 1.0,
    TIMING_MIDDLE: 0.5,
    TIMING_END: 0.0,
}


def discount_exponent(year: float, payment_timing: str = TIMING_END) -> float:
    """
    Years of discounting for a flow in the given lease year.

    Beginning-of-year payments are discounted one year less than
    end-of-year payments, mid-year payments half a year less.
    """
    offset = TIMING_OFFSETS.get(payment_timing, 0.0)
    return max(0.0, year - offset)


def _discount_factors(
    cash_flows: List[CashFlow], discount_rate: float, payment_timing: str
) -> np.ndarray:
    exponents = np.array(
        [discount_exponent(cf.year, payment_timing) for cf in cash_flows],
        dtype=float,
    )
    return np.power(1 + discount_rate / 100, exponents)


def calculate_npv(
    cash_flows: List[CashFlow],
    discount_rate: float,
    payment_timing: str = TIMING_END,
) -> float:
    """
    Calculate NPV (Net Present Value) of annual cash flows.

    Args:
        cash_flows: Year-indexed cash flows
        discount_rate: Annual discount rate in percent (e.g., 10 for 10%)
        payment_timing: 'beginning', 'middle' or 'end' of each year

    Returns:
        NPV value
    """
    if not cash_flows:
        return 0.0

    amounts = np.array([cf.amount for cf in cash_flows], dtype=float)
    factors = _discount_factors(cash_flows, discount_rate, payment_timing)
    return float(np.sum(amounts / factors))


def discount_cash_flows(
    cash_flows: List[CashFlow],
    discount_rate: float,
    payment_timing: str = TIMING_END,
) -> List[Dict]:
    """
    Per-year discounting table.

    Shared by the API and the Excel report so both show the same numbers.
    """
    rows = []
    cumulative = 0.0

    if not cash_flows:
        return rows

    factors = _discount_factors(cash_flows, discount_rate, payment_timing)

    for cf, factor in zip(cash_flows, factors):
        present_value = cf.amount / float(factor)
        cumulative += present_value
        rows.append(
            {
                "year": cf.year,
                "rate_per_m2": round(cf.rate_per_m2, 4),
                "cash_flow": cf.amount,
                "discount_factor": round(1 / float(factor), 6),
                "present_value": round(present_value, 2),
                "cumulative_present_value": round(cumulative, 2),
            }
        )

    return rows


def _years_between(start_date: date, payment_date: date) -> float:
    return calculate_days_to_payment(start_date, payment_date) / DAYS_PER_YEAR


def calculate_days_to_payment(start_date: date, payment_date: date) -> int:
    """Calculate the number of days from start to payment."""
    return (payment_date - start_date).days


def calculate_present_value(
    future_value: float,
    discount_rate: float,
    start_date: date,
    payment_date: date,
) -> float:
    """
    Discount a dated payment back to the start date.

    Uses an actual/365.25 year fraction. Payments on or before the start
    date are worth their face value.
    """
    years = _years_between(start_date, payment_date)

    if years <= 0:
        return future_value

    return future_value / ((1 + discount_rate / 100) ** years)


def calculate_future_value(
    present_value: float,
    discount_rate: float,
    start_date: date,
    payment_date: date,
) -> float:
    """Grow a start-date amount forward to the payment date."""
    years = _years_between(start_date, payment_date)

    if years <= 0:
        return present_value

    return present_value * ((1 + discount_rate / 100) ** years)


def calculate_present_value_portion(percentage: float, total_npv: float) -> float:
    """Share of a total present value (percentage in 0-100)."""
    return (percentage / 100) * total_npv


def calculate_percentage_from_present_value(
    present_value: float, total_npv: float
) -> float:
    """Percentage of total present value represented by present_value."""
    return (present_value / total_npv) * 100 if total_npv > 0 else 0.0


@dataclass
class LeaseValuation:
    """NPV of a lease per hectare and for the whole area."""

    cash_flows: List[CashFlow]
    npv_per_hectare: float
    total_hectares: float
    total_value: float
    total_cash_flow: float


def calculate_lease_value(
    base_cash_flow: float,
    increase_value: float,
    increase_type: str,
    increase_frequency: int,
    time_period: int,
    discount_rate: float,
    total_hectares: float = 1.0,
    payment_timing: str = TIMING_END,
) -> LeaseValuation:
    """
    Generate cash flows and value the lease.

    Args:
        total_hectares: Leased area; scales the per-hectare NPV
    """
    cash_flows = generate_cash_flows(
        base_cash_flow, increase_value, increase_type, increase_frequency, time_period
    )
    npv = calculate_npv(cash_flows, discount_rate, payment_timing)

    return LeaseValuation(
        cash_flows=cash_flows,
        npv_per_hectare=npv,
        total_hectares=total_hectares,
        total_value=npv * total_hectares,
        total_cash_flow=total_cash_flow(cash_flows),
    )
