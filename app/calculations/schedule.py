"""
Custom Payment Schedule Calculations

Allocates a deal value across dated installments, discounts each one to the
lease start date and checks the schedule reconciles to the deal value.
"""

from typing import List, Optional
from datetime import date, timedelta
from dataclasses import dataclass, field, replace
import logging
import uuid

from app.calculations.npv import (
    calculate_days_to_payment,
    calculate_future_value,
    calculate_present_value,
)

logger = logging.getLogger(__name__)

DEFAULT_INSTALLMENT_SPACING_DAYS = 30


@dataclass
class InstallmentInput:
    """User-entered installment: when it is paid and its share of the deal."""

    id: str
    payment_date: date
    percentage: float


@dataclass
class CustomInstallment:
    """Installment enriched with nominal and present values."""

    id: str
    payment_date: date
    percentage: float
    amount: float
    present_value: float
    days_from_start: int


@dataclass
class ScheduleTolerances:
    """
    Reconciliation policy for custom schedules.

    percentage_sum is absolute (percentage points); npv_relative is a
    fraction of the deal value.
    """

    percentage_sum: float = 0.01
    npv_relative: float = 0.0001


@dataclass
class ScheduleValidation:
    """Result of checking a custom schedule."""

    is_valid: bool
    errors: List[str]
    percentage_sum: float
    has_invalid_dates: bool


def calculate_custom_schedule_installments(
    deal_value: float,
    lease_start_date: Optional[date],
    discount_rate: float,
    installments: List[InstallmentInput],
) -> List[CustomInstallment]:
    """
    Compute nominal amount and present value of each installment.

    Args:
        deal_value: Total value of the deal
        lease_start_date: Date installments are discounted back to
        discount_rate: Annual discount rate in percent
        installments: Dated percentage shares of the deal

    Returns:
        Enriched installments, or an empty list when there is nothing to
        allocate (no start date, non-positive deal value, no installments)
    """
    if lease_start_date is None or deal_value <= 0 or not installments:
        return []

    calculated = []
    for inst in installments:
        amount = (inst.percentage / 100) * deal_value
        calculated.append(
            CustomInstallment(
                id=inst.id,
                payment_date=inst.payment_date,
                percentage=inst.percentage,
                amount=amount,
                present_value=calculate_present_value(
                    amount, discount_rate, lease_start_date, inst.payment_date
                ),
                days_from_start=calculate_days_to_payment(
                    lease_start_date, inst.payment_date
                ),
            )
        )

    return calculated


def calculate_present_value_equivalent_installments(
    deal_value: float,
    lease_start_date: Optional[date],
    discount_rate: float,
    installments: List[InstallmentInput],
) -> List[CustomInstallment]:
    """
    Allocate the deal value in present value terms.

    Each installment's present value is its percentage of the deal value and
    the amount due is that value grown forward to the payment date, so the
    present values always sum to the deal value.
    """
    if lease_start_date is None or deal_value <= 0 or not installments:
        return []

    calculated = []
    for inst in installments:
        present_value = (inst.percentage / 100) * deal_value
        calculated.append(
            CustomInstallment(
                id=inst.id,
                payment_date=inst.payment_date,
                percentage=inst.percentage,
                amount=calculate_future_value(
                    present_value, discount_rate, lease_start_date, inst.payment_date
                ),
                present_value=present_value,
                days_from_start=calculate_days_to_payment(
                    lease_start_date, inst.payment_date
                ),
            )
        )

    return calculated


def calculate_custom_schedule_npv(installments: List[CustomInstallment]) -> float:
    """Total present value of a calculated schedule."""
    return sum(inst.present_value for inst in installments)


def validate_custom_schedule(
    deal_value: float,
    lease_start_date: Optional[date],
    installments: List[InstallmentInput],
    calculated: List[CustomInstallment],
    total_npv: float,
    tolerances: Optional[ScheduleTolerances] = None,
) -> ScheduleValidation:
    """
    Check that a custom schedule is complete and reconciles to the deal value.

    Problems are reported as readable messages; nothing raises.
    """
    if tolerances is None:
        tolerances = ScheduleTolerances()

    errors = []

    if lease_start_date is None:
        errors.append("Lease start date is required")

    if deal_value <= 0:
        errors.append("Deal value must be greater than 0")

    if not installments:
        errors.append("At least one installment is required")

    percentage_sum = sum(inst.percentage for inst in installments)
    sums_to_100 = abs(percentage_sum - 100) <= tolerances.percentage_sum
    if not sums_to_100:
        errors.append(
            f"Installment percentages must sum to 100%. "
            f"Current sum: {percentage_sum:.2f}%"
        )

    has_invalid_dates = lease_start_date is not None and any(
        inst.payment_date < lease_start_date for inst in installments
    )
    if has_invalid_dates:
        errors.append("All payment dates must be on or after the lease start date")

    if any(inst.percentage <= 0 or inst.percentage > 100 for inst in installments):
        errors.append("All percentages must be between 0 and 100")

    # Reconcile NPV whenever the sum is within tolerance of 100, not only at
    # exactly 100, so splits like 33.333/33.333/33.334 are still checked
    if calculated and sums_to_100:
        npv_difference = abs(total_npv - deal_value)
        tolerance = deal_value * tolerances.npv_relative

        if npv_difference > tolerance:
            errors.append(
                f"NPV calculation error: Expected {deal_value:,.2f}, "
                f"got {total_npv:,.2f}"
            )

    if errors:
        logger.debug(f"Custom schedule failed validation: {errors}")

    return ScheduleValidation(
        is_valid=not errors,
        errors=errors,
        percentage_sum=percentage_sum,
        has_invalid_dates=has_invalid_dates,
    )


# =============================================================================
# Installment list management
# =============================================================================


def _new_installment_id() -> str:
    return f"installment-{uuid.uuid4().hex[:8]}"


def _default_payment_date(lease_start_date: Optional[date], index: int) -> date:
    if lease_start_date is None:
        return date.today()
    return lease_start_date + timedelta(
        days=(index + 1) * DEFAULT_INSTALLMENT_SPACING_DAYS
    )


def build_default_installments(
    count: int, lease_start_date: Optional[date]
) -> List[InstallmentInput]:
    """
    Initial schedule: equal shares paid every 30 days after the start date.
    """
    if count <= 0:
        return []

    return [
        InstallmentInput(
            id=f"installment-{i + 1}",
            payment_date=_default_payment_date(lease_start_date, i),
            percentage=100 / count,
        )
        for i in range(count)
    ]


def add_installment(
    installments: List[InstallmentInput], lease_start_date: Optional[date]
) -> List[InstallmentInput]:
    """Append an empty installment due 30 days after the start date."""
    return installments + [
        InstallmentInput(
            id=_new_installment_id(),
            payment_date=_default_payment_date(lease_start_date, 0),
            percentage=0.0,
        )
    ]


def remove_installment(
    installments: List[InstallmentInput], installment_id: str
) -> List[InstallmentInput]:
    return [inst for inst in installments if inst.id != installment_id]


def update_installment(
    installments: List[InstallmentInput],
    installment_id: str,
    payment_date: Optional[date] = None,
    percentage: Optional[float] = None,
) -> List[InstallmentInput]:
    """Replace the date and/or percentage of one installment."""
    updated = []
    for inst in installments:
        if inst.id == installment_id:
            if payment_date is not None:
                inst = replace(inst, payment_date=payment_date)
            if percentage is not None:
                inst = replace(inst, percentage=percentage)
        updated.append(inst)
    return updated


def resize_installments(
    installments: List[InstallmentInput],
    count: int,
    lease_start_date: Optional[date],
) -> List[InstallmentInput]:
    """
    Grow or shrink the schedule to count installments.

    New installments carry a 0% share; excess installments are dropped from
    the end.
    """
    resized = list(installments[: max(0, count)])
    for i in range(len(resized), count):
        resized.append(
            InstallmentInput(
                id=_new_installment_id(),
                payment_date=_default_payment_date(lease_start_date, i),
                percentage=0.0,
            )
        )
    return resized


def distribute_percentages_evenly(
    installments: List[InstallmentInput],
) -> List[InstallmentInput]:
    if not installments:
        return []
    share = 100 / len(installments)
    return [replace(inst, percentage=share) for inst in installments]


# =============================================================================
# Payment schedule aggregates
# =============================================================================


@dataclass
class Installment:
    """Installment as edited in a payment schedule."""

    id: str
    payment_date: date
    percentage_of_deal: float
    amount_due: float
    present_value: float = 0.0
    description: Optional[str] = None


@dataclass
class PaymentSchedule:
    """Installments with caller-recomputed totals."""

    installments: List[Installment] = field(default_factory=list)
    total_percentage: float = 0.0
    total_amount: float = 0.0
    remaining_amount: float = 0.0
    lease_start_date: Optional[date] = None


def with_percentage(
    installment: Installment, percentage: float, deal_value: float
) -> Installment:
    """Set the percentage and derive the amount due from it."""
    return replace(
        installment,
        percentage_of_deal=percentage,
        amount_due=(percentage / 100) * deal_value,
    )


def with_amount(installment: Installment, amount: float, deal_value: float) -> Installment:
    """Set the amount due and derive the percentage from it."""
    percentage = (amount / deal_value) * 100 if deal_value > 0 else 0.0
    return replace(installment, amount_due=amount, percentage_of_deal=percentage)


def summarize_schedule(
    installments: List[Installment],
    deal_value: float,
    lease_start_date: Optional[date] = None,
    discount_rate: Optional[float] = None,
) -> PaymentSchedule:
    """
    Recompute schedule totals.

    When a start date and discount rate are given, each installment's present
    value is refreshed as well.
    """
    if lease_start_date is not None and discount_rate is not None:
        installments = [
            replace(
                inst,
                present_value=calculate_present_value(
                    inst.amount_due, discount_rate, lease_start_date, inst.payment_date
                ),
            )
            for inst in installments
        ]

    total_amount = sum(inst.amount_due for inst in installments)

    return PaymentSchedule(
        installments=installments,
        total_percentage=sum(inst.percentage_of_deal for inst in installments),
        total_amount=total_amount,
        remaining_amount=deal_value - total_amount,
        lease_start_date=lease_start_date,
    )
