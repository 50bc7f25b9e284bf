"""
Lease Input Validation

Coerces raw form values into calculation inputs and reports field-level
errors and warnings.
"""

from typing import List, Dict, Optional, Set, Any
from dataclasses import dataclass, field
import math

from app.calculations.cashflow import INCREASE_PERCENT, MAX_TIME_PERIOD
from app.calculations.schedule import PaymentSchedule

ERROR = "error"
WARNING = "warning"

PAYMENT_NORMAL = "normal"
PAYMENT_CUSTOM = "custom"

MAX_REASONABLE_DISCOUNT_RATE = 50
MAX_REASONABLE_PERCENT_INCREASE = 20
MAX_REASONABLE_TIME_PERIOD = 50
MIN_ALLOCATED_PERCENTAGE = 95
MAX_ALLOCATED_PERCENTAGE = 100.1
VALID_COMPLETION_PERCENTAGE = 90


@dataclass
class ValidationIssue:
    field: str
    message: str
    type: str = ERROR


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    completion_percentage: int = 0


@dataclass
class LeaseInputs:
    """Sanitized numeric inputs ready for the calculation engine."""

    discount_rate: float
    base_cash_flow: float
    increase_value: float
    increase_frequency: int
    time_period: int
    total_hectares: float


def _parse_number(value: Any) -> Optional[float]:
    """Parse a form value; None for blank or non-numeric input."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def sanitize_lease_inputs(raw: Dict[str, Any]) -> LeaseInputs:
    """
    Clamp raw form values into the calculation domain.

    Missing or invalid values fall back to 0 (rates and amounts) or 1
    (time period, hectares, frequency). The time period is capped at
    MAX_TIME_PERIOD years.
    """
    def number_or(key: str, default: float) -> float:
        number = _parse_number(raw.get(key))
        return default if not number else number

    return LeaseInputs(
        discount_rate=max(0.0, number_or("discount_rate", 0.0)),
        base_cash_flow=max(0.0, number_or("base_cash_flow", 0.0)),
        increase_value=max(0.0, number_or("increase_value", 0.0)),
        increase_frequency=max(1, int(math.floor(number_or("increase_frequency", 1)))),
        time_period=min(
            MAX_TIME_PERIOD, max(1, int(math.floor(number_or("time_period", 1))))
        ),
        total_hectares=max(1.0, number_or("total_hectares", 1.0)),
    )


class _FieldChecker:
    """Accumulates issues and counts completed fields."""

    def __init__(self, touched_fields: Optional[Set[str]]):
        self.touched_fields = touched_fields
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []
        self.completed = 0

    def is_touched(self, name: str) -> bool:
        return self.touched_fields is None or name in self.touched_fields

    def error(self, name: str, message: str):
        self.errors.append(ValidationIssue(name, message, ERROR))

    def warning(self, name: str, message: str):
        self.warnings.append(ValidationIssue(name, message, WARNING))

    def check(
        self,
        name: str,
        label: str,
        raw_value: Any,
        allow_zero: bool,
        warn_above: Optional[float] = None,
        warn_message: Optional[str] = None,
    ) -> Optional[float]:
        """Validate one numeric field; returns the parsed value."""
        number = _parse_number(raw_value)
        valid = number is not None and (number >= 0 if allow_zero else number > 0)

        if not self.is_touched(name):
            if valid:
                self.completed += 1
            return number

        if _is_blank(raw_value):
            self.error(name, f"{label} is required")
        elif not valid:
            if allow_zero:
                self.error(name, f"{label} must be a valid positive number")
            else:
                self.error(name, f"{label} must be greater than 0")
        else:
            if warn_above is not None and number > warn_above:
                self.warning(name, warn_message)
            self.completed += 1

        return number


def validate_lease_inputs(
    discount_rate: Any,
    base_cash_flow: Any,
    increase_value: Any,
    increase_type: str,
    time_period: Any,
    total_hectares: Any,
    payment_type: str = PAYMENT_NORMAL,
    payment_schedule: Optional[PaymentSchedule] = None,
    cash_flow_count: int = 0,
    lease_value: float = 0.0,
    touched_fields: Optional[Set[str]] = None,
) -> ValidationResult:
    """
    Validate lease calculator inputs.

    Args:
        discount_rate..total_hectares: Raw form values (strings or numbers)
        payment_type: 'normal' or 'custom'
        payment_schedule: Installments when payment_type is 'custom'
        cash_flow_count: Number of cash flows generated from the inputs
        lease_value: Calculated lease NPV
        touched_fields: Only report field errors for these names; None
            validates every field

    Returns:
        ValidationResult; valid when there are no errors and at least 90% of
        the fields are complete
    """
    checker = _FieldChecker(touched_fields)
    total_fields = 8 if payment_type == PAYMENT_CUSTOM else 6

    checker.check(
        "discount_rate",
        "Discount rate",
        discount_rate,
        allow_zero=True,
        warn_above=MAX_REASONABLE_DISCOUNT_RATE,
        warn_message="Discount rate above 50% is unusually high",
    )
    base = checker.check(
        "base_cash_flow", "Base cash flow", base_cash_flow, allow_zero=False
    )
    checker.check(
        "increase_value",
        "Increase value",
        increase_value,
        allow_zero=True,
        warn_above=(
            MAX_REASONABLE_PERCENT_INCREASE if increase_type == INCREASE_PERCENT else None
        ),
        warn_message="Annual increase above 20% is unusually high",
    )
    period = checker.check(
        "time_period",
        "Time period",
        time_period,
        allow_zero=False,
        warn_above=MAX_REASONABLE_TIME_PERIOD,
        warn_message="Time period above 50 years is unusually long",
    )
    checker.check("total_hectares", "Total hectares", total_hectares, allow_zero=False)

    has_inputs = (base or 0) > 0 and (period or 0) > 0

    if cash_flow_count == 0 and has_inputs:
        checker.error("cash_flows", "Cash flows could not be generated - check your inputs")
    elif cash_flow_count > 0:
        checker.completed += 1

    if payment_type == PAYMENT_CUSTOM:
        _check_payment_schedule(checker, payment_schedule or PaymentSchedule())

    if lease_value <= 0 and has_inputs:
        checker.warning(
            "lease_value", "Lease value is zero or negative - review your parameters"
        )

    # Half-up rounding
    completion = int(math.floor(checker.completed / total_fields * 100 + 0.5))

    return ValidationResult(
        is_valid=not checker.errors and completion >= VALID_COMPLETION_PERCENTAGE,
        errors=checker.errors,
        warnings=checker.warnings,
        completion_percentage=completion,
    )


def _check_payment_schedule(checker: _FieldChecker, schedule: PaymentSchedule):
    name = "payment_schedule"
    installments = schedule.installments

    if not installments:
        checker.error(name, "At least one payment installment is required")
        return

    incomplete = [
        inst
        for inst in installments
        if inst.amount_due <= 0 or inst.percentage_of_deal <= 0 or inst.payment_date is None
    ]
    if incomplete:
        checker.error(name, f"{len(incomplete)} installment(s) have incomplete data")
    else:
        checker.completed += 1

    total_percentage = sum(inst.percentage_of_deal for inst in installments)
    if total_percentage < MIN_ALLOCATED_PERCENTAGE:
        checker.warning(
            name, f"Payment schedule is incomplete ({total_percentage:.1f}% allocated)"
        )
    elif total_percentage > MAX_ALLOCATED_PERCENTAGE:
        checker.error(name, "Total percentage exceeds 100%")
    else:
        checker.completed += 1

    if schedule.lease_start_date is not None:
        early = [
            inst
            for inst in installments
            if inst.payment_date is not None
            and inst.payment_date < schedule.lease_start_date
        ]
        if early:
            checker.error(
                name, f"{len(early)} payment(s) scheduled before lease start date"
            )
