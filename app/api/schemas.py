"""
Request and response schemas shared by the API routers.
"""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import date

from app.calculations.cashflow import MAX_TIME_PERIOD
from app.calculations.schedule import ScheduleTolerances
from app.config import get_settings

IncreaseType = Literal["amount", "percent"]
PaymentTiming = Literal["beginning", "middle", "end"]


class LeaseTermsInput(BaseModel):
    """Lease terms. Monetary values are in USD."""

    discount_rate: float = Field(10.0, ge=0)
    base_cash_flow: float = Field(0.0, ge=0)  # Rent per m² per year
    increase_value: float = Field(0.0, ge=0)
    increase_type: IncreaseType = "amount"
    increase_frequency: int = Field(1, ge=1)
    time_period: int = Field(5, ge=1, le=MAX_TIME_PERIOD)
    total_hectares: float = Field(1.0, gt=0)
    payment_timing: PaymentTiming = "end"
    lease_start_date: Optional[date] = None
    currency: str = "USD"


class InstallmentIn(BaseModel):
    id: str
    payment_date: date
    percentage: float


class InstallmentOut(BaseModel):
    id: str
    payment_date: date
    percentage: float
    amount: float
    present_value: float
    days_from_start: int


class CustomScheduleInput(BaseModel):
    """Custom installment schedule. Deal value is in USD."""

    deal_value: float
    lease_start_date: Optional[date] = None
    discount_rate: float = Field(10.0, ge=0)
    installments: List[InstallmentIn] = []
    method: Literal["nominal", "present_value_equivalent"] = "nominal"


class ScheduleValidationOut(BaseModel):
    is_valid: bool
    errors: List[str]
    percentage_sum: float
    has_invalid_dates: bool


class CustomScheduleResponse(BaseModel):
    installments: List[InstallmentOut]
    total_npv: float
    validation: ScheduleValidationOut


def schedule_tolerances() -> ScheduleTolerances:
    """Reconciliation tolerances from settings."""
    settings = get_settings()
    return ScheduleTolerances(
        percentage_sum=settings.schedule_percentage_tolerance,
        npv_relative=settings.schedule_npv_tolerance,
    )
