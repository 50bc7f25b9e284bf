"""
Financial calculation API endpoints.

These endpoints accept inputs and return calculated results.
All calculations run in USD; display values are converted to the
requested currency.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional, Set
from datetime import date

from app.api.schemas import (
    CustomScheduleInput,
    CustomScheduleResponse,
    InstallmentOut,
    LeaseTermsInput,
    IncreaseType,
    PaymentTiming,
    ScheduleValidationOut,
    schedule_tolerances,
)
from app.calculations import cashflow, currency, npv, schedule, validation
from app.services.exchange_rates import ExchangeRateService, get_exchange_rate_service

logger = logging.getLogger(__name__)

router = APIRouter()


class CashFlowRow(BaseModel):
    year: int
    payment_date: Optional[date] = None
    rate_per_m2: float
    cash_flow: float
    discount_factor: float
    present_value: float
    cumulative_present_value: float


class DisplayValues(BaseModel):
    """Headline results converted to the display currency."""

    currency: str
    rate: float
    npv_per_hectare: float
    total_npv: float
    npv_per_hectare_formatted: str
    total_npv_formatted: str


class CashFlowResponse(BaseModel):
    """Response with cash flows and lease value (USD)."""

    cash_flows: List[CashFlowRow]
    npv_per_hectare: float
    total_npv: float
    total_cash_flow: float
    display: DisplayValues


@router.post("/cashflows", response_model=CashFlowResponse)
def calculate_cashflows(
    inputs: LeaseTermsInput,
    rates_service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Generate cash flow projections and value the lease."""
    try:
        display_currency = currency.get_currency(inputs.currency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    valuation = npv.calculate_lease_value(
        base_cash_flow=inputs.base_cash_flow,
        increase_value=inputs.increase_value,
        increase_type=inputs.increase_type,
        increase_frequency=inputs.increase_frequency,
        time_period=inputs.time_period,
        discount_rate=inputs.discount_rate,
        total_hectares=inputs.total_hectares,
        payment_timing=inputs.payment_timing,
    )
    rows = npv.discount_cash_flows(
        valuation.cash_flows, inputs.discount_rate, inputs.payment_timing
    )

    if inputs.lease_start_date is not None:
        dates = cashflow.cash_flow_dates(
            inputs.lease_start_date, inputs.time_period, inputs.payment_timing
        )
        for row, payment_date in zip(rows, dates):
            row["payment_date"] = payment_date

    table = rates_service.get_rates()
    code = display_currency.code

    logger.debug(
        f"Lease valued: {inputs.time_period} years, "
        f"NPV/ha={valuation.npv_per_hectare:.2f} USD"
    )

    return CashFlowResponse(
        cash_flows=[CashFlowRow(**row) for row in rows],
        npv_per_hectare=valuation.npv_per_hectare,
        total_npv=valuation.total_value,
        total_cash_flow=valuation.total_cash_flow,
        display=DisplayValues(
            currency=code,
            rate=table.rate_for(code),
            npv_per_hectare=currency.convert_from_usd(valuation.npv_per_hectare, code, table),
            total_npv=currency.convert_from_usd(valuation.total_value, code, table),
            npv_per_hectare_formatted=currency.format_currency(
                valuation.npv_per_hectare, display_currency, table
            ),
            total_npv_formatted=currency.format_currency(
                valuation.total_value, display_currency, table
            ),
        ),
    )


class CashFlowIn(BaseModel):
    year: int = Field(..., ge=1)
    amount: float


class NPVInput(BaseModel):
    """Input for NPV of explicit cash flows."""

    cash_flows: List[CashFlowIn]
    discount_rate: float = Field(..., ge=0)
    payment_timing: PaymentTiming = "end"


class NPVResponse(BaseModel):
    npv: float
    total_cash_flow: float


@router.post("/npv", response_model=NPVResponse)
async def calculate_npv_endpoint(inputs: NPVInput):
    """Calculate NPV for given annual cash flows."""
    flows = [
        cashflow.CashFlow(year=cf.year, amount=cf.amount, rate_per_m2=0.0)
        for cf in inputs.cash_flows
    ]
    return NPVResponse(
        npv=npv.calculate_npv(flows, inputs.discount_rate, inputs.payment_timing),
        total_cash_flow=cashflow.total_cash_flow(flows),
    )


class PresentValueInput(BaseModel):
    amount: float
    discount_rate: float = Field(..., ge=0)
    start_date: date
    payment_date: date


class PresentValueResponse(BaseModel):
    present_value: float
    future_value: float
    days_to_payment: int


@router.post("/present-value", response_model=PresentValueResponse)
async def calculate_present_value_endpoint(inputs: PresentValueInput):
    """Discount a dated payment; also grows the amount forward for comparison."""
    return PresentValueResponse(
        present_value=npv.calculate_present_value(
            inputs.amount, inputs.discount_rate, inputs.start_date, inputs.payment_date
        ),
        future_value=npv.calculate_future_value(
            inputs.amount, inputs.discount_rate, inputs.start_date, inputs.payment_date
        ),
        days_to_payment=npv.calculate_days_to_payment(
            inputs.start_date, inputs.payment_date
        ),
    )


def run_custom_schedule(inputs: CustomScheduleInput):
    """Allocate and validate a custom schedule."""
    installments = [
        schedule.InstallmentInput(
            id=inst.id, payment_date=inst.payment_date, percentage=inst.percentage
        )
        for inst in inputs.installments
    ]

    if inputs.method == "present_value_equivalent":
        allocate = schedule.calculate_present_value_equivalent_installments
    else:
        allocate = schedule.calculate_custom_schedule_installments

    calculated = allocate(
        inputs.deal_value, inputs.lease_start_date, inputs.discount_rate, installments
    )
    total_npv = schedule.calculate_custom_schedule_npv(calculated)
    result = schedule.validate_custom_schedule(
        inputs.deal_value,
        inputs.lease_start_date,
        installments,
        calculated,
        total_npv,
        schedule_tolerances(),
    )
    return calculated, total_npv, result


@router.post("/custom-schedule", response_model=CustomScheduleResponse)
async def calculate_custom_schedule(inputs: CustomScheduleInput):
    """Calculate installment amounts and present values for a custom schedule."""
    calculated, total_npv, result = run_custom_schedule(inputs)

    return CustomScheduleResponse(
        installments=[InstallmentOut(**asdict(inst)) for inst in calculated],
        total_npv=total_npv,
        validation=ScheduleValidationOut(**asdict(result)),
    )


class ScheduleInstallmentIn(BaseModel):
    id: str
    payment_date: Optional[date] = None
    percentage_of_deal: float = 0.0
    amount_due: float = 0.0


class LeaseFormInput(BaseModel):
    """Raw form values, validated as entered."""

    discount_rate: str = ""
    base_cash_flow: str = ""
    increase_value: str = ""
    increase_type: IncreaseType = "amount"
    increase_frequency: str = "1"
    time_period: str = ""
    total_hectares: str = ""
    payment_type: str = validation.PAYMENT_NORMAL
    payment_timing: PaymentTiming = "end"
    lease_start_date: Optional[date] = None
    installments: List[ScheduleInstallmentIn] = []
    touched_fields: Optional[Set[str]] = None


class ValidationIssueOut(BaseModel):
    field: str
    message: str
    type: str


class ValidationResponse(BaseModel):
    is_valid: bool
    errors: List[ValidationIssueOut]
    warnings: List[ValidationIssueOut]
    completion_percentage: int
    lease_value: float


@router.post("/validate", response_model=ValidationResponse)
async def validate_lease_form(inputs: LeaseFormInput):
    """Validate raw calculator inputs, calculating with sanitized values."""
    sanitized = validation.sanitize_lease_inputs(inputs.model_dump())
    valuation = npv.calculate_lease_value(
        base_cash_flow=sanitized.base_cash_flow,
        increase_value=sanitized.increase_value,
        increase_type=inputs.increase_type,
        increase_frequency=sanitized.increase_frequency,
        time_period=sanitized.time_period,
        discount_rate=sanitized.discount_rate,
        total_hectares=sanitized.total_hectares,
        payment_timing=inputs.payment_timing,
    )

    payment_schedule = schedule.PaymentSchedule(
        installments=[
            schedule.Installment(
                id=inst.id,
                payment_date=inst.payment_date,
                percentage_of_deal=inst.percentage_of_deal,
                amount_due=inst.amount_due,
            )
            for inst in inputs.installments
        ],
        lease_start_date=inputs.lease_start_date,
    )

    result = validation.validate_lease_inputs(
        discount_rate=inputs.discount_rate,
        base_cash_flow=inputs.base_cash_flow,
        increase_value=inputs.increase_value,
        increase_type=inputs.increase_type,
        time_period=inputs.time_period,
        total_hectares=inputs.total_hectares,
        payment_type=inputs.payment_type,
        payment_schedule=payment_schedule,
        cash_flow_count=len(valuation.cash_flows),
        lease_value=valuation.npv_per_hectare,
        touched_fields=inputs.touched_fields,
    )

    return ValidationResponse(
        is_valid=result.is_valid,
        errors=[ValidationIssueOut(**asdict(issue)) for issue in result.errors],
        warnings=[ValidationIssueOut(**asdict(issue)) for issue in result.warnings],
        completion_percentage=result.completion_percentage,
        lease_value=valuation.npv_per_hectare,
    )
