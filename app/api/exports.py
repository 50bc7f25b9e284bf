"""
Report export endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from typing import Optional

from app.api.calculations import run_custom_schedule
from app.api.schemas import CustomScheduleInput, LeaseTermsInput
from app.calculations import currency
from app.reports.excel import XLSX_MEDIA_TYPE, NPVReport, generate_excel_report
from app.services.exchange_rates import ExchangeRateService, get_exchange_rate_service

router = APIRouter()


class ExcelExportInput(LeaseTermsInput):
    """Lease terms plus an optional custom schedule to include."""

    custom_schedule: Optional[CustomScheduleInput] = None


@router.post("/excel")
def export_excel(
    inputs: ExcelExportInput,
    rates_service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Download the NPV analysis as an Excel workbook."""
    try:
        display_currency = currency.get_currency(inputs.currency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    deal_value = None
    installments = []
    if inputs.custom_schedule is not None:
        installments, _, _ = run_custom_schedule(inputs.custom_schedule)
        deal_value = inputs.custom_schedule.deal_value

    report = NPVReport(
        discount_rate=inputs.discount_rate,
        base_cash_flow=inputs.base_cash_flow,
        increase_value=inputs.increase_value,
        increase_type=inputs.increase_type,
        increase_frequency=inputs.increase_frequency,
        time_period=inputs.time_period,
        total_hectares=inputs.total_hectares,
        currency=display_currency,
        rates=rates_service.get_rates(),
        payment_timing=inputs.payment_timing,
        lease_start_date=inputs.lease_start_date,
        deal_value=deal_value,
        installments=installments,
    )
    filename, content = generate_excel_report(report)

    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
