"""
Excel Report

Builds the NPV analysis workbook. Every number is produced by the
calculation engine and converted to the display currency; the workbook holds
values, not re-derived spreadsheet formulas.
"""

import logging
from io import BytesIO
from typing import List, Optional, Tuple
from datetime import date, datetime
from dataclasses import dataclass, field

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from app.calculations.cashflow import (
    INCREASE_PERCENT,
    TIMING_END,
    cash_flow_dates,
)
from app.calculations.currency import Currency, ExchangeRateTable, convert_from_usd
from app.calculations.npv import (
    LeaseValuation,
    calculate_lease_value,
    discount_cash_flows,
)
from app.calculations.schedule import CustomInstallment

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SHEET_INPUTS = "Input Parameters"
SHEET_CALCULATIONS = "Calculations"
SHEET_RESULTS = "Results Summary"
SHEET_SCHEDULE = "Custom Schedule"
SHEET_INSTRUCTIONS = "Instructions"

# First data row of the Calculations sheet
CALCULATIONS_FIRST_ROW = 4


@dataclass
class NPVReport:
    """Inputs of an NPV analysis export. Monetary inputs are in USD."""

    discount_rate: float
    base_cash_flow: float
    increase_value: float
    increase_type: str
    increase_frequency: int
    time_period: int
    total_hectares: float
    currency: Currency
    rates: ExchangeRateTable
    payment_timing: str = TIMING_END
    lease_start_date: Optional[date] = None
    deal_value: Optional[float] = None
    installments: List[CustomInstallment] = field(default_factory=list)
    generated_at: Optional[datetime] = None


def _convert(report: NPVReport, amount_usd: float) -> float:
    value = convert_from_usd(amount_usd, report.currency.code, report.rates)
    return round(value, report.currency.decimal_digits)


def _write_title(ws: Worksheet, title: str):
    ws.append([title])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([])


def _write_header(ws: Worksheet, headers: List[str]):
    ws.append(headers)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)


def _set_widths(ws: Worksheet, widths: List[int]):
    for index, width in enumerate(widths):
        ws.column_dimensions[chr(ord("A") + index)].width = width


def _create_input_sheet(wb: Workbook, report: NPVReport):
    ws = wb.active
    ws.title = SHEET_INPUTS
    symbol = report.currency.symbol
    is_percent = report.increase_type == INCREASE_PERCENT

    _write_title(ws, "NPV Calculator - Input Parameters")
    _write_header(ws, ["Parameter", "Value", "Unit", "Description"])
    ws.append(["Currency", report.currency.code, "", report.currency.name])
    ws.append(
        ["Discount Rate", report.discount_rate, "%", "Annual discount rate for NPV calculation"]
    )
    ws.append(
        [
            "Initial Lease Rent",
            _convert(report, report.base_cash_flow),
            f"{symbol}/m²/year",
            "Base cash flow per square meter per year",
        ]
    )
    ws.append(
        [
            "Increase Value",
            report.increase_value if is_percent else _convert(report, report.increase_value),
            "%" if is_percent else f"{symbol}/m²",
            f"Increase applied every {report.increase_frequency} year(s)",
        ]
    )
    ws.append(
        [
            "Increase Type",
            "Percentage" if is_percent else "Fixed Amount",
            "",
            "Type of cash flow increase",
        ]
    )
    ws.append(
        ["Increase Frequency", report.increase_frequency, "years", "Years between increases"]
    )
    ws.append(["Time Period", report.time_period, "years", "Total analysis period"])
    ws.append(["Total Hectares", report.total_hectares, "hectares", "Total project area"])
    ws.append(["Payment Timing", report.payment_timing, "", "When each year's rent is paid"])
    if report.lease_start_date is not None:
        ws.append(["Lease Start Date", report.lease_start_date, "", ""])
    ws.append([])
    generated_at = report.generated_at or datetime.now()
    ws.append(["Generated on:", generated_at.strftime("%Y-%m-%d %H:%M:%S")])

    _set_widths(ws, [20, 15, 15, 40])


def _create_calculations_sheet(wb: Workbook, report: NPVReport, rows: List[dict]) -> int:
    """Write the per-year table; returns the totals row number."""
    ws = wb.create_sheet(SHEET_CALCULATIONS)

    _write_title(ws, "NPV Calculator - Cash Flow Calculations")
    _write_header(
        ws,
        [
            "Year",
            "Payment Date",
            "Cash Flow (per m²)",
            "Cash Flow (per hectare)",
            "Discount Factor",
            "Present Value",
            "Cumulative PV",
        ],
    )

    payment_dates = (
        cash_flow_dates(report.lease_start_date, report.time_period, report.payment_timing)
        if report.lease_start_date is not None
        else [None] * len(rows)
    )

    for row, payment_date in zip(rows, payment_dates):
        ws.append(
            [
                row["year"],
                payment_date,
                round(
                    convert_from_usd(row["rate_per_m2"], report.currency.code, report.rates), 4
                ),
                _convert(report, row["cash_flow"]),
                row["discount_factor"],
                _convert(report, row["present_value"]),
                _convert(report, row["cumulative_present_value"]),
            ]
        )

    ws.append([])
    ws.append(
        [
            "TOTALS:",
            "",
            "",
            _convert(report, sum(row["cash_flow"] for row in rows)),
            "",
            _convert(report, sum(row["present_value"] for row in rows)),
            "",
        ]
    )
    totals_row = ws.max_row
    for cell in ws[totals_row]:
        cell.font = Font(bold=True)

    _set_widths(ws, [8, 14, 18, 22, 16, 18, 18])
    return totals_row


def _status(value: float) -> str:
    return "Profitable" if value > 0 else "Unprofitable"


def _create_results_sheet(wb: Workbook, report: NPVReport, valuation: LeaseValuation):
    symbol = report.currency.symbol
    flows = valuation.cash_flows
    average = valuation.total_cash_flow / len(flows) if flows else 0.0
    final_year = flows[-1].amount if flows else 0.0

    ws = wb.create_sheet(SHEET_RESULTS)
    _write_title(ws, "NPV Calculator - Results Summary")
    _write_header(ws, ["Metric", "Value", "Unit", "Status"])
    ws.append(
        [
            "NPV per Hectare",
            _convert(report, valuation.npv_per_hectare),
            symbol,
            _status(valuation.npv_per_hectare),
        ]
    )
    ws.append(
        [
            "Total Project NPV",
            _convert(report, valuation.total_value),
            symbol,
            _status(valuation.total_value),
        ]
    )
    ws.append([])
    ws.append(["Project Details"])
    ws.append(["Total Hectares", report.total_hectares, "hectares", ""])
    ws.append(["Analysis Period", report.time_period, "years", ""])
    ws.append(["Discount Rate", report.discount_rate, "%", ""])
    ws.append([])
    ws.append(["Cash Flow Summary"])
    ws.append(
        [
            "Total Future Cash Flows",
            _convert(report, valuation.total_cash_flow),
            f"{symbol}/hectare",
            "",
        ]
    )
    ws.append(
        [
            "Total Present Value",
            _convert(report, valuation.npv_per_hectare),
            f"{symbol}/hectare",
            "",
        ]
    )
    ws.append(["Average Annual Cash Flow", _convert(report, average), f"{symbol}/hectare", ""])
    ws.append(["Final Year Cash Flow", _convert(report, final_year), f"{symbol}/hectare", ""])

    _set_widths(ws, [25, 20, 15, 15])


def _create_schedule_sheet(wb: Workbook, report: NPVReport):
    ws = wb.create_sheet(SHEET_SCHEDULE)
    _write_title(ws, "NPV Calculator - Custom Payment Schedule")
    if report.deal_value is not None:
        ws.append(["Deal Value", _convert(report, report.deal_value)])
        ws.append([])
    _write_header(
        ws, ["Installment", "Payment Date", "Days From Start", "Percentage", "Amount", "Present Value"]
    )
    for inst in report.installments:
        ws.append(
            [
                inst.id,
                inst.payment_date,
                inst.days_from_start,
                inst.percentage,
                _convert(report, inst.amount),
                _convert(report, inst.present_value),
            ]
        )
    ws.append([])
    ws.append(
        [
            "TOTALS:",
            "",
            "",
            sum(inst.percentage for inst in report.installments),
            _convert(report, sum(inst.amount for inst in report.installments)),
            _convert(report, sum(inst.present_value for inst in report.installments)),
        ]
    )
    _set_widths(ws, [22, 14, 16, 12, 18, 18])


def _create_instructions_sheet(wb: Workbook, report: NPVReport):
    ws = wb.create_sheet(SHEET_INSTRUCTIONS)
    _write_title(ws, "NPV Calculator - How to Read This Report")
    for line in [
        "Input Parameters: the assumptions used for this analysis.",
        "Calculations: yearly cash flows per m² and per hectare with their present values.",
        "Cash flow per hectare = rent per m² x 10,000.",
        "Present value = cash flow / (1 + discount rate)^years, adjusted for payment timing.",
        "Increases are applied at the start of each increase period, not gradually.",
        "Results Summary: NPV per hectare and for the whole project.",
        f"All amounts are shown in {report.currency.name} ({report.currency.code}) "
        f"converted from USD at {report.rates.rate_for(report.currency.code)} "
        f"({report.rates.source} rates).",
    ]:
        ws.append([line])
    _set_widths(ws, [100])


def build_npv_workbook(report: NPVReport) -> Workbook:
    """Assemble the NPV analysis workbook."""
    wb = Workbook()

    valuation = value_report(report)
    rows = discount_cash_flows(
        valuation.cash_flows, report.discount_rate, report.payment_timing
    )

    _create_input_sheet(wb, report)
    _create_calculations_sheet(wb, report, rows)
    _create_results_sheet(wb, report, valuation)
    if report.installments:
        _create_schedule_sheet(wb, report)
    _create_instructions_sheet(wb, report)

    return wb


def value_report(report: NPVReport) -> LeaseValuation:
    """Value the lease described by the report."""
    return calculate_lease_value(
        base_cash_flow=report.base_cash_flow,
        increase_value=report.increase_value,
        increase_type=report.increase_type,
        increase_frequency=report.increase_frequency,
        time_period=report.time_period,
        discount_rate=report.discount_rate,
        total_hectares=report.total_hectares,
        payment_timing=report.payment_timing,
    )


def report_filename(report: NPVReport) -> str:
    generated_at = report.generated_at or datetime.now()
    timestamp = generated_at.strftime("%Y-%m-%dT%H-%M-%S")
    return f"NPV_Analysis_{report.currency.code}_{timestamp}.xlsx"


def generate_excel_report(report: NPVReport) -> Tuple[str, bytes]:
    """
    Render the workbook to xlsx bytes.

    Returns:
        (filename, content)
    """
    wb = build_npv_workbook(report)
    buffer = BytesIO()
    wb.save(buffer)

    filename = report_filename(report)
    logger.info(
        f"Generated Excel report {filename} "
        f"({report.time_period} years, {len(report.installments)} installments)"
    )
    return filename, buffer.getvalue()
