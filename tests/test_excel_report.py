"""
Excel Report Parity Tests

These tests verify that the exported workbook shows exactly the numbers
produced by the calculation engine, converted to the display currency.
"""

import pytest
from io import BytesIO
from datetime import date, datetime, timedelta
from openpyxl import load_workbook

from app.calculations.currency import ExchangeRateTable, get_currency
from app.calculations.npv import calculate_lease_value, discount_cash_flows
from app.calculations.schedule import (
    InstallmentInput,
    calculate_custom_schedule_installments,
)
from app.reports.excel import (
    CALCULATIONS_FIRST_ROW,
    NPVReport,
    build_npv_workbook,
    generate_excel_report,
    report_filename,
)

RATES = ExchangeRateTable(rates={"USD": 1.0, "EUR": 0.85, "XOF": 600.0}, source="fallback")


def _report(**overrides):
    params = dict(
        discount_rate=10,
        base_cash_flow=2,
        increase_value=5,
        increase_type="percent",
        increase_frequency=2,
        time_period=8,
        total_hectares=3,
        currency=get_currency("USD"),
        rates=RATES,
        generated_at=datetime(2025, 3, 1, 9, 30, 0),
    )
    params.update(overrides)
    return NPVReport(**params)


def _reload(report):
    _, content = generate_excel_report(report)
    return load_workbook(BytesIO(content))


class TestWorkbookStructure:
    def test_sheets(self):
        wb = build_npv_workbook(_report())
        assert wb.sheetnames == [
            "Input Parameters",
            "Calculations",
            "Results Summary",
            "Instructions",
        ]

    def test_filename(self):
        assert report_filename(_report(currency=get_currency("EUR"))) == (
            "NPV_Analysis_EUR_2025-03-01T09-30-00.xlsx"
        )

    def test_input_parameters(self):
        ws = _reload(_report())["Input Parameters"]
        values = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value
                  for r in range(4, ws.max_row + 1)}
        assert values["Currency"] == "USD"
        assert values["Discount Rate"] == 10
        assert values["Increase Type"] == "Percentage"
        assert values["Time Period"] == 8
        assert values["Total Hectares"] == 3


class TestCalculationsParity:
    """Calculations sheet matches the engine row for row."""

    def test_rows_match_engine(self):
        report = _report()
        valuation = calculate_lease_value(2, 5, "percent", 2, 8, 10, 3)
        rows = discount_cash_flows(valuation.cash_flows, 10)

        ws = _reload(report)["Calculations"]
        for offset, row in enumerate(rows):
            r = CALCULATIONS_FIRST_ROW + offset
            assert ws.cell(row=r, column=1).value == row["year"]
            assert ws.cell(row=r, column=4).value == pytest.approx(row["cash_flow"])
            assert ws.cell(row=r, column=5).value == pytest.approx(row["discount_factor"])
            assert ws.cell(row=r, column=6).value == pytest.approx(row["present_value"])
            assert ws.cell(row=r, column=7).value == pytest.approx(
                row["cumulative_present_value"]
            )

    def test_totals_row(self):
        valuation = calculate_lease_value(2, 5, "percent", 2, 8, 10, 3)
        ws = _reload(_report())["Calculations"]
        totals_row = CALCULATIONS_FIRST_ROW + 8 + 1
        assert ws.cell(row=totals_row, column=1).value == "TOTALS:"
        assert ws.cell(row=totals_row, column=4).value == pytest.approx(
            valuation.total_cash_flow, abs=0.01
        )
        assert ws.cell(row=totals_row, column=6).value == pytest.approx(
            valuation.npv_per_hectare, abs=0.05
        )

    def test_payment_dates(self):
        ws = _reload(_report(lease_start_date=date(2025, 1, 1)))["Calculations"]
        first = ws.cell(row=CALCULATIONS_FIRST_ROW, column=2).value
        assert first.date() == date(2026, 1, 1)

    def test_converted_to_display_currency(self):
        usd = _reload(_report())["Calculations"]
        eur = _reload(_report(currency=get_currency("EUR")))["Calculations"]
        for r in range(CALCULATIONS_FIRST_ROW, CALCULATIONS_FIRST_ROW + 8):
            assert eur.cell(row=r, column=4).value == pytest.approx(
                usd.cell(row=r, column=4).value * 0.85, abs=0.01
            )
            # Discount factors are currency independent
            assert eur.cell(row=r, column=5).value == usd.cell(row=r, column=5).value

    def test_zero_decimal_currency_rounded(self):
        ws = _reload(_report(currency=get_currency("XOF")))["Calculations"]
        value = ws.cell(row=CALCULATIONS_FIRST_ROW, column=4).value
        assert value == round(value)


class TestResultsSummary:
    def test_headline_values(self):
        valuation = calculate_lease_value(2, 5, "percent", 2, 8, 10, 3)
        ws = _reload(_report())["Results Summary"]
        assert ws["A4"].value == "NPV per Hectare"
        assert ws["B4"].value == pytest.approx(round(valuation.npv_per_hectare, 2))
        assert ws["D4"].value == "Profitable"
        assert ws["A5"].value == "Total Project NPV"
        assert ws["B5"].value == pytest.approx(round(valuation.total_value, 2))

    def test_zero_rent_is_unprofitable(self):
        ws = _reload(_report(base_cash_flow=0, increase_value=0))["Results Summary"]
        assert ws["D4"].value == "Unprofitable"


class TestCustomScheduleSheet:
    def test_installments_exported(self):
        start = date(2025, 1, 1)
        installments = calculate_custom_schedule_installments(
            100000,
            start,
            10,
            [
                InstallmentInput("first", start, 50),
                InstallmentInput("second", start + timedelta(days=365), 50),
            ],
        )
        wb = _reload(
            _report(deal_value=100000, installments=installments, lease_start_date=start)
        )
        ws = wb["Custom Schedule"]
        assert ws["A3"].value == "Deal Value"
        assert ws["B3"].value == 100000
        # Header on row 5, installments from row 6
        assert ws["A6"].value == "first"
        assert ws["E6"].value == pytest.approx(50000)
        assert ws["F7"].value == pytest.approx(round(installments[1].present_value, 2))
