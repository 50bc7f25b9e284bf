"""
Tests for lease input sanitization and validation.
"""

import pytest
from datetime import date
from app.calculations.cashflow import MAX_TIME_PERIOD
from app.calculations.schedule import Installment, PaymentSchedule
from app.calculations.validation import (
    sanitize_lease_inputs,
    validate_lease_inputs,
)

START = date(2025, 1, 1)


def _validate(**overrides):
    params = dict(
        discount_rate="10",
        base_cash_flow="5",
        increase_value="2",
        increase_type="amount",
        time_period="10",
        total_hectares="3",
        cash_flow_count=10,
        lease_value=500000.0,
    )
    params.update(overrides)
    return validate_lease_inputs(**params)


def _messages(issues):
    return [issue.message for issue in issues]


class TestSanitize:
    """Test coercion of raw form values."""

    def test_valid_values(self):
        inputs = sanitize_lease_inputs(
            {
                "discount_rate": "8.5",
                "base_cash_flow": "2.25",
                "increase_value": "3",
                "increase_frequency": "2",
                "time_period": "15",
                "total_hectares": "4.5",
            }
        )
        assert inputs.discount_rate == 8.5
        assert inputs.base_cash_flow == 2.25
        assert inputs.increase_value == 3
        assert inputs.increase_frequency == 2
        assert inputs.time_period == 15
        assert inputs.total_hectares == 4.5

    def test_invalid_values_are_clamped(self):
        inputs = sanitize_lease_inputs(
            {
                "discount_rate": "abc",
                "base_cash_flow": "-5",
                "increase_value": "",
                "time_period": "7.9",
                "total_hectares": "0",
            }
        )
        assert inputs.discount_rate == 0
        assert inputs.base_cash_flow == 0
        assert inputs.increase_value == 0
        assert inputs.increase_frequency == 1
        assert inputs.time_period == 7
        assert inputs.total_hectares == 1

    @pytest.mark.parametrize("raw", ["1e300", "2000000", "201"])
    def test_time_period_capped(self, raw):
        inputs = sanitize_lease_inputs({"time_period": raw})
        assert inputs.time_period == MAX_TIME_PERIOD

    def test_missing_values(self):
        inputs = sanitize_lease_inputs({})
        assert inputs.time_period == 1
        assert inputs.total_hectares == 1

    def test_numbers_accepted(self):
        inputs = sanitize_lease_inputs({"time_period": 0.5, "base_cash_flow": 12})
        assert inputs.time_period == 1
        assert inputs.base_cash_flow == 12


class TestLeaseValidation:
    """Test field-level validation."""

    def test_valid_inputs(self):
        result = _validate()
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.completion_percentage == 100

    def test_required_fields(self):
        result = _validate(
            discount_rate="",
            base_cash_flow=" ",
            increase_value="",
            time_period="",
            total_hectares="",
            cash_flow_count=0,
        )
        assert not result.is_valid
        assert _messages(result.errors) == [
            "Discount rate is required",
            "Base cash flow is required",
            "Increase value is required",
            "Time period is required",
            "Total hectares is required",
        ]
        assert result.completion_percentage == 0

    def test_invalid_values(self):
        result = _validate(
            discount_rate="-1", base_cash_flow="0", time_period="abc", total_hectares="-2"
        )
        assert _messages(result.errors) == [
            "Discount rate must be a valid positive number",
            "Base cash flow must be greater than 0",
            "Time period must be greater than 0",
            "Total hectares must be greater than 0",
        ]
        assert [issue.field for issue in result.errors] == [
            "discount_rate",
            "base_cash_flow",
            "time_period",
            "total_hectares",
        ]

    def test_zero_discount_rate_allowed(self):
        assert _validate(discount_rate="0").is_valid

    def test_unusual_values_warn(self):
        result = _validate(
            discount_rate="60", increase_value="25", increase_type="percent", time_period="60"
        )
        assert result.is_valid
        assert _messages(result.warnings) == [
            "Discount rate above 50% is unusually high",
            "Annual increase above 20% is unusually high",
            "Time period above 50 years is unusually long",
        ]
        assert all(w.type == "warning" for w in result.warnings)

    def test_large_amount_increase_does_not_warn(self):
        assert _validate(increase_value="25", increase_type="amount").warnings == []

    def test_cash_flows_not_generated(self):
        result = _validate(cash_flow_count=0)
        assert "Cash flows could not be generated - check your inputs" in _messages(
            result.errors
        )

    def test_zero_lease_value_warns(self):
        result = _validate(lease_value=0)
        assert "Lease value is zero or negative - review your parameters" in _messages(
            result.warnings
        )

    def test_untouched_fields_not_reported(self):
        result = _validate(
            discount_rate="", base_cash_flow="", touched_fields={"time_period"}
        )
        assert result.errors == []
        # 4 of 6 fields complete
        assert result.completion_percentage == 67
        assert not result.is_valid

    def test_touched_field_reported(self):
        result = _validate(base_cash_flow="", touched_fields={"base_cash_flow"})
        assert _messages(result.errors) == ["Base cash flow is required"]


class TestCustomScheduleValidation:
    """Test payment schedule checks in custom payment mode."""

    def _schedule(self, *installments):
        return PaymentSchedule(installments=list(installments), lease_start_date=START)

    def test_complete_schedule(self):
        schedule = self._schedule(
            Installment("a", START, 50, 500), Installment("b", date(2025, 6, 1), 50, 500)
        )
        result = _validate(payment_type="custom", payment_schedule=schedule)
        assert result.is_valid
        assert result.completion_percentage == 100

    def test_empty_schedule(self):
        result = _validate(payment_type="custom", payment_schedule=self._schedule())
        assert "At least one payment installment is required" in _messages(result.errors)

    def test_missing_schedule_treated_as_empty(self):
        result = _validate(payment_type="custom")
        assert "At least one payment installment is required" in _messages(result.errors)

    def test_incomplete_installments(self):
        schedule = self._schedule(
            Installment("a", START, 100, 1000), Installment("b", START, 0, 0)
        )
        result = _validate(payment_type="custom", payment_schedule=schedule)
        assert "1 installment(s) have incomplete data" in _messages(result.errors)

    def test_under_allocated_warns(self):
        schedule = self._schedule(Installment("a", START, 80, 800))
        result = _validate(payment_type="custom", payment_schedule=schedule)
        assert "Payment schedule is incomplete (80.0% allocated)" in _messages(result.warnings)
        assert result.completion_percentage == 88
        assert not result.is_valid

    def test_over_allocated(self):
        schedule = self._schedule(
            Installment("a", START, 60, 600), Installment("b", START, 45, 450)
        )
        result = _validate(payment_type="custom", payment_schedule=schedule)
        assert "Total percentage exceeds 100%" in _messages(result.errors)

    def test_payments_before_start(self):
        schedule = self._schedule(
            Installment("a", date(2024, 12, 1), 50, 500),
            Installment("b", date(2024, 12, 15), 50, 500),
        )
        result = _validate(payment_type="custom", payment_schedule=schedule)
        assert "2 payment(s) scheduled before lease start date" in _messages(result.errors)

    def test_normal_mode_ignores_schedule(self):
        result = _validate(payment_type="normal", payment_schedule=self._schedule())
        assert result.is_valid
