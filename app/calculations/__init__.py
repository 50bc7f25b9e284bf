"""
Lease Valuation Engine

Core calculation modules for lease cash flow projection, NPV and custom
payment schedules. The API and the Excel report both use these functions.
"""

from app.calculations import cashflow, npv, schedule, validation, currency

__all__ = ["cashflow", "npv", "schedule", "validation", "currency"]
