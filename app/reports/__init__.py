"""
Report generation.
"""

from app.reports.excel import NPVReport, build_npv_workbook, generate_excel_report

__all__ = ["NPVReport", "build_npv_workbook", "generate_excel_report"]
