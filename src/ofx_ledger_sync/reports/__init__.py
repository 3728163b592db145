"""Excel reporting for statement imports."""

from .excel_generator import ImportReportGenerator

__all__ = ["ImportReportGenerator"]
