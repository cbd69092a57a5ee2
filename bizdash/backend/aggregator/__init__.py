"""
集計ロジック
"""

from .period import DateRange, InvalidDateRangeError
from .reports import ReportAggregator, ReportResult
from .summary import DashboardSummary, GrowthResult, calculate_growth
from .csv_output import CsvExporter, to_csv_text
from .excel_output import ExcelExporter
from .codes import generate_order_code, generate_invoice_number

__all__ = [
    'DateRange',
    'InvalidDateRangeError',
    'ReportAggregator',
    'ReportResult',
    'DashboardSummary',
    'GrowthResult',
    'calculate_growth',
    'CsvExporter',
    'to_csv_text',
    'ExcelExporter',
    'generate_order_code',
    'generate_invoice_number'
]
