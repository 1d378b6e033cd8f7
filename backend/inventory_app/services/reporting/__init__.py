"""Reporting Services - inventory reports, ad-hoc queries and table paging"""

from .report_service import ReportService
from .manual_report import ManualReportService, list_views
from .table import paginate_rows

__all__ = [
    "ReportService",
    "ManualReportService",
    "list_views",
    "paginate_rows",
]
