"""
Inventory Business Services
Core business logic for the warehouse inventory API
"""

from .auth_service import AuthService
from .session_tracking import SessionContext, SessionTracker, track_action
from .master_data import MasterDataService
from .inventory import InventoryCalculator, InventoryCountService, InventorySnapshotReader
from .transactions import TransactionService
from .reporting import ManualReportService, ReportService

__all__ = [
    "AuthService",
    "SessionContext",
    "SessionTracker",
    "track_action",
    "MasterDataService",
    "InventoryCalculator",
    "InventoryCountService",
    "InventorySnapshotReader",
    "TransactionService",
    "ManualReportService",
    "ReportService",
]
