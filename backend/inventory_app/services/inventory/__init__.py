"""Inventory Services - snapshots, the history fold and count reconciliation"""

from .snapshot_reader import InventorySnapshotReader
from .inventory_calculator import InventoryCalculator
from .count_workflow import CountWorkflow, InventoryCountService, calculate_variances

__all__ = [
    "InventorySnapshotReader",
    "InventoryCalculator",
    "InventoryCountService",
    "CountWorkflow",
    "calculate_variances",
]
