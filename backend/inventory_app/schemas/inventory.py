"""
Inventory Schemas
Snapshot rows, count lines, variances and the all-inventory listing
"""
from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from inventory_app.schemas.common import InventoryStatus
from inventory_app.schemas.transactions import TransactionHeaderResponse


class CountStep(str, Enum):
    WAREHOUSE = "warehouse"
    DATE = "date"
    COUNT = "count"
    VARIANCE = "variance"
    ADJUSTMENT = "adjustment"


class SnapshotRow(BaseModel):
    """Latest on-hand balance of one item at a warehouse as of a date"""
    model_config = ConfigDict(from_attributes=True)

    item_name: str
    warehouse: str
    transaction_date: date_type
    on_hand_stock: Decimal = Decimal("0")
    on_hand_consign: Decimal = Decimal("0")
    on_hand_hold: Decimal = Decimal("0")
    on_hand_total: Decimal = Decimal("0")
    uom_per_each: Optional[Decimal] = None


class CountLine(BaseModel):
    item_name: str = Field(..., min_length=1)
    quantity: Decimal = Decimal("0")
    inventory_status: InventoryStatus = InventoryStatus.STOCK
    notes: Optional[str] = ""
    uom_per_each: Optional[Decimal] = None
    case_count: Optional[Decimal] = None


class CountStartRequest(BaseModel):
    warehouse: str = Field(..., min_length=1)
    date: date_type


class CountStartResponse(BaseModel):
    warehouse: str
    date: date_type
    snapshot: List[SnapshotRow]
    lines: List[CountLine]


class VarianceLine(BaseModel):
    item_name: str
    inventory_status: InventoryStatus
    physical_count: Decimal
    calculated_count: Decimal
    variance: Decimal


class VarianceRequest(BaseModel):
    warehouse: str = Field(..., min_length=1)
    date: date_type
    lines: List[CountLine] = Field(..., min_length=1)


class VarianceResponse(BaseModel):
    variances: List[VarianceLine]
    review: List[VarianceLine] = Field(default_factory=list, description="Non-zero variances only")
    pending_transactions: List[TransactionHeaderResponse] = Field(default_factory=list)


class AdjustmentRequest(BaseModel):
    warehouse: str = Field(..., min_length=1)
    date: date_type
    variances: List[VarianceLine]


class InventoryRecord(BaseModel):
    """One item x warehouse x status row of the transaction-history fold"""
    item_name: str
    warehouse: str
    inventory_status: str
    on_hand: Decimal = Decimal("0")
    committed: Decimal = Decimal("0")
    on_order: Decimal = Decimal("0")


class WarehouseOption(BaseModel):
    common_name: str
    location_id: Optional[str] = None
    abbreviation: Optional[str] = None


class ItemOption(BaseModel):
    item_name: str
    uom_per_each: Optional[Decimal] = None
