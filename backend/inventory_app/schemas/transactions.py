"""Transaction Management Schemas"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inventory_app.schemas.common import (
    InventoryStatus, LineStatus, ReferenceType, TransactionType
)


class TransactionItemIn(BaseModel):
    item_name: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("0"))
    lot_number: Optional[str] = None
    comments: Optional[str] = None


class TransactionCreate(BaseModel):
    """Inbound, outbound or adjustment transaction with its item lines"""
    type: TransactionType
    date: date
    reference_type: ReferenceType = ReferenceType.OTHER
    warehouse: str = Field(..., min_length=1)
    inventory_status: InventoryStatus = InventoryStatus.STOCK
    status: LineStatus
    shipment_carrier: Optional[str] = None
    shipping_document: Optional[str] = None
    customer_po: Optional[str] = None
    customer_name: Optional[str] = None
    comments: Optional[str] = None
    related_transaction_id: Optional[str] = None
    items: List[TransactionItemIn] = Field(default_factory=list)


class TransferCreate(BaseModel):
    """Transfer order: outbound at the source, pending inbound at the destination"""
    date: date
    source_warehouse: str = Field(..., min_length=1)
    destination_warehouse: str = Field(..., min_length=1)
    status: LineStatus = LineStatus.SHIPPED
    inventory_status: InventoryStatus = InventoryStatus.STOCK
    transfer_to_inventory_status: Optional[InventoryStatus] = None
    transfer_date: Optional[date] = None
    business_days: Optional[int] = Field(None, ge=0)
    shipment_carrier: Optional[str] = None
    shipping_document: Optional[str] = None
    customer_po: Optional[str] = None
    customer_name: Optional[str] = None
    comments: Optional[str] = None
    items: List[TransactionItemIn] = Field(default_factory=list)


class TransactionHeaderUpdate(BaseModel):
    transaction_date: Optional[date] = None
    warehouse: Optional[str] = None
    shipment_carrier: Optional[str] = None
    shipping_document: Optional[str] = None
    customer_po: Optional[str] = None
    customer_name: Optional[str] = None
    comments: Optional[str] = None


class TransactionDetailUpdate(BaseModel):
    quantity: Decimal
    inventory_status: InventoryStatus
    status: LineStatus
    lot_number: Optional[str] = None
    comments: Optional[str] = None


class TransactionDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    detail_id: str
    transaction_id: str
    item_name: str
    quantity: Decimal
    inventory_status: Optional[str] = None
    status: str
    lot_number: Optional[str] = None
    comments: Optional[str] = None
    created_by: Optional[str] = None
    last_edited_by: Optional[str] = None
    created_by_name: Optional[str] = None
    last_edited_by_name: Optional[str] = None


class TransactionHeaderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    transaction_type: str
    transaction_date: date
    warehouse: Optional[str] = None
    reference_type: Optional[str] = None
    reference_number: str
    shipment_carrier: Optional[str] = None
    shipping_document: Optional[str] = None
    customer_po: Optional[str] = None
    customer_name: Optional[str] = None
    comments: Optional[str] = None
    related_transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_edited_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_edited_by: Optional[str] = None
    created_by_name: Optional[str] = None
    last_edited_by_name: Optional[str] = None
    details: List[TransactionDetailResponse] = Field(default_factory=list)


class TransferResponse(BaseModel):
    outbound: TransactionHeaderResponse
    inbound: TransactionHeaderResponse


class TransactionFilter(BaseModel):
    transaction_type: Optional[TransactionType] = None
    warehouse: Optional[str] = None
    search: Optional[str] = None

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ReleaseEmailResponse(BaseModel):
    """Release/shipping email text with the fields it was built from"""
    reference_number: str
    customer_po: Optional[str] = None
    pickup_location: str
    ship_to_name: str
    ship_to_address: str
    item_lines: List[str] = Field(default_factory=list)
    content: str
