"""
Common Schemas
Shared Pydantic models for common API structures
"""
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar('T')


class InventoryStatus(str, Enum):
    STOCK = "Stock"
    CONSIGNMENT = "Consignment"
    HOLD = "Hold"


class TransactionType(str, Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    ADJUSTMENT = "Adjustment"


class LineStatus(str, Enum):
    PENDING = "Pending"
    SHIPPED = "Shipped"
    RECEIVED = "Received"
    COMPLETED = "Completed"


class ReferenceType(str, Enum):
    SALES_ORDER = "Sales Order"
    PURCHASE_ORDER = "Purchase Order"
    TRANSFER_ORDER = "Transfer Order"
    INVENTORY_COUNT = "Inventory Count"
    OTHER = "Other"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response model

    Used for report tables that support paging, sorting and filtering
    """
    items: List[T] = Field(..., description="List of items for current page")
    total: int = Field(..., description="Total number of items after filtering")
    page: int = Field(..., description="Current page number (1-based)")
    page_size: int = Field(..., description="Number of items per page")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_previous: bool = Field(..., description="Whether there is a previous page")


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Used for all API error responses
    """
    error: str = Field(..., description="Error type or category")
    detail: str = Field(..., description="Human-readable error message")
    blocking_references: Optional[List[str]] = Field(
        None, description="References that block a delete"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "referential_integrity",
            "detail": "Cannot delete transaction. Related transactions exist: IB-100004",
            "blocking_references": ["IB-100004"]
        }
    })


class SuccessResponse(BaseModel):
    """Standard success response for operations that return no specific data"""
    success: bool = Field(True, description="Operation success flag")
    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional response data")
