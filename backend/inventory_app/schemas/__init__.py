"""
Inventory Pydantic Schemas
Request and response models for the API
"""

from .common import (
    InventoryStatus,
    LineStatus,
    ReferenceType,
    TransactionType,
    ErrorResponse,
    PaginatedResponse,
    SuccessResponse,
)
