"""Transaction Services - inbound, outbound, adjustment and transfer orders"""

from .release_email import build_release_email, release_item_line
from .transaction_service import (
    TransactionService,
    add_business_days,
    is_status_valid_for_type,
    next_status_for_type,
)

__all__ = [
    "TransactionService",
    "add_business_days",
    "build_release_email",
    "is_status_valid_for_type",
    "next_status_for_type",
    "release_item_line",
]
