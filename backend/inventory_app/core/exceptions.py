"""
Custom Application Exceptions
"""
from typing import List, Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

# SQLSTATE raised by row-level-security / privilege failures
PERMISSION_DENIED_SQLSTATE = "42501"


class InventoryAppException(Exception):
    """Base exception for the inventory application"""
    status_code = 500
    error_type = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryAppException):
    """Raised when data validation fails"""
    status_code = 400
    error_type = "validation_error"


class NotFoundError(InventoryAppException):
    """Raised when a requested record does not exist"""
    status_code = 404
    error_type = "not_found"


class InsufficientPermissionsError(InventoryAppException):
    """Raised when user lacks required permissions"""
    status_code = 403
    error_type = "permission_denied"


class BusinessLogicError(InventoryAppException):
    """Raised when business rules are violated"""
    status_code = 409
    error_type = "business_rule"


class ReferentialIntegrityError(BusinessLogicError):
    """Raised when a delete is blocked by dependent records"""
    error_type = "referential_integrity"

    def __init__(self, message: str, blocking_references: Optional[List[str]] = None):
        super().__init__(message)
        self.blocking_references = blocking_references or []


class DataAccessError(InventoryAppException):
    """Raised when a database call fails"""
    error_type = "data_access"


class InventoryFetchError(DataAccessError):
    """Raised when the inventory snapshot cannot be read"""


def is_permission_denied(exc: BaseException) -> bool:
    """True when the driver error carries the permission-denied SQLSTATE"""
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        return code == PERMISSION_DENIED_SQLSTATE
    return False


def translate_db_error(exc: SQLAlchemyError, action: str, permission_message: str = None) -> InventoryAppException:
    """
    Map a SQLAlchemy failure to the application taxonomy

    Permission-denied errors get their own message; everything else becomes a
    generic "Failed to <action>" data access error.
    """
    if is_permission_denied(exc):
        return InsufficientPermissionsError(
            permission_message or "You do not have permission to perform this action"
        )
    return DataAccessError(f"Failed to {action}")
