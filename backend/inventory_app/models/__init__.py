"""
Inventory SQLAlchemy Models
Database models for the warehouse inventory API
"""

# Import all models to ensure they are registered with SQLAlchemy
from .master_data import (
    Registrant, ProductType, CaseType, UnitsOfUnits, Product, PackSize, Item, Warehouse
)
from .transactions import TransactionHeader, TransactionDetail
from .auth import Profile, UserSession, UserAction, ExcludedUser

__all__ = [
    "Registrant",
    "ProductType",
    "CaseType",
    "UnitsOfUnits",
    "Product",
    "PackSize",
    "Item",
    "Warehouse",
    "TransactionHeader",
    "TransactionDetail",
    "Profile",
    "UserSession",
    "UserAction",
    "ExcludedUser",
]
