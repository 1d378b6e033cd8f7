"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter

from inventory_app.api.v1 import auth, inventory, master_data, reports, transactions

api_router = APIRouter()

# Authentication routes
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])

# Master data routes
api_router.include_router(master_data.router, prefix="/master-data", tags=["master-data"])

# Inventory and count reconciliation routes
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])

# Transaction routes
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])

# Reports routes
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
