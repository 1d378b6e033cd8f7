"""
Inventory API endpoints
Warehouse/item lookups, the physical count workflow and on-hand listing
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from inventory_app.api import deps
from inventory_app.models.auth import Profile
from inventory_app.schemas.common import InventoryStatus
from inventory_app.schemas.inventory import (
    AdjustmentRequest,
    CountStartRequest,
    CountStartResponse,
    InventoryRecord,
    ItemOption,
    VarianceRequest,
    VarianceResponse,
    WarehouseOption,
)
from inventory_app.schemas.transactions import TransactionHeaderResponse
from inventory_app.services.inventory import InventoryCalculator, InventoryCountService
from inventory_app.services.session_tracking import SessionContext, track_action

router = APIRouter()


@router.get("/warehouses", response_model=List[WarehouseOption])
def search_warehouses(
    search: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Warehouses whose common name contains the search text.
    """
    warehouses = InventoryCountService(db, current_user).search_warehouses(search)
    return [
        {"common_name": w.common_name, "location_id": w.location_id, "abbreviation": w.abbreviation}
        for w in warehouses
    ]


@router.get("/items", response_model=List[ItemOption])
def search_items(
    search: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Items whose name contains the search text, with their case size.
    """
    return InventoryCountService(db, current_user).search_items(search)


@router.post("/count/start", response_model=CountStartResponse)
def start_count(
    request: CountStartRequest,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Snapshot of the warehouse as of the count date and the pre-populated count lines.
    """
    snapshot, lines = InventoryCountService(db, current_user).start_count(request.warehouse, request.date)
    track_action(db, context, "start_count", {
        "warehouse": request.warehouse,
        "date": request.date.isoformat(),
        "lines": len(lines),
    })
    return {"warehouse": request.warehouse, "date": request.date, "snapshot": snapshot, "lines": lines}


@router.post("/count/variances", response_model=VarianceResponse)
def review_variances(
    request: VarianceRequest,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Variance per counted line plus pending transactions for the counted items.
    """
    variances, pending = InventoryCountService(db, current_user).review_variances(
        request.warehouse, request.date, request.lines
    )
    review = [v for v in variances if v.variance != 0]
    track_action(db, context, "complete_count", {
        "warehouse": request.warehouse,
        "date": request.date.isoformat(),
        "variances": len(review),
    })
    return {"variances": variances, "review": review, "pending_transactions": pending}


@router.post("/count/adjustment", response_model=TransactionHeaderResponse)
def generate_adjustment(
    request: AdjustmentRequest,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Book the reviewed variances as one Adjustment transaction.
    """
    adjustment = InventoryCountService(db, current_user).generate_adjustment(
        request.warehouse, request.date, request.variances
    )
    track_action(db, context, "generate_adjustment", {
        "warehouse": request.warehouse,
        "reference_number": adjustment["reference_number"],
    })
    return adjustment


@router.get("", response_model=List[InventoryRecord])
def list_inventory(
    inventory_status: Optional[InventoryStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    as_of: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    On hand, committed and on order per item, warehouse and inventory status.
    """
    records = InventoryCalculator(db).calculate(
        status=inventory_status.value if inventory_status else None,
        search=search,
        as_of=as_of,
    )
    track_action(db, context, "view_inventory", {"rows": len(records)})
    return records
