"""
Reports API endpoints
Standard inventory reports and the ad-hoc manual report builder
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from inventory_app.api import deps
from inventory_app.models.auth import Profile
from inventory_app.schemas.common import InventoryStatus, PaginatedResponse, SortDirection
from inventory_app.schemas.inventory import InventoryRecord
from inventory_app.schemas.reports import ManualReportRequest, ManualReportResponse, ViewInfo
from inventory_app.services.reporting import ManualReportService, ReportService, list_views, paginate_rows
from inventory_app.services.session_tracking import SessionContext, track_action

router = APIRouter()


@router.get("/customer")
def customer_report(
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Most recent transactions with their lines.
    """
    report = ReportService(db, current_user).customer_report()
    track_action(db, context, "run_customer_report", {"count": len(report["all_transactions"])})
    return report


@router.get("/item/{item_name:path}")
def item_report(
    item_name: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Inventory of one item by warehouse, with its transaction history.
    """
    report = ReportService(db, current_user).item_report(item_name)
    track_action(db, context, "run_item_report", {"item_name": item_name})
    return report


@router.get("/product/{product_name:path}")
def product_report(
    product_name: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    On-hand totals for every item of a product, with transaction history.
    """
    report = ReportService(db, current_user).product_report(product_name)
    track_action(db, context, "run_product_report", {"product_name": product_name})
    return report


@router.get("/warehouse/{warehouse:path}")
def warehouse_report(
    warehouse: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Inventory held at one warehouse, with its transaction history.
    """
    report = ReportService(db, current_user).warehouse_report(warehouse)
    track_action(db, context, "run_warehouse_report", {"warehouse": warehouse})
    return report


@router.get("/negative")
def negative_inventory_report(
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Item and warehouse combinations whose on-hand total is below zero.
    """
    report = ReportService(db, current_user).negative_inventory_report()
    track_action(db, context, "run_negative_report", {"count": len(report["negative_items"])})
    return report


@router.get("/all-inventory", response_model=PaginatedResponse[InventoryRecord])
def all_inventory_report(
    inventory_status: Optional[InventoryStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    sort_by: Optional[str] = None,
    sort_dir: SortDirection = SortDirection.ASC,
    filter: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Every item, warehouse and status from the transaction history, one page at a time.
    """
    rows = ReportService(db, current_user).all_inventory_report(
        status=inventory_status.value if inventory_status else None,
        search=search,
    )
    track_action(db, context, "view_reports", {"report": "all_inventory"})
    return paginate_rows(
        rows,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_dir=sort_dir.value,
        filter_text=filter,
    )


@router.get("/manual/views", response_model=List[ViewInfo])
def manual_report_views(
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Views and columns available to the manual report builder.
    """
    return list_views()


@router.post("/manual", response_model=ManualReportResponse)
def run_manual_report(
    request: ManualReportRequest,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Run an ad-hoc query over a whitelisted view.
    """
    result = ManualReportService(db).execute(request.view, request.columns, request.where)
    track_action(db, context, "view_reports", {"report": "manual", "view": request.view})
    return result
