"""
Inventory Views
Read-only selectables over transaction history.

vw_transaction_full, inventory_view and transactions_inventory_snapshot_by_date
are built as SQLAlchemy Core subqueries so they run unchanged on PostgreSQL
and on SQLite. Column labels match the names the reports and the manual
report whitelist expose.
"""
from datetime import date
from typing import Optional

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import aliased

from inventory_app.models.auth import Profile
from inventory_app.models.transactions import TransactionHeader, TransactionDetail

INVENTORY_STATUSES = ("Stock", "Consignment", "Hold")


def _inventory_status():
    return func.coalesce(TransactionDetail.inventory_status, "Stock")


def on_hand_effect():
    """Signed on-hand contribution of one detail line"""
    h, d = TransactionHeader, TransactionDetail
    return case(
        (and_(h.transaction_type == "Inbound", d.status == "Received"), d.quantity),
        (and_(h.transaction_type == "Outbound", d.status == "Shipped"), -d.quantity),
        (and_(h.transaction_type == "Adjustment", d.status == "Completed"), d.quantity),
        else_=0,
    )


def _pending_effect(transaction_type: str):
    h, d = TransactionHeader, TransactionDetail
    return case(
        (and_(h.transaction_type == transaction_type, d.status == "Pending"), d.quantity),
        else_=0,
    )


def _sum(expr, status: Optional[str] = None):
    if status is not None:
        expr = case((_inventory_status() == status, expr), else_=0)
    return func.coalesce(func.sum(expr), 0)


def transaction_full_view():
    """Header joined to its details, one row per detail line"""
    h, d = TransactionHeader, TransactionDetail
    creator = aliased(Profile)
    editor = aliased(Profile)

    return (
        select(
            h.transaction_id,
            h.transaction_type,
            h.transaction_date,
            h.reference_type,
            h.reference_number,
            h.customer_po,
            h.customer_name,
            h.warehouse,
            h.shipment_carrier,
            h.shipping_document,
            h.comments.label("header_comments"),
            h.created_at.label("header_created_at"),
            h.last_updated_at.label("header_last_updated_at"),
            h.related_transaction_id,
            h.created_by,
            h.last_edited_by,
            creator.name.label("created_by_name"),
            editor.name.label("last_edited_by_name"),
            d.detail_id,
            d.item_name,
            d.quantity,
            d.inventory_status,
            d.lot_number,
            d.comments.label("detail_comments"),
            d.status.label("detail_status"),
            d.created_at.label("detail_created_at"),
            d.last_updated_at.label("detail_last_updated_at"),
        )
        .select_from(h)
        .outerjoin(d, d.transaction_id == h.transaction_id)
        .outerjoin(creator, creator.user_id == h.created_by)
        .outerjoin(editor, editor.user_id == h.last_edited_by)
        .subquery("vw_transaction_full")
    )


def inventory_view(as_of: Optional[date] = None):
    """
    Per item and warehouse inventory summary

    On Hand counts every settled line; Inbound and Scheduled Outbound are
    pending lines; Future Inventory = On Hand + Inbound - Scheduled Outbound.
    "Inventory As Of Date" is the on-hand total restricted to lines dated on
    or before as_of (today by default).
    """
    h, d = TransactionHeader, TransactionDetail
    as_of = as_of or date.today()
    on_hand = on_hand_effect()
    inbound = _pending_effect("Inbound")
    outbound = _pending_effect("Outbound")
    future = on_hand + inbound - outbound

    return (
        select(
            d.item_name.label("Item Name"),
            h.warehouse.label("Warehouse"),
            func.max(h.transaction_date).label("Date"),
            _sum(case((h.transaction_date <= as_of, on_hand), else_=0)).label("Inventory As Of Date"),
            _sum(on_hand).label("On Hand: Total"),
            _sum(on_hand, "Stock").label("On Hand: Stock"),
            _sum(on_hand, "Consignment").label("On Hand: Consignment"),
            _sum(on_hand, "Hold").label("On Hand: Hold"),
            _sum(inbound).label("Inbound: Total"),
            _sum(inbound, "Stock").label("Inbound: Stock"),
            _sum(inbound, "Consignment").label("Inbound: Consignment"),
            _sum(inbound, "Hold").label("Inbound: Hold"),
            _sum(outbound).label("Scheduled Outbound: Total"),
            _sum(outbound, "Stock").label("Scheduled Outbound: Stock"),
            _sum(outbound, "Consignment").label("Scheduled Outbound: Consign"),
            _sum(outbound, "Hold").label("Scheduled Outbound: Hold"),
            _sum(future).label("Future Inventory: Total"),
            _sum(future, "Stock").label("Future Inventory: Stock"),
            _sum(future, "Consignment").label("Future Inventory: Consign"),
            _sum(future, "Hold").label("Future Inventory: Hold"),
        )
        .select_from(h)
        .join(d, d.transaction_id == h.transaction_id)
        .group_by(d.item_name, h.warehouse)
        .subquery("inventory_view")
    )


def inventory_snapshot_by_date_view():
    """
    Cumulative on-hand per item, warehouse and transaction date

    Each row is the running balance after every line dated on or before its
    transaction_date.
    """
    h, d = TransactionHeader, TransactionDetail
    on_hand = on_hand_effect()

    daily = (
        select(
            d.item_name.label("item_name"),
            h.warehouse.label("warehouse"),
            h.transaction_date.label("transaction_date"),
            _sum(on_hand, "Stock").label("stock_delta"),
            _sum(on_hand, "Consignment").label("consign_delta"),
            _sum(on_hand, "Hold").label("hold_delta"),
        )
        .select_from(h)
        .join(d, d.transaction_id == h.transaction_id)
        .group_by(d.item_name, h.warehouse, h.transaction_date)
        .subquery("daily_inventory_delta")
    )

    def running(expr):
        return func.sum(expr).over(
            partition_by=(daily.c.item_name, daily.c.warehouse),
            order_by=daily.c.transaction_date,
        )

    return (
        select(
            daily.c.item_name,
            daily.c.warehouse,
            daily.c.transaction_date,
            running(daily.c.stock_delta).label("On Hand: Stock"),
            running(daily.c.consign_delta).label("On Hand: Consign"),
            running(daily.c.hold_delta).label("On Hand: Hold"),
            running(daily.c.stock_delta + daily.c.consign_delta + daily.c.hold_delta).label("On Hand: Total"),
        )
        .subquery("transactions_inventory_snapshot_by_date")
    )
