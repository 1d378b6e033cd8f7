"""
Report Service
Customer, item, product, warehouse, negative-inventory and all-inventory reports
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.config import settings
from inventory_app.core.exceptions import NotFoundError, translate_db_error
from inventory_app.models.auth import Profile
from inventory_app.models.master_data import Item, Product, Warehouse
from inventory_app.models.views import inventory_view, transaction_full_view
from inventory_app.services.inventory.inventory_calculator import InventoryCalculator
from inventory_app.services.inventory.snapshot_reader import as_decimal
from inventory_app.services.transactions.transaction_service import TransactionService

logger = logging.getLogger(__name__)

# inventory_view column for each (measure, status) of a breakdown
BREAKDOWN_COLUMNS = {
    "on_hand": {
        "total": "On Hand: Total",
        "stock": "On Hand: Stock",
        "consign": "On Hand: Consignment",
        "hold": "On Hand: Hold",
    },
    "inbound": {
        "total": "Inbound: Total",
        "stock": "Inbound: Stock",
        "consign": "Inbound: Consignment",
        "hold": "Inbound: Hold",
    },
    "scheduled_outbound": {
        "total": "Scheduled Outbound: Total",
        "stock": "Scheduled Outbound: Stock",
        "consign": "Scheduled Outbound: Consign",
        "hold": "Scheduled Outbound: Hold",
    },
    "future_inventory": {
        "total": "Future Inventory: Total",
        "stock": "Future Inventory: Stock",
        "consign": "Future Inventory: Consign",
        "hold": "Future Inventory: Hold",
    },
}


def _breakdown(row: Dict[str, Any], measure: str) -> Dict[str, Decimal]:
    return {part: as_decimal(row.get(column)) for part, column in BREAKDOWN_COLUMNS[measure].items()}


def _empty_breakdown() -> Dict[str, Decimal]:
    return {"total": Decimal("0"), "stock": Decimal("0"), "consign": Decimal("0"), "hold": Decimal("0")}


def dominant_status(row: Dict[str, Any]) -> str:
    """Stock, then Consignment, then Hold: the first with a positive balance"""
    if as_decimal(row.get("On Hand: Stock")) > 0:
        return "Stock"
    if as_decimal(row.get("On Hand: Consignment")) > 0:
        return "Consignment"
    if as_decimal(row.get("On Hand: Hold")) > 0:
        return "Hold"
    return "Stock"


class ReportService:
    """Read-only reports over inventory_view and vw_transaction_full"""

    def __init__(self, db: Session, current_user: Optional[Profile] = None):
        self.db = db
        self.current_user = current_user

    def _inventory_summary(
        self,
        item: Optional[str] = None,
        items: Optional[List[str]] = None,
        warehouse: Optional[str] = None,
        negative: bool = False,
    ) -> List[Dict[str, Any]]:
        view = inventory_view()
        stmt = select(view)
        if item:
            stmt = stmt.where(view.c["Item Name"] == item)
        if items is not None:
            stmt = stmt.where(view.c["Item Name"].in_(items))
        if warehouse:
            stmt = stmt.where(view.c["Warehouse"] == warehouse)
        if negative:
            stmt = stmt.where(view.c["On Hand: Total"] < 0)
        stmt = stmt.order_by(view.c["Item Name"], view.c["Warehouse"])

        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching inventory summary: {e}")
            raise translate_db_error(e, "fetch inventory summary")

        summary = []
        for row in rows:
            record = dict(row._mapping)
            for column, value in record.items():
                if column not in ("Item Name", "Warehouse", "Date"):
                    record[column] = as_decimal(value)
            summary.append(record)
        return summary

    def _view_rows(self, **filters) -> List[Dict[str, Any]]:
        view = transaction_full_view()
        stmt = select(view)
        if "item_name" in filters:
            stmt = stmt.where(view.c.item_name == filters["item_name"])
        if "item_names" in filters:
            stmt = stmt.where(view.c.item_name.in_(filters["item_names"]))
        if "warehouse" in filters:
            stmt = stmt.where(view.c.warehouse == filters["warehouse"])
        stmt = stmt.order_by(view.c.transaction_date.desc(), view.c.header_created_at.desc())

        try:
            return [dict(row._mapping) for row in self.db.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching transactions for report: {e}")
            raise translate_db_error(e, "fetch transactions")

    @staticmethod
    def _transaction_line(row: Dict[str, Any], extended: bool = True) -> Dict[str, Any]:
        """One view row as a transaction carrying its single detail"""
        line = {
            "transaction_id": row["transaction_id"],
            "transaction_type": row["transaction_type"],
            "transaction_date": row["transaction_date"],
            "reference_number": row["reference_number"],
            "warehouse": row["warehouse"],
            "customer_name": row["customer_name"],
        }
        if extended:
            line.update({
                "customer_po": row["customer_po"],
                "shipment_carrier": row["shipment_carrier"],
                "shipping_document": row["shipping_document"],
                "comments": row["header_comments"],
            })
        line["details"] = [{
            "detail_id": row["detail_id"],
            "item_name": row["item_name"],
            "quantity": as_decimal(row["quantity"]),
            "inventory_status": row["inventory_status"],
            "status": row["detail_status"],
            "lot_number": row["lot_number"],
            "comments": row["detail_comments"],
        }]
        return line

    # 1) Customer report

    def customer_report(self, limit: Optional[int] = None) -> Dict[str, Any]:
        transactions = TransactionService(self.db, self.current_user).list_transactions(
            limit=limit or settings.CUSTOMER_REPORT_LIMIT
        )
        return {"all_transactions": transactions}

    # 2) Item report

    def item_report(self, item_name: str) -> Dict[str, Any]:
        if self.db.get(Item, item_name) is None:
            raise NotFoundError(f"Item {item_name} not found")

        summary = self._inventory_summary(item=item_name)
        by_warehouse = [
            {
                "warehouse": row["Warehouse"],
                "on_hand": _breakdown(row, "on_hand"),
                "inbound": _breakdown(row, "inbound"),
                "scheduled_outbound": _breakdown(row, "scheduled_outbound"),
                "future_inventory": _breakdown(row, "future_inventory"),
            }
            for row in summary
        ]

        total_on_hand = _empty_breakdown()
        for entry in by_warehouse:
            for part in total_on_hand:
                total_on_hand[part] += entry["on_hand"][part]

        transactions = [
            self._transaction_line(row)
            for row in self._view_rows(item_name=item_name)
        ]
        return {
            "item_name": item_name,
            "total_on_hand": total_on_hand,
            "by_warehouse": by_warehouse,
            "transactions": transactions,
            "transaction_count": len(transactions),
        }

    # 3) Product report

    def product_report(self, product_name: str) -> Dict[str, Any]:
        if self.db.get(Product, product_name) is None:
            raise NotFoundError(f"Product {product_name} not found")

        item_names = [
            name for (name,) in
            self.db.query(Item.item_name).filter(Item.product_name == product_name).all()
        ]

        items: Dict[str, Dict[str, Any]] = {}
        for row in self._inventory_summary(items=item_names):
            entry = items.setdefault(row["Item Name"], {
                "item_name": row["Item Name"],
                "total_on_hand": _empty_breakdown(),
                "by_warehouse": [],
            })
            on_hand = _breakdown(row, "on_hand")
            for part in entry["total_on_hand"]:
                entry["total_on_hand"][part] += on_hand[part]
            entry["by_warehouse"].append({"warehouse": row["Warehouse"], "on_hand": on_hand})

        transactions = [
            self._transaction_line(row, extended=False)
            for row in self._view_rows(item_names=item_names)
        ]
        return {
            "product_name": product_name,
            "items": list(items.values()),
            "transactions": transactions,
            "transaction_count": len(transactions),
        }

    # 4) Warehouse report

    def warehouse_report(self, warehouse: str) -> Dict[str, Any]:
        if self.db.get(Warehouse, warehouse) is None:
            raise NotFoundError(f"Warehouse {warehouse} not found")

        items = [
            {
                "item_name": row["Item Name"],
                "inventory_status": dominant_status(row),
                "on_hand": _breakdown(row, "on_hand"),
                "inbound": _breakdown(row, "inbound"),
                "scheduled_outbound": _breakdown(row, "scheduled_outbound"),
                "future_inventory": _breakdown(row, "future_inventory"),
            }
            for row in self._inventory_summary(warehouse=warehouse)
        ]
        return {
            "warehouse_name": warehouse,
            "items": items,
            "transactions": self._view_rows(warehouse=warehouse),
        }

    # 5) Negative inventory report

    def negative_inventory_report(self) -> Dict[str, Any]:
        negative_items = [
            {
                "item_name": row["Item Name"],
                "warehouse": row["Warehouse"],
                "on_hand_total": row["On Hand: Total"],
            }
            for row in self._inventory_summary(negative=True)
        ]
        return {"negative_items": negative_items}

    # 6) All inventory

    def all_inventory_report(self, status: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        records = InventoryCalculator(self.db).calculate(status=status, search=search)
        return [record.model_dump() for record in records]
