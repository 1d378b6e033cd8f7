"""
Inventory Calculator
All-inventory listing folded from the full transaction history
"""
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from inventory_app.core.exceptions import translate_db_error
from inventory_app.models.master_data import Item, Warehouse
from inventory_app.models.transactions import TransactionHeader
from inventory_app.models.views import INVENTORY_STATUSES
from inventory_app.schemas.inventory import InventoryRecord
from inventory_app.services.inventory.snapshot_reader import as_decimal

logger = logging.getLogger(__name__)

# Inbound is applied before Outbound on the same date
TYPE_ORDER = {"Inbound": 0, "Outbound": 1}

Key = Tuple[str, str, str]


class InventoryCalculator:
    """Computes on-hand, committed and on-order per item, warehouse and status"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def fold(
        item_names: Iterable[str],
        warehouses: Iterable[str],
        headers: Iterable[TransactionHeader],
    ) -> Dict[Key, InventoryRecord]:
        """
        Apply every transaction line to a zeroed item x warehouse x status grid

        Inbound Received adds to on_hand, Inbound Pending to on_order;
        Outbound Shipped subtracts from on_hand, Outbound Pending adds to
        committed; Adjustment Completed adds its signed quantity to on_hand.
        """
        warehouses = list(warehouses)
        inventory: Dict[Key, InventoryRecord] = {}
        for item_name in item_names:
            for warehouse in warehouses:
                for status in INVENTORY_STATUSES:
                    inventory[(item_name, warehouse, status)] = InventoryRecord(
                        item_name=item_name, warehouse=warehouse, inventory_status=status
                    )

        ordered = sorted(
            headers,
            key=lambda h: (h.transaction_date, TYPE_ORDER.get(h.transaction_type, 0)),
        )

        for header in ordered:
            for detail in header.details:
                status = detail.inventory_status or "Stock"
                warehouse = header.warehouse or ""
                key = (detail.item_name, warehouse, status)
                record = inventory.get(key)
                if record is None:
                    record = InventoryRecord(
                        item_name=detail.item_name, warehouse=warehouse, inventory_status=status
                    )
                    inventory[key] = record

                quantity = as_decimal(detail.quantity)
                if header.transaction_type == "Inbound":
                    if detail.status == "Received":
                        record.on_hand += quantity
                    elif detail.status == "Pending":
                        record.on_order += quantity
                elif header.transaction_type == "Outbound":
                    if detail.status == "Shipped":
                        record.on_hand -= quantity
                    elif detail.status == "Pending":
                        record.committed += quantity
                elif header.transaction_type == "Adjustment":
                    if detail.status == "Completed":
                        record.on_hand += quantity

        return inventory

    def calculate(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> List[InventoryRecord]:
        try:
            item_names = [name for (name,) in self.db.query(Item.item_name).all()]
            warehouses = [name for (name,) in self.db.query(Warehouse.common_name).all()]
            query = (
                self.db.query(TransactionHeader)
                .options(selectinload(TransactionHeader.details))
                .order_by(TransactionHeader.transaction_date.asc())
            )
            if as_of:
                query = query.filter(TransactionHeader.transaction_date <= as_of)
            headers = query.all()
        except SQLAlchemyError as e:
            logger.error(f"Error calculating inventory: {e}")
            raise translate_db_error(e, "calculate inventory")

        results = list(self.fold(item_names, warehouses, headers).values())

        if status:
            results = [r for r in results if r.inventory_status == status]
        if search:
            needle = search.lower()
            results = [
                r for r in results
                if needle in r.item_name.lower() or needle in r.warehouse.lower()
            ]

        logger.debug(f"Calculated {len(results)} inventory rows")
        return results
