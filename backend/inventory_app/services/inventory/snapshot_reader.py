"""
Inventory Snapshot Reader
Latest on-hand balance per item for a warehouse as of a date
"""
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.exceptions import (
    InsufficientPermissionsError, InventoryFetchError, is_permission_denied
)
from inventory_app.models.master_data import Item, PackSize
from inventory_app.models.views import inventory_snapshot_by_date_view
from inventory_app.schemas.inventory import SnapshotRow

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to fetch inventory items"

# Snapshot column carrying the on-hand balance of each inventory status
STATUS_COLUMNS = {
    "Stock": "on_hand_stock",
    "Consignment": "on_hand_consign",
    "Hold": "on_hand_hold",
}


def as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class InventorySnapshotReader:
    """
    Reads transactions_inventory_snapshot_by_date

    Any read failure aborts the whole snapshot; callers never see a partial
    result.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fetch_error(self, e: SQLAlchemyError):
        logger.error(f"Error fetching inventory snapshot: {e}")
        if is_permission_denied(e):
            return InsufficientPermissionsError("You do not have permission to view inventory")
        return InventoryFetchError(FETCH_ERROR_MESSAGE)

    def get_uom_map(self) -> Dict[str, Optional[Decimal]]:
        """item_name -> uom_per_each of its pack size (None when unknown)"""
        try:
            rows = (
                self.db.query(Item.item_name, PackSize.uom_per_each)
                .outerjoin(PackSize, PackSize.pack_size == Item.pack_size)
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fetch_error(e)

        return {
            name: (as_decimal(uom) if uom else None)
            for name, uom in rows
        }

    def get_latest_snapshot(self, warehouse: str, as_of: date) -> List[SnapshotRow]:
        """
        Latest snapshot row per item dated on or before as_of

        Items whose Stock, Consign and Hold balances are all zero are dropped.
        """
        view = inventory_snapshot_by_date_view()
        stmt = (
            select(view)
            .where(view.c.warehouse == warehouse, view.c.transaction_date <= as_of)
            .order_by(view.c.item_name.asc(), view.c.transaction_date.desc())
        )

        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            raise self._fetch_error(e)

        uom_map = self.get_uom_map()

        latest: Dict[str, SnapshotRow] = {}
        for row in rows:
            m = row._mapping
            if m["item_name"] in latest:
                continue
            latest[m["item_name"]] = SnapshotRow(
                item_name=m["item_name"],
                warehouse=m["warehouse"],
                transaction_date=m["transaction_date"],
                on_hand_stock=as_decimal(m["On Hand: Stock"]),
                on_hand_consign=as_decimal(m["On Hand: Consign"]),
                on_hand_hold=as_decimal(m["On Hand: Hold"]),
                on_hand_total=as_decimal(m["On Hand: Total"]),
                uom_per_each=uom_map.get(m["item_name"]),
            )

        snapshot = [
            entry for entry in latest.values()
            if entry.on_hand_stock != 0 or entry.on_hand_consign != 0 or entry.on_hand_hold != 0
        ]
        logger.debug(f"Snapshot for {warehouse} as of {as_of}: {len(snapshot)} items")
        return snapshot
