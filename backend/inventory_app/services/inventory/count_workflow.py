"""
Inventory Count Reconciliation
Physical count against the calculated snapshot, variances and the
adjustment transaction that books them.

Workflow steps, strictly in order and back-navigable:
    warehouse -> date -> count -> variance -> adjustment
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from inventory_app.core.exceptions import (
    BusinessLogicError, NotFoundError, ValidationError, translate_db_error
)
from inventory_app.models.auth import Profile
from inventory_app.models.master_data import Item, PackSize, Warehouse
from inventory_app.models.transactions import TransactionHeader
from inventory_app.schemas.common import InventoryStatus
from inventory_app.schemas.inventory import CountLine, CountStep, SnapshotRow, VarianceLine
from inventory_app.services.inventory.snapshot_reader import (
    STATUS_COLUMNS, InventorySnapshotReader, as_decimal
)
from inventory_app.services.transactions.transaction_service import TransactionService

logger = logging.getLogger(__name__)

STEP_ORDER = [
    CountStep.WAREHOUSE,
    CountStep.DATE,
    CountStep.COUNT,
    CountStep.VARIANCE,
    CountStep.ADJUSTMENT,
]


def calculate_variances(lines: List[CountLine], snapshot: List[SnapshotRow]) -> List[VarianceLine]:
    """
    variance = physical - calculated for every count line

    calculated is the snapshot balance for the line's item and status, or 0
    when the item is absent from the snapshot.
    """
    by_item = {row.item_name: row for row in snapshot}
    variances = []
    for line in lines:
        status = InventoryStatus(line.inventory_status)
        row = by_item.get(line.item_name)
        calculated = getattr(row, STATUS_COLUMNS[status.value]) if row else Decimal("0")
        physical = as_decimal(line.quantity)
        variances.append(VarianceLine(
            item_name=line.item_name,
            inventory_status=status,
            physical_count=physical,
            calculated_count=calculated,
            variance=physical - calculated,
        ))
    return variances


def initial_count_lines(snapshot: List[SnapshotRow]) -> List[CountLine]:
    """One zero-quantity line per item and status with a positive balance"""
    lines = []
    for row in snapshot:
        for status, column in STATUS_COLUMNS.items():
            if getattr(row, column) > 0:
                lines.append(CountLine(
                    item_name=row.item_name,
                    quantity=Decimal("0"),
                    inventory_status=InventoryStatus(status),
                    notes="",
                    uom_per_each=row.uom_per_each,
                    case_count=Decimal("0"),
                ))
    return lines


class InventoryCountService:
    """Database side of the count workflow"""

    def __init__(self, db: Session, current_user: Optional[Profile] = None):
        self.db = db
        self.current_user = current_user
        self.snapshot_reader = InventorySnapshotReader(db)

    def search_warehouses(self, search: Optional[str] = None) -> List[Warehouse]:
        query = self.db.query(Warehouse)
        if search:
            query = query.filter(func.lower(Warehouse.common_name).contains(search.lower()))
        try:
            return query.order_by(Warehouse.common_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching warehouses: {e}")
            raise translate_db_error(e, "fetch warehouses")

    def search_items(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        query = (
            self.db.query(Item.item_name, PackSize.uom_per_each)
            .outerjoin(PackSize, PackSize.pack_size == Item.pack_size)
        )
        if search:
            query = query.filter(func.lower(Item.item_name).contains(search.lower()))
        try:
            rows = query.order_by(Item.item_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching items: {e}")
            raise translate_db_error(e, "fetch items")
        return [
            {"item_name": name, "uom_per_each": as_decimal(uom) if uom else None}
            for name, uom in rows
        ]

    def get_warehouse(self, warehouse: str) -> Warehouse:
        found = self.db.get(Warehouse, warehouse)
        if found is None:
            raise NotFoundError(f"Warehouse {warehouse} not found")
        return found

    def lookup_item(self, item_name: str) -> Dict[str, Any]:
        row = (
            self.db.query(Item.item_name, PackSize.uom_per_each)
            .outerjoin(PackSize, PackSize.pack_size == Item.pack_size)
            .filter(Item.item_name == item_name)
            .first()
        )
        if row is None:
            raise NotFoundError(f"Item {item_name} not found")
        return {"item_name": row[0], "uom_per_each": as_decimal(row[1]) if row[1] else None}

    @staticmethod
    def validate_count_date(count_date: date, today: Optional[date] = None) -> date:
        """Counts are taken as of 23:59:59 of a date that is not in the future"""
        today = today or date.today()
        if count_date > today:
            raise ValidationError("Count date cannot be in the future")
        return count_date

    def start_count(self, warehouse: str, count_date: date) -> Tuple[List[SnapshotRow], List[CountLine]]:
        self.get_warehouse(warehouse)
        self.validate_count_date(count_date)
        snapshot = self.snapshot_reader.get_latest_snapshot(warehouse, count_date)
        lines = initial_count_lines(snapshot)
        logger.info(f"Started count for {warehouse} as of {count_date}: {len(lines)} lines pre-populated")
        return snapshot, lines

    def get_pending_transactions(
        self,
        warehouse: str,
        count_date: date,
        item_names: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Headers at the warehouse dated on or before count_date with Pending lines"""
        try:
            headers = (
                self.db.query(TransactionHeader)
                .options(selectinload(TransactionHeader.details))
                .filter(
                    TransactionHeader.warehouse == warehouse,
                    TransactionHeader.transaction_date <= count_date,
                )
                .order_by(TransactionHeader.transaction_date.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching pending transactions: {e}")
            raise translate_db_error(e, "fetch pending transactions")

        wanted = set(item_names) if item_names is not None else None
        pending = []
        for header in headers:
            details = [
                d for d in header.details
                if d.status == "Pending" and (wanted is None or d.item_name in wanted)
            ]
            if not details:
                continue
            pending.append({
                "transaction_id": header.transaction_id,
                "transaction_type": header.transaction_type,
                "transaction_date": header.transaction_date,
                "warehouse": header.warehouse,
                "reference_type": header.reference_type,
                "reference_number": header.reference_number,
                "related_transaction_id": header.related_transaction_id,
                "details": [
                    {
                        "detail_id": d.detail_id,
                        "transaction_id": d.transaction_id,
                        "item_name": d.item_name,
                        "quantity": as_decimal(d.quantity),
                        "inventory_status": d.inventory_status,
                        "status": d.status,
                        "lot_number": d.lot_number,
                        "comments": d.comments,
                    }
                    for d in details
                ],
            })
        return pending

    def review_variances(
        self,
        warehouse: str,
        count_date: date,
        lines: List[CountLine],
    ) -> Tuple[List[VarianceLine], List[Dict[str, Any]]]:
        """Variances for the count plus the pending lines that may explain them"""
        if not lines:
            raise ValidationError("At least one count line is required")
        self.validate_count_date(count_date)
        snapshot = self.snapshot_reader.get_latest_snapshot(warehouse, count_date)
        variances = calculate_variances(lines, snapshot)
        pending = self.get_pending_transactions(
            warehouse, count_date, [line.item_name for line in lines]
        )
        return variances, pending

    def verify_variances(
        self,
        warehouse: str,
        count_date: date,
        variances: List[VarianceLine],
    ) -> List[VarianceLine]:
        """
        Recompute submitted variances against the snapshot as of count_date

        Lines whose calculated count or variance disagree with the snapshot are
        rejected, so an adjustment only ever books physical - calculated.
        """
        self.validate_count_date(count_date)
        snapshot = self.snapshot_reader.get_latest_snapshot(warehouse, count_date)
        lines = [
            CountLine(item_name=v.item_name, quantity=v.physical_count, inventory_status=v.inventory_status)
            for v in variances
        ]
        verified = calculate_variances(lines, snapshot)
        for submitted, expected in zip(variances, verified):
            if (submitted.calculated_count != expected.calculated_count
                    or submitted.variance != expected.variance):
                logger.warning(
                    f"Rejected variance for {submitted.item_name} ({expected.inventory_status.value}) "
                    f"at {warehouse}: submitted {submitted.variance}, expected {expected.variance}"
                )
                raise ValidationError(
                    f"Variance for {submitted.item_name} does not match the count; "
                    f"expected {expected.variance} "
                    f"({expected.physical_count} counted, {expected.calculated_count} calculated)"
                )
        return verified

    def generate_adjustment(
        self,
        warehouse: str,
        count_date: date,
        variances: List[VarianceLine],
    ) -> Dict[str, Any]:
        """
        Book non-zero variances as one Adjustment transaction

        Variances are checked against the snapshot before anything is
        written. The header and its details are separate commits. A list
        holding only zero variances still produces a header with no lines.
        """
        if not variances:
            raise ValidationError("No variances to adjust")
        variances = self.verify_variances(warehouse, count_date, variances)

        transactions = TransactionService(self.db, self.current_user)
        header = transactions.create_header(
            transaction_type="Adjustment",
            transaction_date=count_date,
            warehouse=warehouse,
            reference_type="Inventory Count",
            comments=f"Inventory count adjustment for {warehouse} as of {count_date.isoformat()}",
        )

        lines = [
            {
                "item_name": v.item_name,
                "quantity": v.variance,
                "inventory_status": InventoryStatus(v.inventory_status).value,
                "status": "Completed",
                "comments": "Count overage" if v.variance > 0 else "Count shortage",
            }
            for v in variances
            if v.variance != 0
        ]
        if not lines:
            logger.warning(f"Adjustment {header.reference_number} created with no variance lines")
        transactions.add_details(header, lines)

        logger.info(
            f"Generated adjustment {header.reference_number} for {warehouse} "
            f"as of {count_date}: {len(lines)} lines"
        )
        return transactions.get_transaction(header.transaction_id)


class CountWorkflow:
    """
    Stateful driver for one reconciliation session

    Each forward method validates its own step and advances; back() returns
    to the previous step keeping everything entered so far.
    """

    def __init__(self, service: InventoryCountService):
        self.service = service
        self.step = CountStep.WAREHOUSE
        self.warehouse: Optional[str] = None
        self.count_date: Optional[date] = None
        self.snapshot: List[SnapshotRow] = []
        self.lines: List[CountLine] = []
        self.variances: List[VarianceLine] = []
        self.pending_transactions: List[Dict[str, Any]] = []
        self.adjustment: Optional[Dict[str, Any]] = None

    def _require_step(self, step: CountStep) -> None:
        if self.step != step:
            raise BusinessLogicError(f"Count workflow is at step '{self.step.value}', not '{step.value}'")

    def back(self) -> CountStep:
        index = STEP_ORDER.index(self.step)
        if index > 0:
            self.step = STEP_ORDER[index - 1]
        return self.step

    # warehouse

    def select_warehouse(self, warehouse: str) -> None:
        self._require_step(CountStep.WAREHOUSE)
        self.warehouse = self.service.get_warehouse(warehouse).common_name
        self.step = CountStep.DATE

    # date

    def select_date(self, count_date: date) -> None:
        self._require_step(CountStep.DATE)
        self.count_date = self.service.validate_count_date(count_date)
        self.snapshot, self.lines = self.service.start_count(self.warehouse, self.count_date)
        self.step = CountStep.COUNT

    # count

    def _line(self, index: int) -> CountLine:
        self._require_step(CountStep.COUNT)
        if index < 0 or index >= len(self.lines):
            raise ValidationError(f"No count line at position {index}")
        return self.lines[index]

    def set_quantity(self, index: int, quantity) -> CountLine:
        line = self._line(index)
        line.quantity = as_decimal(quantity)
        if line.uom_per_each:
            line.case_count = line.quantity / line.uom_per_each
        return line

    def set_case_count(self, index: int, case_count) -> CountLine:
        line = self._line(index)
        line.case_count = as_decimal(case_count)
        if line.uom_per_each:
            line.quantity = line.case_count * line.uom_per_each
        return line

    def set_inventory_status(self, index: int, status: str) -> CountLine:
        line = self._line(index)
        line.inventory_status = InventoryStatus(status)
        return line

    def set_notes(self, index: int, notes: str) -> CountLine:
        line = self._line(index)
        line.notes = notes
        return line

    def add_item(self, item_name: str) -> CountLine:
        self._require_step(CountStep.COUNT)
        item = self.service.lookup_item(item_name)
        line = CountLine(
            item_name=item["item_name"],
            quantity=Decimal("0"),
            inventory_status=InventoryStatus.STOCK,
            notes="",
            uom_per_each=item["uom_per_each"],
            case_count=Decimal("0"),
        )
        self.lines.append(line)
        return line

    def remove_line(self, index: int) -> None:
        self._line(index)
        del self.lines[index]

    def complete_count(self) -> List[VarianceLine]:
        self._require_step(CountStep.COUNT)
        if not self.lines:
            raise ValidationError("At least one count line is required")
        self.variances = calculate_variances(self.lines, self.snapshot)
        self.pending_transactions = self.service.get_pending_transactions(
            self.warehouse, self.count_date, [line.item_name for line in self.lines]
        )
        self.step = CountStep.VARIANCE
        return self.variances

    # variance

    @property
    def review_variances(self) -> List[VarianceLine]:
        """Variances shown for review; zero lines stay in self.variances"""
        return [v for v in self.variances if v.variance != 0]

    def confirm_variances(self) -> None:
        self._require_step(CountStep.VARIANCE)
        self.step = CountStep.ADJUSTMENT

    # adjustment

    def generate_adjustment(self) -> Dict[str, Any]:
        self._require_step(CountStep.ADJUSTMENT)
        self.adjustment = self.service.generate_adjustment(self.warehouse, self.count_date, self.variances)
        return self.adjustment
