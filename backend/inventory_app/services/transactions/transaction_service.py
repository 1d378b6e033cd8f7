"""
Transaction Service
Inbound, outbound, adjustment and transfer transactions
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.config import settings
from inventory_app.core.exceptions import (
    BusinessLogicError, NotFoundError, ReferentialIntegrityError, ValidationError,
    translate_db_error
)
from inventory_app.models.auth import Profile
from inventory_app.models.master_data import Item, PackSize, Warehouse
from inventory_app.models.transactions import TransactionDetail, TransactionHeader
from inventory_app.models.views import transaction_full_view
from inventory_app.schemas.transactions import (
    TransactionCreate, TransactionDetailUpdate, TransactionFilter, TransactionHeaderUpdate,
    TransactionItemIn, TransferCreate
)
from inventory_app.services.transactions.release_email import build_release_email

logger = logging.getLogger(__name__)

REFERENCE_PREFIXES = {
    "Inbound": "IB-",
    "Outbound": "OB-",
    "Adjustment": "ADJ-",
}

ALLOWED_STATUSES = {
    "Inbound": ("Pending", "Received"),
    "Outbound": ("Pending", "Shipped"),
    "Adjustment": ("Pending", "Completed"),
}

NEXT_STATUS = {
    "Inbound": "Received",
    "Outbound": "Shipped",
    "Adjustment": "Completed",
}

HEADER_EDITABLE_FIELDS = (
    "transaction_date", "warehouse", "shipment_carrier", "shipping_document",
    "customer_po", "customer_name", "comments",
)


def _value(enum_or_str) -> Optional[str]:
    return getattr(enum_or_str, "value", enum_or_str)


def is_status_valid_for_type(status: str, transaction_type: str) -> bool:
    allowed = ALLOWED_STATUSES.get(_value(transaction_type))
    if allowed is None:
        return True
    return _value(status) in allowed


def next_status_for_type(transaction_type: str) -> Optional[str]:
    return NEXT_STATUS.get(_value(transaction_type))


def add_business_days(start: date, days: int) -> date:
    """Date `days` working days after start, skipping Saturdays and Sundays"""
    current = start
    added = 0
    while added < days:
        current += timedelta(days=1)
        if current.weekday() < 5:
            added += 1
    return current


def parse_reference_sequence(reference_number: str) -> int:
    """Numeric suffix of "IB-100004"; unparsable suffixes count as 100000"""
    parts = reference_number.split("-", 1)
    try:
        return int(parts[1])
    except (IndexError, ValueError):
        return settings.REFERENCE_SEQUENCE_START - 1


class TransactionService:
    """
    Transaction management

    Header and detail writes are committed separately. A failure while
    writing details leaves the header in place; transfers create the inbound
    leg only after the outbound leg has been committed.
    """

    def __init__(self, db: Session, current_user: Optional[Profile] = None):
        self.db = db
        self.current_user = current_user

    @property
    def _user_id(self) -> Optional[str]:
        return self.current_user.user_id if self.current_user else None

    # Reference numbers

    def next_reference_number(self, transaction_type: str) -> str:
        """
        Next reference for the type's prefix.

        Read-then-write: two concurrent creators can be handed the same number.
        """
        prefix = REFERENCE_PREFIXES.get(_value(transaction_type))
        if prefix is None:
            raise ValidationError(f"Unknown transaction type: {transaction_type}")

        try:
            last = (
                self.db.query(TransactionHeader.reference_number)
                .filter(TransactionHeader.reference_number.like(f"{prefix}%"))
                .order_by(TransactionHeader.reference_number.desc())
                .limit(1)
                .scalar()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error reading last {prefix} reference: {e}")
            raise translate_db_error(e, "allocate reference number")

        sequence = settings.REFERENCE_SEQUENCE_START
        if last:
            sequence = parse_reference_sequence(last) + 1
        return f"{prefix}{sequence}"

    # Validation

    def _require_warehouse(self, warehouse: Optional[str]) -> None:
        if not warehouse:
            raise ValidationError("Warehouse is required")
        if self.db.get(Warehouse, warehouse) is None:
            raise ValidationError(f"Unknown warehouse: {warehouse}")

    def _require_items(self, items: List[TransactionItemIn]) -> None:
        if not items:
            raise ValidationError("At least one item is required")
        names = {line.item_name for line in items}
        known = {
            name for (name,) in
            self.db.query(Item.item_name).filter(Item.item_name.in_(names)).all()
        }
        unknown = sorted(names - known)
        if unknown:
            raise ValidationError(f"Unknown items: {', '.join(unknown)}")

    # Low-level writes

    def create_header(self, **fields) -> TransactionHeader:
        """Insert and commit one header, allocating its reference number"""
        if not fields.get("reference_number"):
            fields["reference_number"] = self.next_reference_number(fields["transaction_type"])
        fields.setdefault("created_by", self._user_id)
        fields.setdefault("last_edited_by", self._user_id)

        header = TransactionHeader(**fields)
        try:
            self.db.add(header)
            self.db.commit()
            self.db.refresh(header)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {fields['transaction_type']} header: {e}")
            raise translate_db_error(e, "create transaction", "You do not have permission to create transactions")

        logger.info(f"Created {header.transaction_type} transaction {header.reference_number}")
        return header

    def add_details(self, header: TransactionHeader, lines: Iterable[Dict[str, Any]]) -> List[TransactionDetail]:
        """Insert and commit the item lines of a header"""
        details = [
            TransactionDetail(
                transaction_id=header.transaction_id,
                created_by=self._user_id,
                last_edited_by=self._user_id,
                **line,
            )
            for line in lines
        ]
        if not details:
            return []

        try:
            self.db.add_all(details)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating details for {header.reference_number}: {e}")
            raise translate_db_error(e, "create transaction details",
                                     "You do not have permission to create transaction details")
        return details

    # Create

    def create_transaction(self, data: TransactionCreate) -> Dict[str, Any]:
        """Create a header with one detail per item line"""
        if not is_status_valid_for_type(data.status, data.type):
            raise ValidationError(
                f'Status "{data.status.value}" is not allowed for {data.type.value} transaction'
            )
        self._require_warehouse(data.warehouse)
        self._require_items(data.items)

        header = self.create_header(
            transaction_type=data.type.value,
            transaction_date=data.date,
            warehouse=data.warehouse,
            reference_type=data.reference_type.value,
            shipment_carrier=data.shipment_carrier,
            shipping_document=data.shipping_document,
            customer_po=data.customer_po,
            customer_name=data.customer_name,
            comments=data.comments,
            related_transaction_id=data.related_transaction_id,
        )
        self.add_details(header, (
            {
                "item_name": line.item_name,
                "quantity": line.quantity,
                "inventory_status": data.inventory_status.value,
                "status": data.status.value,
                "lot_number": line.lot_number,
                "comments": line.comments,
            }
            for line in data.items
        ))
        return self.get_transaction(header.transaction_id)

    def create_transfer(self, data: TransferCreate) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Create a transfer order as two linked headers

        The outbound leg ships from the source warehouse. The inbound leg is
        created afterwards at the destination, always Pending, dated
        transfer_date or N business days after the outbound date.
        """
        if data.source_warehouse == data.destination_warehouse:
            raise ValidationError("Source and destination warehouses must differ")
        if not is_status_valid_for_type(data.status, "Outbound"):
            raise ValidationError(f'Status "{data.status.value}" is not allowed for Outbound transaction')
        self._require_warehouse(data.source_warehouse)
        self._require_warehouse(data.destination_warehouse)
        self._require_items(data.items)

        outbound = self.create_header(
            transaction_type="Outbound",
            transaction_date=data.date,
            warehouse=data.source_warehouse,
            reference_type="Transfer Order",
            shipment_carrier=data.shipment_carrier,
            shipping_document=data.shipping_document,
            customer_po=data.customer_po,
            customer_name=data.customer_name,
            comments=data.comments,
        )
        self.add_details(outbound, (
            {
                "item_name": line.item_name,
                "quantity": line.quantity,
                "inventory_status": data.inventory_status.value,
                "status": data.status.value,
                "lot_number": line.lot_number,
                "comments": line.comments,
            }
            for line in data.items
        ))

        business_days = settings.TRANSFER_BUSINESS_DAYS if data.business_days is None else data.business_days
        inbound_date = data.transfer_date or add_business_days(data.date, business_days)
        inbound_status = data.transfer_to_inventory_status or data.inventory_status

        inbound = self.create_header(
            transaction_type="Inbound",
            transaction_date=inbound_date,
            warehouse=data.destination_warehouse,
            reference_type="Transfer Order",
            shipment_carrier=data.shipment_carrier,
            shipping_document=data.shipping_document,
            customer_po=data.customer_po,
            customer_name=data.customer_name,
            comments=data.comments,
            related_transaction_id=outbound.transaction_id,
        )
        self.add_details(inbound, (
            {
                "item_name": line.item_name,
                "quantity": line.quantity,
                "inventory_status": inbound_status.value,
                "status": "Pending",
                "lot_number": line.lot_number,
                "comments": line.comments,
            }
            for line in data.items
        ))

        logger.info(
            f"Transfer {outbound.reference_number} -> {inbound.reference_number}: "
            f"{data.source_warehouse} to {data.destination_warehouse}"
        )
        return self.get_transaction(outbound.transaction_id), self.get_transaction(inbound.transaction_id)

    # Read

    def _group_view_rows(self, rows) -> List[Dict[str, Any]]:
        transactions: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            m = row._mapping
            header = transactions.get(m["transaction_id"])
            if header is None:
                header = {
                    "transaction_id": m["transaction_id"],
                    "transaction_type": m["transaction_type"],
                    "transaction_date": m["transaction_date"],
                    "reference_type": m["reference_type"],
                    "reference_number": m["reference_number"],
                    "warehouse": m["warehouse"],
                    "shipment_carrier": m["shipment_carrier"],
                    "shipping_document": m["shipping_document"],
                    "customer_po": m["customer_po"],
                    "customer_name": m["customer_name"],
                    "comments": m["header_comments"],
                    "related_transaction_id": m["related_transaction_id"],
                    "created_at": m["header_created_at"],
                    "last_edited_at": m["header_last_updated_at"],
                    "created_by": m["created_by"],
                    "last_edited_by": m["last_edited_by"],
                    "created_by_name": m["created_by_name"],
                    "last_edited_by_name": m["last_edited_by_name"],
                    "details": [],
                }
                transactions[m["transaction_id"]] = header

            if m["detail_id"] is None:
                continue
            header["details"].append({
                "detail_id": m["detail_id"],
                "transaction_id": m["transaction_id"],
                "item_name": m["item_name"],
                "quantity": Decimal(str(m["quantity"])),
                "inventory_status": m["inventory_status"],
                "status": m["detail_status"],
                "lot_number": m["lot_number"],
                "comments": m["detail_comments"],
                "created_by": m["created_by"],
                "last_edited_by": m["last_edited_by"],
                "created_by_name": m["created_by_name"],
                "last_edited_by_name": m["last_edited_by_name"],
            })
        return list(transactions.values())

    def list_transactions(self, filters: Optional[TransactionFilter] = None,
                          limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Headers with their details, newest first"""
        view = transaction_full_view()
        stmt = select(view)
        if filters:
            if filters.transaction_type:
                stmt = stmt.where(view.c.transaction_type == filters.transaction_type.value)
            if filters.warehouse:
                stmt = stmt.where(view.c.warehouse == filters.warehouse)
            if filters.search:
                stmt = stmt.where(view.c.reference_number.ilike(f"%{filters.search}%"))

        if limit:
            recent_ids = (
                select(TransactionHeader.transaction_id)
                .order_by(TransactionHeader.transaction_date.desc(), TransactionHeader.created_at.desc())
                .limit(limit)
            )
            stmt = stmt.where(view.c.transaction_id.in_(recent_ids))

        stmt = stmt.order_by(
            view.c.transaction_date.desc(),
            view.c.header_created_at.desc(),
            view.c.detail_created_at.asc(),
        )

        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching transactions: {e}")
            raise translate_db_error(e, "fetch transactions")
        return self._group_view_rows(rows)

    def get_transaction(self, transaction_id: str) -> Dict[str, Any]:
        view = transaction_full_view()
        stmt = (
            select(view)
            .where(view.c.transaction_id == transaction_id)
            .order_by(view.c.detail_created_at.asc())
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching transaction {transaction_id}: {e}")
            raise translate_db_error(e, "fetch transaction")

        grouped = self._group_view_rows(rows)
        if not grouped:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return grouped[0]

    def release_email(self, reference_number: str) -> Dict[str, Any]:
        """Release/shipping email for the transaction with this reference number"""
        view = transaction_full_view()
        stmt = (
            select(view)
            .where(view.c.reference_number == reference_number)
            .order_by(view.c.detail_created_at.asc())
        )
        try:
            rows = [dict(row._mapping) for row in self.db.execute(stmt).all()]
            item_names = {row["item_name"] for row in rows if row["item_name"]}
            packs = (
                self.db.query(Item.item_name, PackSize.uom_per_each, PackSize.package_type, PackSize.units_of_units)
                .join(PackSize, PackSize.pack_size == Item.pack_size)
                .filter(Item.item_name.in_(item_names))
                .all()
            ) if item_names else []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching transaction {reference_number} for release email: {e}")
            raise translate_db_error(e, "fetch transaction")

        if not rows:
            raise NotFoundError(f"Transaction {reference_number} not found")

        pack_sizes = {
            name: {"uom_per_each": uom, "package_type": package_type, "units_of_units": units}
            for name, uom, package_type, units in packs
        }
        return build_release_email(rows, pack_sizes)

    def _get_header(self, transaction_id: str) -> TransactionHeader:
        header = self.db.get(TransactionHeader, transaction_id)
        if header is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return header

    def _get_detail(self, transaction_id: str, detail_id: str) -> TransactionDetail:
        detail = self.db.get(TransactionDetail, detail_id)
        if detail is None or detail.transaction_id != transaction_id:
            raise NotFoundError(f"Transaction detail {detail_id} not found")
        return detail

    # Update

    def update_header(self, transaction_id: str, data: TransactionHeaderUpdate) -> Dict[str, Any]:
        header = self._get_header(transaction_id)
        changes = data.model_dump(exclude_unset=True)
        if "transaction_date" in changes and changes["transaction_date"] is None:
            raise ValidationError("Transaction date is required")
        if "warehouse" in changes:
            self._require_warehouse(changes["warehouse"])

        try:
            for field in HEADER_EDITABLE_FIELDS:
                if field in changes:
                    setattr(header, field, changes[field])
            header.last_edited_by = self._user_id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating transaction header {transaction_id}: {e}")
            raise translate_db_error(e, "update transaction header",
                                     "You do not have permission to update transactions")

        logger.info(f"Updated transaction header {header.reference_number}")
        return self.get_transaction(transaction_id)

    def update_detail(self, transaction_id: str, detail_id: str, data: TransactionDetailUpdate) -> Dict[str, Any]:
        """Update one line; its status must be allowed for the header's type"""
        header = self._get_header(transaction_id)
        if not is_status_valid_for_type(data.status, header.transaction_type):
            raise ValidationError(
                f'Status "{data.status.value}" not allowed for {header.transaction_type} transaction.'
            )
        detail = self._get_detail(transaction_id, detail_id)

        try:
            detail.quantity = data.quantity
            detail.inventory_status = data.inventory_status.value
            detail.status = data.status.value
            detail.lot_number = data.lot_number
            detail.comments = data.comments
            detail.last_edited_by = self._user_id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating transaction detail {detail_id}: {e}")
            raise translate_db_error(e, "update transaction detail",
                                     "You do not have permission to update transaction details")

        logger.info(f"Updated detail {detail_id} of {header.reference_number}")
        return self.get_transaction(transaction_id)

    def advance_transaction(self, transaction_id: str) -> Dict[str, Any]:
        """Move every Pending line to the type's next status"""
        header = self._get_header(transaction_id)
        next_status = next_status_for_type(header.transaction_type)
        pending = [d for d in header.details if d.status == "Pending"]
        if next_status is None or not pending:
            raise BusinessLogicError(f"Transaction {header.reference_number} has no pending lines to advance")

        try:
            for detail in pending:
                detail.status = next_status
                detail.last_edited_by = self._user_id
            header.last_edited_by = self._user_id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error advancing transaction {transaction_id}: {e}")
            raise translate_db_error(e, "advance transaction")

        logger.info(f"Advanced {len(pending)} lines of {header.reference_number} to {next_status}")
        return self.get_transaction(transaction_id)

    # Delete

    def delete_detail(self, transaction_id: str, detail_id: str) -> None:
        if not transaction_id or not detail_id or detail_id in ("null", "undefined"):
            raise ValidationError("Invalid transaction detail")
        detail = self._get_detail(transaction_id, detail_id)

        try:
            self.db.delete(detail)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting transaction detail {detail_id}: {e}")
            raise translate_db_error(e, "delete transaction detail",
                                     "You do not have permission to delete transaction details")

        logger.info(f"Deleted detail {detail_id} of transaction {transaction_id}")

    def delete_header(self, transaction_id: str) -> None:
        """Delete a header and its details unless another header references it"""
        if not transaction_id or transaction_id in ("null", "undefined"):
            raise ValidationError("Invalid transaction")
        header = self._get_header(transaction_id)

        related = (
            self.db.query(TransactionHeader.reference_number)
            .filter(TransactionHeader.related_transaction_id == transaction_id)
            .all()
        )
        if related:
            refs = [ref for (ref,) in related]
            logger.warning(f"Delete of {header.reference_number} blocked by {refs}")
            raise ReferentialIntegrityError(
                f"Cannot delete transaction. Related transactions exist: {', '.join(refs)}",
                blocking_references=refs,
            )

        reference_number = header.reference_number
        try:
            for detail in list(header.details):
                self.db.delete(detail)
            self.db.flush()
            self.db.expire(header, ["details"])
            self.db.delete(header)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting transaction {transaction_id}: {e}")
            raise translate_db_error(e, "delete transaction",
                                     "You do not have permission to delete transactions")

        logger.info(f"Deleted transaction {reference_number}")
