"""
Manual Report Builder
Ad-hoc SELECT over a whitelisted view with user-supplied filters.

View and column names are checked against fixed whitelists and every value
is sent as a bound parameter; nothing the user types is spliced into SQL.
"""
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.config import settings
from inventory_app.core.exceptions import ValidationError, translate_db_error
from inventory_app.models.views import inventory_view, transaction_full_view
from inventory_app.schemas.reports import WhereClause

logger = logging.getLogger(__name__)

AVAILABLE_VIEWS: Dict[str, List[str]] = {
    "vw_transaction_full": [
        "transaction_id",
        "transaction_type",
        "transaction_date",
        "reference_type",
        "reference_number",
        "customer_po",
        "customer_name",
        "warehouse",
        "shipment_carrier",
        "shipping_document",
        "header_comments",
        "header_created_at",
        "header_last_updated_at",
        "detail_id",
        "item_name",
        "quantity",
        "inventory_status",
        "lot_number",
        "detail_comments",
        "detail_status",
        "detail_created_at",
        "detail_last_updated_at",
    ],
    "inventory_view": [
        "Item Name",
        "Warehouse",
        "Date",
        "Inventory As Of Date",
        "On Hand: Total",
        "On Hand: Stock",
        "On Hand: Consignment",
        "On Hand: Hold",
        "Inbound: Total",
        "Inbound: Stock",
        "Inbound: Consignment",
        "Inbound: Hold",
        "Scheduled Outbound: Total",
        "Scheduled Outbound: Stock",
        "Scheduled Outbound: Consign",
        "Scheduled Outbound: Hold",
        "Future Inventory: Total",
        "Future Inventory: Stock",
        "Future Inventory: Consign",
        "Future Inventory: Hold",
    ],
}

VIEW_BUILDERS: Dict[str, Callable] = {
    "vw_transaction_full": transaction_full_view,
    "inventory_view": inventory_view,
}

OPERATORS: Dict[str, Callable] = {
    "=": lambda col, v: col == v,
    "!=": lambda col, v: col != v,
    "<>": lambda col, v: col != v,
    "<": lambda col, v: col < v,
    "<=": lambda col, v: col <= v,
    ">": lambda col, v: col > v,
    ">=": lambda col, v: col >= v,
    "LIKE": lambda col, v: col.like(v),
    "NOT LIKE": lambda col, v: col.not_like(v),
    "ILIKE": lambda col, v: col.ilike(v),
    "NOT ILIKE": lambda col, v: col.not_ilike(v),
    "IN": lambda col, v: col.in_(v),
    "NOT IN": lambda col, v: col.not_in(v),
}

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def coerce_scalar(value: str) -> Any:
    """Number, date, timestamp or plain string, in that order of preference"""
    text = value.strip()
    if INTEGER_PATTERN.match(text):
        return int(text)
    if NUMBER_PATTERN.match(text):
        return float(text)
    if DATE_PATTERN.match(text):
        return date.fromisoformat(text)
    if TIMESTAMP_PATTERN.match(text):
        return datetime.strptime(text, "%Y-%m-%d %H:%M:%S")
    return value


def format_value(value: str, operator: str) -> Any:
    """
    Turn the raw filter text into the parameter bound for the operator

    IN / NOT IN take a comma separated list; the LIKE family matches the
    value anywhere in the column.
    """
    op = operator.upper()
    if op in ("IN", "NOT IN"):
        return [coerce_scalar(part.strip()) for part in value.split(",")]
    if "LIKE" in op:
        return f"%{value}%"
    return coerce_scalar(value)


def list_views() -> List[Dict[str, Any]]:
    return [{"name": name, "columns": list(columns)} for name, columns in AVAILABLE_VIEWS.items()]


class ManualReportService:
    """Runs whitelisted ad-hoc queries"""

    def __init__(self, db: Session, row_limit: Optional[int] = None):
        self.db = db
        self.row_limit = row_limit or settings.MANUAL_REPORT_ROW_LIMIT

    def build_query(self, view_name: str, columns: List[str], where: List[WhereClause]):
        if view_name not in AVAILABLE_VIEWS:
            raise ValidationError("Invalid view name")

        valid_columns = AVAILABLE_VIEWS[view_name]
        selected = list(columns) or list(valid_columns)
        if not all(col in valid_columns for col in selected):
            raise ValidationError("Invalid column selection")

        view = VIEW_BUILDERS[view_name]()
        stmt = select(*[view.c[col] for col in selected])

        for clause in where:
            if not (clause.column and clause.operator and clause.value):
                continue
            if clause.column not in valid_columns:
                raise ValidationError("Invalid column selection")
            op = clause.operator.strip().upper()
            if op not in OPERATORS:
                raise ValidationError(f"Invalid operator: {clause.operator}")
            stmt = stmt.where(OPERATORS[op](view.c[clause.column], format_value(clause.value, op)))

        return stmt.limit(self.row_limit), selected

    def execute(self, view_name: str, columns: List[str], where: List[WhereClause]) -> Dict[str, Any]:
        stmt, selected = self.build_query(view_name, columns, where)
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Error executing manual report on {view_name}: {e}")
            raise translate_db_error(e, "execute query")

        logger.info(f"Manual report on {view_name} returned {len(rows)} rows")
        return {
            "view": view_name,
            "columns": selected,
            "rows": [dict(row._mapping) for row in rows],
            "row_count": len(rows),
        }
