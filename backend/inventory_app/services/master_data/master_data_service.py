"""
Master Data Service
Generic CRUD over the reference tables described by the registry
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.exceptions import (
    BusinessLogicError, NotFoundError, ValidationError, translate_db_error
)
from inventory_app.models.auth import Profile
from inventory_app.models.master_data import PackSize
from inventory_app.services.master_data.registry import TABLES, TableSpec, get_table_spec

logger = logging.getLogger(__name__)


def format_number(value) -> str:
    """Render a number without trailing zeros: 1.000 -> "1", 2.50 -> "2.5" """
    return format(Decimal(str(value)).normalize(), "f")


def build_pack_size_name(units_per_each, volume_per_unit, units_of_units: str, package_type: str) -> str:
    """Display key such as "4x1 gal/case", or "55 gal/drum" for a single unit"""
    volume = format_number(volume_per_unit)
    suffix = f"{units_of_units.lower()}/{package_type.lower()}"
    if Decimal(str(units_per_each)) == 1:
        return f"{volume} {suffix}"
    return f"{format_number(units_per_each)}x{volume} {suffix}"


def build_item_name(product_name: str, pack_size: str) -> str:
    return f"{product_name} {pack_size}"


class MasterDataService:
    """
    Master data maintenance

    Records travel as dicts keyed by column name ("Common Name" for
    warehouses); inputs are validated by the table's schema before any write.
    """

    def __init__(self, db: Session, current_user: Optional[Profile] = None):
        self.db = db
        self.current_user = current_user

    # Registry introspection

    def list_tables(self) -> List[Dict[str, Any]]:
        tables = []
        for spec in TABLES.values():
            column_map = spec.column_map
            tables.append({
                "name": spec.name,
                "primary_key": spec.primary_key,
                "columns": spec.columns,
                "required": [column_map[attr] for attr in spec.required],
                "foreign_keys": {column_map[attr]: target for attr, target in spec.foreign_keys.items()},
            })
        return tables

    # Reads

    def _to_record(self, spec: TableSpec, row) -> Dict[str, Any]:
        record = {column: getattr(row, attr) for attr, column in spec.column_map.items()}
        for prefix, (relationship_name, attrs) in spec.flatten.items():
            related = getattr(row, relationship_name)
            for attr in attrs:
                record[f"{prefix}_{attr}"] = getattr(related, attr) if related is not None else None
        return record

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        """All rows of a table with relationship fields flattened"""
        spec = get_table_spec(table)
        try:
            query = self.db.query(spec.model)
            if spec.order_by:
                query = query.order_by(getattr(spec.model, spec.order_by))
            else:
                query = query.order_by(getattr(spec.model, spec.primary_key_attr))
            return [self._to_record(spec, row) for row in query.all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {table} records: {e}")
            raise translate_db_error(e, "fetch data")

    def get_record(self, table: str, key: str) -> Dict[str, Any]:
        spec = get_table_spec(table)
        return self._to_record(spec, self._get_row(spec, key))

    def get_foreign_key_options(self, table: str) -> Dict[str, List[Dict[str, Any]]]:
        """Selectable values for each foreign key of a table"""
        spec = get_table_spec(table)
        options: Dict[str, List[Dict[str, Any]]] = {}

        for attr, target in spec.foreign_keys.items():
            try:
                if target == "pack_size":
                    rows = (
                        self.db.query(PackSize.pack_size, PackSize.id)
                        .order_by(PackSize.id.asc())
                        .all()
                    )
                    options[spec.column_map[attr]] = [
                        {"pack_size": row.pack_size, "id": row.id} for row in rows
                    ]
                else:
                    options[spec.column_map[attr]] = self.list_records(target)
            except SQLAlchemyError as e:
                logger.error(f"Error fetching foreign key data for {attr}: {e}")
                raise translate_db_error(e, f"fetch {attr} data")

        return options

    # Writes

    def _get_row(self, spec: TableSpec, key: str):
        row = self.db.get(spec.model, key)
        if row is None:
            raise NotFoundError(f"{spec.name} record '{key}' not found")
        return row

    def _normalize_keys(self, spec: TableSpec, data: Dict[str, Any]) -> Dict[str, Any]:
        """Accept column names ("Common Name") as well as attribute names"""
        by_column = {column: attr for attr, column in spec.column_map.items()}
        return {by_column.get(key, key): value for key, value in data.items()}

    def _validate(self, spec: TableSpec, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            validated = spec.schema.model_validate(self._normalize_keys(spec, data))
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ValidationError(f"Invalid {spec.name} record: {fields}")
        return validated.model_dump()

    def _next_pack_size_id(self) -> int:
        current = self.db.query(func.max(PackSize.id)).scalar()
        return (current or 0) + 1

    def _apply_derived_fields(self, spec: TableSpec, values: Dict[str, Any], is_new: bool) -> None:
        if spec.name == "pack_size":
            values["uom_per_each"] = values["units_per_each"] * values["volume_per_unit"]
            if is_new and not values.get("pack_size"):
                values["pack_size"] = build_pack_size_name(
                    values["units_per_each"], values["volume_per_unit"],
                    values["units_of_units"], values["package_type"]
                )
            if is_new and values.get("id") is None:
                values["id"] = self._next_pack_size_id()

        elif spec.name == "item" and is_new and not values.get("item_name"):
            values["item_name"] = build_item_name(values["product_name"], values["pack_size"])

        missing = [spec.column_map[attr] for attr in spec.required if values.get(attr) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def add_record(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        spec = get_table_spec(table)
        values = self._validate(spec, data)
        self._apply_derived_fields(spec, values, is_new=True)

        key = values[spec.primary_key_attr]
        if self.db.get(spec.model, key) is not None:
            raise BusinessLogicError(f"{spec.name} record '{key}' already exists")

        row = spec.model(**values)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error adding {table} record {key}: {e}")
            raise BusinessLogicError(f"Failed to add record: {spec.name} '{key}' references missing data")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error adding {table} record {key}: {e}")
            raise translate_db_error(e, "add record")

        logger.info(f"Added {table} record {key}")
        return self._to_record(spec, row)

    def update_record(self, table: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update a record by primary key; the key itself is not changed"""
        spec = get_table_spec(table)
        row = self._get_row(spec, key)

        # Partial updates are validated as the full merged record
        candidate = {attr: getattr(row, attr) for attr in spec.column_map}
        candidate.update(self._normalize_keys(spec, data))
        values = self._validate(spec, candidate)
        values[spec.primary_key_attr] = key
        self._apply_derived_fields(spec, values, is_new=False)

        try:
            for attr, value in values.items():
                setattr(row, attr, value)
            self.db.commit()
            self.db.refresh(row)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error updating {table} record {key}: {e}")
            raise BusinessLogicError(f"Failed to update record: {spec.name} '{key}' references missing data")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating {table} record {key}: {e}")
            raise translate_db_error(e, "update record")

        logger.info(f"Updated {table} record {key}")
        return self._to_record(spec, row)

    def delete_record(self, table: str, key: str) -> None:
        spec = get_table_spec(table)
        row = self._get_row(spec, key)

        try:
            self.db.delete(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error deleting {table} record {key}: {e}")
            raise BusinessLogicError(f"Failed to delete record: {spec.name} '{key}' is still in use")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting {table} record {key}: {e}")
            raise translate_db_error(e, "delete record")

        logger.info(f"Deleted {table} record {key}")
