"""
Master Data Table Registry
Describes the fixed set of editable reference tables.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy import inspect

from inventory_app.core.database import Base
from inventory_app.core.exceptions import ValidationError
from inventory_app.models.master_data import (
    CaseType, Item, PackSize, Product, ProductType, Registrant, UnitsOfUnits, Warehouse
)
from inventory_app.schemas.master_data import (
    CaseTypeRecord, ItemRecord, PackSizeRecord, ProductRecord, ProductTypeRecord,
    RegistrantRecord, UnitsOfUnitsRecord, WarehouseRecord
)


@dataclass
class TableSpec:
    """
    Registry entry for one reference table

    foreign_keys maps an attribute to the table it points at; flatten maps a
    prefix to a relationship and the attributes copied from it onto listed
    rows as "<prefix>_<attribute>".
    """
    name: str
    model: Type[Base]
    schema: Type[BaseModel]
    required: Tuple[str, ...] = ()
    foreign_keys: Dict[str, str] = field(default_factory=dict)
    flatten: Dict[str, Tuple[str, Tuple[str, ...]]] = field(default_factory=dict)
    order_by: Optional[str] = None

    @property
    def mapper(self):
        return inspect(self.model)

    @property
    def primary_key_attr(self) -> str:
        return self.mapper.get_property_by_column(self.mapper.primary_key[0]).key

    @property
    def primary_key(self) -> str:
        """Primary key column name as exposed to clients"""
        return self.mapper.primary_key[0].name

    @property
    def column_map(self) -> Dict[str, str]:
        """attribute -> column name, in declaration order"""
        return {attr.key: attr.columns[0].name for attr in self.mapper.column_attrs}

    @property
    def columns(self) -> List[str]:
        return list(self.column_map.values())


TABLES: Dict[str, TableSpec] = {
    "product": TableSpec(
        name="product",
        model=Product,
        schema=ProductRecord,
        required=("product_name", "registrant", "product_type"),
        foreign_keys={"registrant": "registrant", "product_type": "product_type"},
    ),
    "item": TableSpec(
        name="item",
        model=Item,
        schema=ItemRecord,
        required=("item_name", "product_name", "pack_size"),
        foreign_keys={"product_name": "product", "pack_size": "pack_size"},
        flatten={
            "product": ("product", ("registrant", "product_type")),
            "pack_size": ("pack_size_rel", ("id", "units_per_each", "volume_per_unit",
                                            "units_of_units", "package_type", "uom_per_each")),
        },
    ),
    "pack_size": TableSpec(
        name="pack_size",
        model=PackSize,
        schema=PackSizeRecord,
        required=("pack_size", "units_per_each", "volume_per_unit", "units_of_units", "package_type"),
        foreign_keys={"units_of_units": "units_of_units", "package_type": "case_type"},
        order_by="id",
    ),
    "case_type": TableSpec(
        name="case_type",
        model=CaseType,
        schema=CaseTypeRecord,
        required=("package_type",),
    ),
    "product_type": TableSpec(
        name="product_type",
        model=ProductType,
        schema=ProductTypeRecord,
        required=("product_type",),
    ),
    "registrant": TableSpec(
        name="registrant",
        model=Registrant,
        schema=RegistrantRecord,
        required=("registrant",),
    ),
    "units_of_units": TableSpec(
        name="units_of_units",
        model=UnitsOfUnits,
        schema=UnitsOfUnitsRecord,
        required=("units_of_units",),
    ),
    "warehouse": TableSpec(
        name="warehouse",
        model=Warehouse,
        schema=WarehouseRecord,
        required=("common_name",),
    ),
}

# Tables whose writes are recorded as add_/update_/delete_<table> actions
TRACKED_TABLES = frozenset(["item", "product", "warehouse"])


def get_table_spec(table: str) -> TableSpec:
    spec = TABLES.get(table)
    if spec is None:
        raise ValidationError(f"Unknown master data table: {table}")
    return spec
