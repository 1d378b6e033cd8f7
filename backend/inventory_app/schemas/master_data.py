"""
Master Data Schemas
One input schema per reference table. Field names match the ORM attribute
names; warehouse fields also accept their spaced column names.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MasterRecord(BaseModel):
    """Base for master data inputs; flattened relationship keys are dropped"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class RegistrantRecord(MasterRecord):
    registrant: str = Field(..., min_length=1, max_length=100)


class ProductTypeRecord(MasterRecord):
    product_type: str = Field(..., min_length=1, max_length=100)


class CaseTypeRecord(MasterRecord):
    package_type: str = Field(..., min_length=1, max_length=50)


class UnitsOfUnitsRecord(MasterRecord):
    units_of_units: str = Field(..., min_length=1, max_length=50)


class ProductRecord(MasterRecord):
    product_name: str = Field(..., min_length=1, max_length=200)
    registrant: str = Field(..., min_length=1)
    product_type: str = Field(..., min_length=1)


class PackSizeRecord(MasterRecord):
    """pack_size, id and uom_per_each are derived when left empty"""
    pack_size: Optional[str] = Field(None, max_length=100)
    id: Optional[int] = None
    units_per_each: Decimal = Field(..., gt=0)
    volume_per_unit: Decimal = Field(..., gt=0)
    units_of_units: str = Field(..., min_length=1)
    package_type: str = Field(..., min_length=1)
    uom_per_each: Optional[Decimal] = None
    eaches_per_pallet: Optional[int] = Field(None, ge=0)
    pallets_per_tl: Optional[int] = Field(None, ge=0)
    eaches_per_tl: Optional[int] = Field(None, ge=0)


class ItemRecord(MasterRecord):
    """item_name defaults to "<product_name> <pack_size>" """
    item_name: Optional[str] = Field(None, max_length=300)
    product_name: str = Field(..., min_length=1)
    pack_size: str = Field(..., min_length=1)


class WarehouseRecord(MasterRecord):
    common_name: str = Field(..., alias="Common Name", min_length=1, max_length=100)
    location_id: Optional[str] = Field(None, alias="Location ID")
    establishment_name: Optional[str] = Field(None, alias="Establishment Name")
    epa: Optional[str] = Field(None, alias="EPA")
    abbreviation: Optional[str] = Field(None, alias="Abbreviation")
    street: Optional[str] = Field(None, alias="Street")
    city: Optional[str] = Field(None, alias="City")
    state: Optional[str] = Field(None, alias="State")
    zip: Optional[str] = Field(None, alias="Zip")
    address: Optional[str] = Field(None, alias="Address")
    phone: Optional[str] = Field(None, alias="Phone")
    contact_name: Optional[str] = Field(None, alias="Contact Name")
    location_hours: Optional[str] = Field(None, alias="Location Hours")


class TableInfo(BaseModel):
    name: str
    primary_key: str
    columns: List[str]
    required: List[str]
    foreign_keys: Dict[str, str]


class MasterDataListResponse(BaseModel):
    table: str
    records: List[Dict[str, Any]]
    total: int
