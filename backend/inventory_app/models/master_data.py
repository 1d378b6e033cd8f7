"""
Master Data Models
Reference tables: products, items, pack sizes, warehouses and lookups
"""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from inventory_app.core.database import Base


class Registrant(Base):
    """Product registrant lookup"""
    __tablename__ = "registrant"

    registrant = Column(String(100), primary_key=True)


class ProductType(Base):
    """Product type lookup"""
    __tablename__ = "product_type"

    product_type = Column(String(100), primary_key=True)


class CaseType(Base):
    """Package type lookup (case, drum, tote, ...)"""
    __tablename__ = "case_type"

    package_type = Column(String(50), primary_key=True)


class UnitsOfUnits(Base):
    """Volume unit lookup (gal, lb, oz, ...)"""
    __tablename__ = "units_of_units"

    units_of_units = Column(String(50), primary_key=True)


class Product(Base):
    """Product master"""
    __tablename__ = "product"

    product_name = Column(String(200), primary_key=True)
    registrant = Column(String(100), ForeignKey("registrant.registrant"), nullable=False)
    product_type = Column(String(100), ForeignKey("product_type.product_type"), nullable=False)

    registrant_rel = relationship("Registrant")
    product_type_rel = relationship("ProductType")
    items = relationship("Item", back_populates="product")


class PackSize(Base):
    """
    Pack Size

    The pack_size key is a derived display string such as "4x1 gal/case";
    uom_per_each is the volume per case used for case-count conversion.
    """
    __tablename__ = "pack_size"

    pack_size = Column(String(100), primary_key=True)
    id = Column(Integer, unique=True, nullable=False)
    units_per_each = Column(Numeric(12, 3), nullable=False)
    volume_per_unit = Column(Numeric(12, 3), nullable=False)
    units_of_units = Column(String(50), ForeignKey("units_of_units.units_of_units"), nullable=False)
    package_type = Column(String(50), ForeignKey("case_type.package_type"), nullable=False)
    uom_per_each = Column(Numeric(14, 3))
    eaches_per_pallet = Column(Integer)
    pallets_per_tl = Column(Integer)
    eaches_per_tl = Column(Integer)

    units_of_units_rel = relationship("UnitsOfUnits")
    case_type_rel = relationship("CaseType")


class Item(Base):
    """Sellable item: a product in a specific pack size"""
    __tablename__ = "item"

    item_name = Column(String(300), primary_key=True)
    product_name = Column(String(200), ForeignKey("product.product_name"), nullable=False)
    pack_size = Column(String(100), ForeignKey("pack_size.pack_size"), nullable=False)

    product = relationship("Product", back_populates="items")
    pack_size_rel = relationship("PackSize")


class Warehouse(Base):
    """Warehouse / establishment; keyed by its common name"""
    __tablename__ = "warehouse"

    common_name = Column("Common Name", String(100), primary_key=True)
    location_id = Column("Location ID", String(50))
    establishment_name = Column("Establishment Name", String(200))
    epa = Column("EPA", String(50))
    abbreviation = Column("Abbreviation", String(20))
    street = Column("Street", String(200))
    city = Column("City", String(100))
    state = Column("State", String(50))
    zip = Column("Zip", String(20))
    address = Column("Address", String(300))
    phone = Column("Phone", String(50))
    contact_name = Column("Contact Name", String(100))
    location_hours = Column("Location Hours", String(200))
