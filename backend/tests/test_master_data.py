"""
Master Data Service Tests
Registry lookups, derived fields and CRUD rules
"""
import pytest
from decimal import Decimal

from inventory_app.core.exceptions import BusinessLogicError, NotFoundError, ValidationError
from inventory_app.models.master_data import Item, PackSize, Warehouse
from inventory_app.services.master_data import MasterDataService, get_table_spec
from inventory_app.services.master_data.master_data_service import build_pack_size_name, format_number


class TestDerivedNames:
    """Pack size and item naming rules"""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("1.000"), "1"),
        (Decimal("2.50"), "2.5"),
        (Decimal("55"), "55"),
        (10, "10"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_multi_unit_pack_size(self):
        assert build_pack_size_name(Decimal("4"), Decimal("1.000"), "GAL", "Case") == "4x1 gal/case"

    def test_single_unit_pack_size(self):
        assert build_pack_size_name(Decimal("1"), Decimal("2.5"), "gal", "Jug") == "2.5 gal/jug"


class TestRegistry:
    """Table lookups"""

    def test_unknown_table(self):
        with pytest.raises(ValidationError, match="Unknown master data table: widgets"):
            get_table_spec("widgets")

    def test_warehouse_uses_column_names(self):
        spec = get_table_spec("warehouse")
        assert spec.primary_key == "Common Name"
        assert "Location ID" in spec.columns

    def test_list_tables(self, db_session):
        tables = {t["name"]: t for t in MasterDataService(db_session).list_tables()}
        assert set(tables) == {
            "product", "item", "pack_size", "case_type",
            "product_type", "registrant", "units_of_units", "warehouse",
        }
        assert tables["item"]["foreign_keys"] == {"product_name": "product", "pack_size": "pack_size"}


class TestMasterDataReads:
    """Listing with flattened relationships"""

    def test_item_records_are_flattened(self, db_session, master_data):
        records = MasterDataService(db_session).list_records("item")
        widget = next(r for r in records if r["item_name"] == "Widget")

        assert widget["product_registrant"] == "Acme"
        assert widget["product_product_type"] == "Herbicide"
        assert widget["pack_size_id"] == 1
        assert Decimal(str(widget["pack_size_uom_per_each"])) == Decimal("4")

    def test_pack_size_options_ordered_by_id(self, db_session, master_data):
        options = MasterDataService(db_session).get_foreign_key_options("item")
        assert options["pack_size"] == [
            {"pack_size": "4x1 gal/case", "id": 1},
            {"pack_size": "5 lb/bag", "id": 2},
        ]
        assert [p["product_name"] for p in options["product_name"]] == ["Gizmo", "Widget"]

    def test_get_missing_record(self, db_session, master_data):
        with pytest.raises(NotFoundError):
            MasterDataService(db_session).get_record("warehouse", "Nowhere")


class TestMasterDataWrites:
    """Add, update and delete with validation"""

    def test_add_pack_size_derives_fields(self, db_session, master_data):
        record = MasterDataService(db_session).add_record("pack_size", {
            "units_per_each": "2",
            "volume_per_unit": "2.5",
            "units_of_units": "gal",
            "package_type": "Case",
        })

        assert record["pack_size"] == "2x2.5 gal/case"
        assert record["id"] == 3
        assert Decimal(str(record["uom_per_each"])) == Decimal("5")

    def test_add_item_derives_name(self, db_session, master_data):
        record = MasterDataService(db_session).add_record("item", {
            "product_name": "Gizmo",
            "pack_size": "4x1 gal/case",
            "product_registrant": "ignored flattened key",
        })
        assert record["item_name"] == "Gizmo 4x1 gal/case"
        assert db_session.get(Item, "Gizmo 4x1 gal/case") is not None

    def test_add_warehouse_with_column_names(self, db_session, master_data):
        MasterDataService(db_session).add_record("warehouse", {
            "Common Name": "WH-C",
            "Location ID": "C1",
            "City": "Fresno",
        })
        warehouse = db_session.get(Warehouse, "WH-C")
        assert warehouse.location_id == "C1"
        assert warehouse.city == "Fresno"

    def test_duplicate_rejected(self, db_session, master_data):
        with pytest.raises(BusinessLogicError):
            MasterDataService(db_session).add_record("warehouse", {"Common Name": "WH-A"})

    def test_missing_required_field(self, db_session, master_data):
        with pytest.raises(ValidationError, match="Invalid product record"):
            MasterDataService(db_session).add_record("product", {"product_name": "Sprayer"})

    def test_non_positive_volume_rejected(self, db_session, master_data):
        with pytest.raises(ValidationError):
            MasterDataService(db_session).add_record("pack_size", {
                "units_per_each": "1",
                "volume_per_unit": "0",
                "units_of_units": "gal",
                "package_type": "Case",
            })

    def test_update_recomputes_uom(self, db_session, master_data):
        record = MasterDataService(db_session).update_record("pack_size", "4x1 gal/case", {"units_per_each": "6"})

        assert record["pack_size"] == "4x1 gal/case"
        assert Decimal(str(record["uom_per_each"])) == Decimal("6")
        assert db_session.get(PackSize, "4x1 gal/case").id == 1

    def test_update_warehouse_partial(self, db_session, master_data):
        record = MasterDataService(db_session).update_record("warehouse", "WH-B", {"Phone": "555-0100"})
        assert record["Phone"] == "555-0100"
        assert record["Location ID"] == "B1"

    def test_delete(self, db_session, master_data):
        service = MasterDataService(db_session)
        service.delete_record("warehouse", "WH-B")
        assert db_session.get(Warehouse, "WH-B") is None

        with pytest.raises(NotFoundError):
            service.delete_record("warehouse", "WH-B")
