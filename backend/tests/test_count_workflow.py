"""
Inventory Count Reconciliation Tests
Variance calculation, the step machine and adjustment generation
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from inventory_app.core.exceptions import BusinessLogicError, NotFoundError, ValidationError
from inventory_app.models.transactions import TransactionHeader
from inventory_app.schemas.common import InventoryStatus
from inventory_app.schemas.inventory import CountLine, CountStep, SnapshotRow, VarianceLine
from inventory_app.services.inventory import CountWorkflow, InventoryCountService, calculate_variances
from inventory_app.services.inventory.count_workflow import initial_count_lines

COUNT_DATE = date(2024, 3, 31)


def _snapshot_row(item_name, stock="0", consign="0", hold="0", uom=None):
    return SnapshotRow(
        item_name=item_name,
        warehouse="WH-A",
        transaction_date=date(2024, 3, 1),
        on_hand_stock=Decimal(stock),
        on_hand_consign=Decimal(consign),
        on_hand_hold=Decimal(hold),
        on_hand_total=Decimal(stock) + Decimal(consign) + Decimal(hold),
        uom_per_each=uom,
    )


class TestVarianceCalculation:
    """variance = physical - calculated"""

    def test_shortage(self):
        snapshot = [_snapshot_row("Widget", stock="100")]
        lines = [CountLine(item_name="Widget", quantity=Decimal("80"))]

        variance = calculate_variances(lines, snapshot)[0]
        assert variance.calculated_count == Decimal("100")
        assert variance.physical_count == Decimal("80")
        assert variance.variance == Decimal("-20")

    def test_status_selects_balance(self):
        snapshot = [_snapshot_row("Widget", stock="100", hold="6")]
        lines = [CountLine(item_name="Widget", quantity=Decimal("6"), inventory_status=InventoryStatus.HOLD)]
        assert calculate_variances(lines, snapshot)[0].variance == Decimal("0")

    def test_item_missing_from_snapshot_is_overage(self):
        lines = [CountLine(item_name="Gizmo", quantity=Decimal("12"))]
        variance = calculate_variances(lines, [])[0]
        assert variance.calculated_count == Decimal("0")
        assert variance.variance == Decimal("12")

    def test_initial_lines_one_per_positive_status(self):
        snapshot = [_snapshot_row("Widget", stock="10", consign="0", hold="3", uom=Decimal("4"))]
        lines = initial_count_lines(snapshot)

        assert [(l.item_name, l.inventory_status) for l in lines] == [
            ("Widget", InventoryStatus.STOCK),
            ("Widget", InventoryStatus.HOLD),
        ]
        assert all(l.quantity == 0 for l in lines)
        assert lines[0].uom_per_each == Decimal("4")

    def test_uncounted_items_are_full_shortages(self):
        snapshot = [_snapshot_row("Widget", stock="10")]
        variance = calculate_variances(initial_count_lines(snapshot), snapshot)[0]
        assert variance.variance == Decimal("-10")


class TestCountService:
    """Database side of the count"""

    def test_future_date_rejected(self):
        with pytest.raises(ValidationError, match="Count date cannot be in the future"):
            InventoryCountService.validate_count_date(date.today() + timedelta(days=1))

    def test_today_accepted(self):
        assert InventoryCountService.validate_count_date(date.today()) == date.today()

    def test_search_warehouses_case_insensitive(self, db_session, master_data):
        found = InventoryCountService(db_session).search_warehouses("wh-b")
        assert [w.common_name for w in found] == ["WH-B"]

    def test_search_items_returns_case_size(self, db_session, master_data):
        found = InventoryCountService(db_session).search_items("widg")
        assert found == [{"item_name": "Widget", "uom_per_each": Decimal("4")}]

    def test_lookup_unknown_item(self, db_session, master_data):
        with pytest.raises(NotFoundError):
            InventoryCountService(db_session).lookup_item("Sprocket")

    def test_pending_transactions_filtered_to_counted_items(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 10), [("Widget", "5"), ("Gizmo", "2")], "Pending")
        record_transaction("Inbound", date(2024, 4, 10), [("Widget", "9")], "Pending")
        record_transaction("Outbound", date(2024, 3, 11), [("Widget", "1")], "Shipped")

        pending = InventoryCountService(db_session).get_pending_transactions("WH-A", COUNT_DATE, ["Widget"])

        assert len(pending) == 1
        assert [d["item_name"] for d in pending[0]["details"]] == ["Widget"]

    def test_empty_variance_list_rejected(self, db_session, master_data):
        with pytest.raises(ValidationError, match="No variances to adjust"):
            InventoryCountService(db_session).generate_adjustment("WH-A", COUNT_DATE, [])

    def test_zero_variances_create_empty_header(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "5")], "Received")

        adjustment = InventoryCountService(db_session).generate_adjustment("WH-A", COUNT_DATE, [
            VarianceLine(
                item_name="Widget",
                inventory_status=InventoryStatus.STOCK,
                physical_count=Decimal("5"),
                calculated_count=Decimal("5"),
                variance=Decimal("0"),
            )
        ])
        assert adjustment["details"] == []
        assert db_session.query(TransactionHeader).filter_by(transaction_type="Adjustment").count() == 1

    def test_variance_contradicting_count_rejected(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        with pytest.raises(ValidationError, match="expected -20"):
            InventoryCountService(db_session).generate_adjustment("WH-A", COUNT_DATE, [
                VarianceLine(
                    item_name="Widget",
                    inventory_status=InventoryStatus.STOCK,
                    physical_count=Decimal("80"),
                    calculated_count=Decimal("100"),
                    variance=Decimal("500"),
                )
            ])
        assert db_session.query(TransactionHeader).filter_by(transaction_type="Adjustment").count() == 0

    def test_stale_calculated_count_rejected(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        with pytest.raises(ValidationError, match="does not match the count"):
            InventoryCountService(db_session).generate_adjustment("WH-A", COUNT_DATE, [
                VarianceLine(
                    item_name="Widget",
                    inventory_status=InventoryStatus.STOCK,
                    physical_count=Decimal("80"),
                    calculated_count=Decimal("90"),
                    variance=Decimal("-10"),
                )
            ])

    def test_variance_calculation_is_repeatable(self):
        snapshot = [_snapshot_row("Widget", stock="100"), _snapshot_row("Gizmo", hold="7")]
        lines = [
            CountLine(item_name="Widget", quantity=Decimal("80")),
            CountLine(item_name="Gizmo", quantity=Decimal("7"), inventory_status=InventoryStatus.HOLD),
            CountLine(item_name="Bolt", quantity=Decimal("3")),
        ]

        first = calculate_variances(lines, snapshot)
        second = calculate_variances(lines, snapshot)

        assert first == second
        assert [v.variance for v in first] == [Decimal("-20"), Decimal("0"), Decimal("3")]


class TestCountWorkflow:
    """Full reconciliation through the step machine"""

    def test_shortage_books_adjustment(self, db_session, record_transaction, test_user):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        workflow = CountWorkflow(InventoryCountService(db_session, test_user))
        workflow.select_warehouse("WH-A")
        assert workflow.step == CountStep.DATE

        workflow.select_date(COUNT_DATE)
        assert workflow.step == CountStep.COUNT
        assert len(workflow.lines) == 1

        workflow.set_quantity(0, "80")
        assert workflow.lines[0].case_count == Decimal("20")

        variances = workflow.complete_count()
        assert variances[0].variance == Decimal("-20")
        assert workflow.step == CountStep.VARIANCE

        workflow.confirm_variances()
        adjustment = workflow.generate_adjustment()

        assert adjustment["transaction_type"] == "Adjustment"
        assert adjustment["reference_number"] == "ADJ-100001"
        assert adjustment["reference_type"] == "Inventory Count"
        assert adjustment["comments"] == "Inventory count adjustment for WH-A as of 2024-03-31"
        assert adjustment["created_by"] == test_user.user_id

        detail = adjustment["details"][0]
        assert detail["quantity"] == Decimal("-20")
        assert detail["status"] == "Completed"
        assert detail["comments"] == "Count shortage"

    def test_adjustment_brings_snapshot_to_count(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        service = InventoryCountService(db_session)
        workflow = CountWorkflow(service)
        workflow.select_warehouse("WH-A")
        workflow.select_date(COUNT_DATE)
        workflow.set_case_count(0, "28")
        assert workflow.lines[0].quantity == Decimal("112")
        workflow.complete_count()
        workflow.confirm_variances()
        adjustment = workflow.generate_adjustment()
        assert adjustment["details"][0]["comments"] == "Count overage"

        snapshot, _ = service.start_count("WH-A", COUNT_DATE)
        assert snapshot[0].on_hand_stock == Decimal("112")

    def test_zero_variances_hidden_from_review(self, db_session, record_transaction):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "10"), ("Gizmo", "4")], "Received")

        workflow = CountWorkflow(InventoryCountService(db_session))
        workflow.select_warehouse("WH-A")
        workflow.select_date(COUNT_DATE)
        widget = next(i for i, l in enumerate(workflow.lines) if l.item_name == "Widget")
        gizmo = next(i for i, l in enumerate(workflow.lines) if l.item_name == "Gizmo")
        workflow.set_quantity(widget, "10")
        workflow.set_quantity(gizmo, "3")
        workflow.complete_count()

        assert len(workflow.variances) == 2
        assert [v.item_name for v in workflow.review_variances] == ["Gizmo"]

    def test_added_item_and_line_edits(self, db_session, master_data):
        workflow = CountWorkflow(InventoryCountService(db_session))
        workflow.select_warehouse("WH-A")
        workflow.select_date(COUNT_DATE)
        assert workflow.lines == []

        line = workflow.add_item("Gizmo")
        assert line.inventory_status == InventoryStatus.STOCK
        assert line.uom_per_each == Decimal("5")

        workflow.set_inventory_status(0, "Consignment")
        workflow.set_notes(0, "found on back shelf")
        workflow.set_quantity(0, "15")
        assert workflow.lines[0].case_count == Decimal("3")

        variances = workflow.complete_count()
        assert variances[0].inventory_status == InventoryStatus.CONSIGNMENT
        assert variances[0].variance == Decimal("15")

    def test_complete_requires_a_line(self, db_session, master_data):
        workflow = CountWorkflow(InventoryCountService(db_session))
        workflow.select_warehouse("WH-A")
        workflow.select_date(COUNT_DATE)
        with pytest.raises(ValidationError):
            workflow.complete_count()

    def test_steps_are_ordered_and_back_navigable(self, db_session, master_data):
        workflow = CountWorkflow(InventoryCountService(db_session))
        with pytest.raises(BusinessLogicError):
            workflow.select_date(COUNT_DATE)

        workflow.select_warehouse("WH-A")
        workflow.select_date(COUNT_DATE)
        workflow.add_item("Widget")
        workflow.remove_line(0)
        workflow.add_item("Widget")

        assert workflow.back() == CountStep.DATE
        assert workflow.back() == CountStep.WAREHOUSE
        assert workflow.back() == CountStep.WAREHOUSE
        assert workflow.warehouse == "WH-A"
        assert len(workflow.lines) == 1

    def test_unknown_warehouse(self, db_session, master_data):
        workflow = CountWorkflow(InventoryCountService(db_session))
        with pytest.raises(NotFoundError):
            workflow.select_warehouse("Nowhere")
        assert workflow.step == CountStep.WAREHOUSE
