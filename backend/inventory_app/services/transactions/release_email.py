"""
Release Email
Plain-text release/shipping request for one transaction, ready to paste
into a message to the warehouse and the carrier.
"""
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional

from inventory_app.services.master_data.master_data_service import format_number

PLACEHOLDER = "{Update}"
WAREHOUSE_PLACEHOLDER = "{Update Warehouse}"
CUSTOMER_PLACEHOLDER = "{Update Customer}"
ADDRESS_PLACEHOLDER = "{Update Address}"


def or_placeholder(value: Optional[str], placeholder: str = PLACEHOLDER) -> str:
    if value and value.strip():
        return value.strip()
    return placeholder


def release_item_line(
    item_name: str,
    quantity,
    uom_per_each=None,
    package_type: Optional[str] = None,
    units_of_units: Optional[str] = None,
) -> str:
    """
    "40 gal / 10 cases Widget 4x1 gal/case"

    Cases are whole packages (floor of quantity / uom_per_each); the package
    type is pluralised unless exactly one. Items without a pack size count
    one unit per package.
    """
    volume = Decimal(str(quantity or 0))
    uom = Decimal(str(uom_per_each)) if uom_per_each else Decimal("1")
    package = package_type or "unit"
    units = units_of_units or "unit"

    cases = math.floor(volume / uom)
    packages = package if cases == 1 else f"{package}s"
    return f"{format_number(volume)} {units} / {cases} {packages} {item_name}"


def render_release_email(
    customer_po: Optional[str],
    pickup_location: Optional[str],
    ship_to_address: Optional[str],
    item_lines: List[str],
) -> str:
    return (
        "Hi,\n"
        "\n"
        f"Please release the following on PO {or_placeholder(customer_po)}\n"
        + "\n".join(item_lines) + "\n"
        "\n"
        "Hi eShipping,\n"
        "\n"
        "Pick Up:\n"
        f"{or_placeholder(pickup_location)}\n"
        "\n"
        "Ship to:\n"
        f"{or_placeholder(ship_to_address)}\n"
        "\n"
        "Thank you!"
    )


def build_release_email(rows: List[Dict[str, Any]], pack_sizes: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Release email from the vw_transaction_full rows of one transaction

    pack_sizes maps item name to its uom_per_each, package_type and
    units_of_units; items missing from it fall back to one unit per package.
    The ship-to address is taken from the header comments.
    """
    first = rows[0]
    lines = []
    for row in rows:
        if row.get("detail_id") is None:
            continue
        pack = pack_sizes.get(row["item_name"], {})
        lines.append(release_item_line(
            row["item_name"],
            row["quantity"],
            pack.get("uom_per_each"),
            pack.get("package_type"),
            pack.get("units_of_units"),
        ))

    pickup_location = or_placeholder(first.get("warehouse"), WAREHOUSE_PLACEHOLDER)
    ship_to_address = or_placeholder(first.get("header_comments"), ADDRESS_PLACEHOLDER)
    return {
        "reference_number": first["reference_number"],
        "customer_po": first.get("customer_po"),
        "pickup_location": pickup_location,
        "ship_to_name": or_placeholder(first.get("customer_name"), CUSTOMER_PLACEHOLDER),
        "ship_to_address": ship_to_address,
        "item_lines": lines,
        "content": render_release_email(first.get("customer_po"), pickup_location, ship_to_address, lines),
    }
