"""
Transaction Models
Inventory transaction headers and their item lines
"""
import uuid

from sqlalchemy import Column, String, Date, Numeric, Text, ForeignKey, TIMESTAMP, Index
from sqlalchemy.orm import relationship

from inventory_app.core.database import Base, utc_now
from inventory_app.models.master_data import Warehouse


def _new_id() -> str:
    return str(uuid.uuid4())


class TransactionHeader(Base):
    """
    Transaction Header

    One inbound, outbound or adjustment document. Transfer orders are two
    headers, the inbound leg pointing at the outbound via related_transaction_id.
    """
    __tablename__ = "transaction_header"
    __table_args__ = (
        Index("ix_transaction_header_reference_number", "reference_number"),
        Index("ix_transaction_header_warehouse_date", "warehouse", "transaction_date"),
    )

    transaction_id = Column(String(36), primary_key=True, default=_new_id)
    transaction_type = Column(String(20), nullable=False)  # Inbound, Outbound, Adjustment
    transaction_date = Column(Date, nullable=False)
    warehouse = Column(String(100), ForeignKey(Warehouse.common_name))
    reference_type = Column(String(50))  # Sales Order, Purchase Order, Transfer Order, Inventory Count, Other
    reference_number = Column(String(30), nullable=False)

    # Shipping / customer fields
    shipment_carrier = Column(String(100))
    shipping_document = Column(String(100))
    customer_po = Column(String(100))
    customer_name = Column(String(200))
    comments = Column(Text)

    related_transaction_id = Column(String(36), ForeignKey("transaction_header.transaction_id"))

    # Audit
    created_by = Column(String(36))
    last_edited_by = Column(String(36))
    created_at = Column(TIMESTAMP(timezone=True), default=utc_now)
    last_updated_at = Column(TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now)

    details = relationship(
        "TransactionDetail",
        back_populates="header",
        order_by="TransactionDetail.created_at",
    )


class TransactionDetail(Base):
    """Transaction line: one item, signed quantity, inventory and line status"""
    __tablename__ = "transaction_detail"

    detail_id = Column(String(36), primary_key=True, default=_new_id)
    transaction_id = Column(String(36), ForeignKey("transaction_header.transaction_id"), nullable=False, index=True)
    item_name = Column(String(300), ForeignKey("item.item_name"), nullable=False, index=True)
    quantity = Column(Numeric(14, 3), nullable=False, default=0)
    inventory_status = Column(String(20), nullable=False, default="Stock")  # Stock, Consignment, Hold
    status = Column(String(20), nullable=False, default="Pending")  # Pending, Shipped, Received, Completed
    lot_number = Column(String(100))
    comments = Column(Text)

    # Audit
    created_by = Column(String(36))
    last_edited_by = Column(String(36))
    created_at = Column(TIMESTAMP(timezone=True), default=utc_now)
    last_updated_at = Column(TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now)

    header = relationship("TransactionHeader", back_populates="details")
