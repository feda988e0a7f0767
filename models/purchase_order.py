from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from models.base import Base, new_id


class PurchaseOrder(Base):
    """
    Purchase order placed with one supplier on behalf of a project.
    Membership is not stored here: the items of an order are the project items
    whose purchase_order_id points at it.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        Index("ix_purchase_orders_project_status", "project_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=new_id, index=True)
    project_id = Column(String(36), nullable=False, index=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_number = Column(String(100), nullable=False, index=True)
    order_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, server_default="draft")  # draft|sent|confirmed|received|cancelled
    notes = Column(Text, nullable=True)
    delivery_deadline = Column(String(50), nullable=True)
    delivery_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="purchase_orders", lazy="joined")
