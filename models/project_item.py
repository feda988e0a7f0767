from sqlalchemy import Column, String, Numeric, Boolean, DateTime, ForeignKey, false, func

from models.base import Base, new_id


class ProjectItem(Base):
    """
    Line item of a project budget (a product, its quantity and unit cost).
    status and purchase_order_id are maintained by the reconciliation service only.
    """
    __tablename__ = "project_items"

    id = Column(String(36), primary_key=True, default=new_id, index=True)
    project_id = Column(String(36), nullable=False, index=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False, server_default="1")
    unit_cost = Column(Numeric(12, 2), nullable=False, server_default="0")

    status = Column(String(20), nullable=False, server_default="pending")  # pending|ordered|received
    purchase_order_id = Column(
        String(36), ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_excluded = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
