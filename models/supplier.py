from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.orm import relationship

from models.base import Base, new_id


class Supplier(Base):
    """
    Supplier that project items are bought from and purchase orders are addressed to.
    """
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=new_id, index=True)
    name = Column(String(255), nullable=False, index=True)
    contact_email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier", lazy="select")
