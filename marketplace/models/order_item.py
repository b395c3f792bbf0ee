from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from .base import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    special_instructions = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
