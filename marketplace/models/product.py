from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, func
from .base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    name_en = Column(String(255), nullable=False)
    name_ar = Column(String(255), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    discounted_price = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="RWF")
    is_active = Column(Boolean, nullable=False, default=True)
    max_quantity_per_order = Column(Integer, nullable=False, default=10)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
