from sqlalchemy import Column, DateTime, Numeric, String, func
from .base import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True)
    business_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    delivery_fee = Column(Numeric(12, 2), nullable=False, default=0)
    subscription_status = Column(String(32), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
