from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func
from .base import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    # legacy mirror of name_en
    name = Column(String(255), nullable=False)
    name_en = Column(String(255), nullable=False)
    name_ar = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    parent_category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    image_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
