# backend/modules/menu/models/menu_models.py

from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric,
                        Text, Boolean, CheckConstraint)
from sqlalchemy.orm import relationship
from core.database import Base
from core.mixins import TimestampMixin


class MenuCategory(Base, TimestampMixin):
    """Menu categories for organizing menu items"""
    __tablename__ = "menu_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    menu_items = relationship("MenuItem", back_populates="category")

    def __repr__(self):
        return f"<MenuCategory(id={self.id}, name='{self.name}')>"


class MenuItem(Base, TimestampMixin):
    """Individual menu items"""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("menu_categories.id"), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    category = relationship("MenuCategory", back_populates="menu_items")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_menu_item_price"),
    )

    def __repr__(self):
        return f"<MenuItem(id={self.id}, name='{self.name}', price={self.price})>"
