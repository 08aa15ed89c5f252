# backend/modules/menu/services/menu_service.py

from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from ..models.menu_models import MenuCategory, MenuItem
from ..schemas.menu_schemas import (
    MenuCategoryCreate,
    MenuCategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
)

logger = logging.getLogger(__name__)


class MenuService:
    """Catalogue that order lines are priced from"""

    def __init__(self, db: Session):
        self.db = db

    # Categories

    def get_categories(self) -> List[MenuCategory]:
        return self.db.query(MenuCategory).order_by(
            MenuCategory.display_order, MenuCategory.name
        ).all()

    def get_category_by_id(self, category_id: int) -> MenuCategory:
        category = self.db.query(MenuCategory).filter(
            MenuCategory.id == category_id
        ).first()
        if not category:
            raise NotFoundError(f"Menu category {category_id} not found")
        return category

    def create_category(self, category_data: MenuCategoryCreate) -> MenuCategory:
        existing = self.db.query(MenuCategory).filter(
            MenuCategory.name == category_data.name
        ).first()
        if existing:
            raise ConflictError(f"Category '{category_data.name}' already exists")

        category = MenuCategory(**category_data.model_dump())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"Created menu category {category.name}")
        return category

    def update_category(self, category_id: int, category_data: MenuCategoryUpdate) -> MenuCategory:
        category = self.get_category_by_id(category_id)
        for field, value in category_data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    # Items

    def get_menu_items(
        self,
        category_id: Optional[int] = None,
        available_only: bool = False,
    ) -> List[MenuItem]:
        query = self.db.query(MenuItem)
        if category_id is not None:
            query = query.filter(MenuItem.category_id == category_id)
        if available_only:
            query = query.filter(MenuItem.is_available.is_(True))
        return query.order_by(MenuItem.name).all()

    def get_menu_item_by_id(self, item_id: int) -> MenuItem:
        item = self.db.query(MenuItem).filter(MenuItem.id == item_id).first()
        if not item:
            raise NotFoundError(f"Menu item {item_id} not found")
        return item

    def create_menu_item(self, item_data: MenuItemCreate) -> MenuItem:
        if item_data.category_id is not None:
            self.get_category_by_id(item_data.category_id)

        item = MenuItem(**item_data.model_dump())
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Created menu item {item.name} at {item.price}")
        return item

    def update_menu_item(self, item_id: int, item_data: MenuItemUpdate) -> MenuItem:
        """Price changes affect new order lines only; placed lines keep their snapshot"""
        item = self.get_menu_item_by_id(item_id)
        changes = item_data.model_dump(exclude_unset=True)
        if changes.get("category_id") is not None:
            self.get_category_by_id(changes["category_id"])
        for field, value in changes.items():
            setattr(item, field, value)
        self.db.commit()
        self.db.refresh(item)
        return item
