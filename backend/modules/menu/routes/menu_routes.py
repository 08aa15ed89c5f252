# backend/modules/menu/routes/menu_routes.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from core.auth import Actor, ActorRole, get_current_actor, require_roles
from core.database import get_db
from ..services.menu_service import MenuService
from ..schemas.menu_schemas import (
    MenuCategory, MenuCategoryCreate, MenuCategoryUpdate, MenuCategoryWithItems,
    MenuItem, MenuItemCreate, MenuItemUpdate,
)


router = APIRouter(prefix="/api/v1/menu", tags=["Menu"])

require_admin = require_roles([ActorRole.ADMIN])


def get_menu_service(db: Session = Depends(get_db)) -> MenuService:
    """Dependency to get menu service instance"""
    return MenuService(db)


# Menu Categories
@router.post("/categories", response_model=MenuCategory, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: MenuCategoryCreate,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(require_admin),
):
    return menu_service.create_category(category_data)


@router.get("/categories", response_model=List[MenuCategory])
async def get_categories(
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(get_current_actor),
):
    return menu_service.get_categories()


@router.get("/categories/{category_id}", response_model=MenuCategoryWithItems)
async def get_category_by_id(
    category_id: int,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(get_current_actor),
):
    """Get a category by ID with its items"""
    return menu_service.get_category_by_id(category_id)


@router.put("/categories/{category_id}", response_model=MenuCategory)
async def update_category(
    category_id: int,
    category_data: MenuCategoryUpdate,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(require_admin),
):
    return menu_service.update_category(category_id, category_data)


# Menu Items
@router.post("/items", response_model=MenuItem, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    item_data: MenuItemCreate,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(require_admin),
):
    return menu_service.create_menu_item(item_data)


@router.get("/items", response_model=List[MenuItem])
async def get_menu_items(
    category_id: Optional[int] = Query(None),
    available_only: bool = Query(False),
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(get_current_actor),
):
    return menu_service.get_menu_items(category_id, available_only)


@router.get("/items/{item_id}", response_model=MenuItem)
async def get_menu_item(
    item_id: int,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(get_current_actor),
):
    return menu_service.get_menu_item_by_id(item_id)


@router.put("/items/{item_id}", response_model=MenuItem)
async def update_menu_item(
    item_id: int,
    item_data: MenuItemUpdate,
    menu_service: MenuService = Depends(get_menu_service),
    actor: Actor = Depends(require_admin),
):
    return menu_service.update_menu_item(item_id, item_data)
