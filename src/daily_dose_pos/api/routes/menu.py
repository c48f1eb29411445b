from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.crud.menu import (
    add_category,
    create_menu_item,
    delete_category,
    delete_menu_item,
    get_categories,
    get_menu_items,
    reorder_categories,
    update_menu_item,
)
from daily_dose_pos.crud.settings import get_global_addons
from daily_dose_pos.db.session import get_async_session
from daily_dose_pos.errors import NotFoundError
from daily_dose_pos.realtime import MENU_UPDATE, RealtimeHub, get_realtime
from daily_dose_pos.schemas.menu import (
    CategoryCreate,
    CategoryReorder,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
    MenuRead,
)


router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("", response_model=MenuRead)
async def get_menu(db: AsyncSession = Depends(get_async_session)):
    """
    Категории, активные позиции и глобальные add-on секции.
    """
    return MenuRead(
        categories=await get_categories(db),
        items=[MenuItemRead.model_validate(i) for i in await get_menu_items(db)],
        global_addons=await get_global_addons(db),
    )


@router.post("/items", response_model=MenuItemRead, status_code=201)
async def add_menu_item(
    item_in: MenuItemCreate,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    item = await create_menu_item(db, item_in)
    await hub.broadcast(MENU_UPDATE)
    return MenuItemRead.model_validate(item)


@router.put("/items/{item_id}", response_model=MenuItemRead)
async def edit_menu_item(
    item_id: str,
    item_in: MenuItemUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Частичное обновление позиции меню.
    """
    item = await update_menu_item(db, item_id, item_in)
    await hub.broadcast(MENU_UPDATE)
    return MenuItemRead.model_validate(item)


@router.delete("/items/{item_id}", status_code=204)
async def remove_menu_item(
    item_id: str,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Мягко удаляет позицию.
    """
    deleted = await delete_menu_item(db, item_id)
    if not deleted:
        raise NotFoundError("Item not found")
    await hub.broadcast(MENU_UPDATE)


@router.post("/categories", response_model=List[str])
async def create_category(
    category_in: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    categories = await add_category(db, category_in.name)
    await hub.broadcast(MENU_UPDATE)
    return categories


@router.delete("/categories/{name}", response_model=List[str])
async def remove_category(
    name: str,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    categories = await delete_category(db, name)
    await hub.broadcast(MENU_UPDATE)
    return categories


@router.put("/categories/reorder", response_model=List[str])
async def reorder(
    reorder_in: CategoryReorder,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    categories = await reorder_categories(db, reorder_in.categories)
    await hub.broadcast(MENU_UPDATE)
    return categories
