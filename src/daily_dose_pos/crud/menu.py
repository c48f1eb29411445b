import logging
import time
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.errors import NotFoundError, OrderValidationError
from daily_dose_pos.models import Category, MenuItem
from daily_dose_pos.schemas.menu import MenuItemCreate, MenuItemRead, MenuItemUpdate

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "All"


def _flavors_to_json(flavors) -> list:
    return [f if isinstance(f, str) else f.model_dump(mode="json") for f in (flavors or [])]


async def get_categories(db: AsyncSession) -> List[str]:
    result = await db.execute(select(Category.name).order_by(Category.sort_order, Category.name))
    return list(result.scalars().all())


async def get_menu_items(db: AsyncSession) -> List[MenuItem]:
    """Активные позиции (без мягко удалённых), по категории и имени."""
    stmt = (
        select(MenuItem)
        .where(or_(MenuItem.deleted.is_(False), MenuItem.deleted.is_(None)))
        .order_by(MenuItem.category, MenuItem.name)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_menu_items_by_ids(db: AsyncSession, ids: List[str]) -> dict[str, MenuItemRead]:
    if not ids:
        return {}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
    return {m.id: MenuItemRead.model_validate(m) for m in result.scalars().all()}


async def create_menu_item(db: AsyncSession, item_in: MenuItemCreate) -> MenuItem:
    item = MenuItem(
        id=item_in.id or str(int(time.time() * 1000)),
        name=item_in.name,
        price=item_in.price,
        category=item_in.category,
        type=item_in.type,
        emoji=item_in.emoji,
        image=item_in.image,
        description=item_in.description,
        flavors=_flavors_to_json(item_in.flavors),
        max_flavors=item_in.max_flavors,
        is_available=item_in.is_available,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info("Menu item %s created", item.id)
    return item


async def update_menu_item(db: AsyncSession, item_id: str, item_in: MenuItemUpdate) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if not item or item.deleted:
        raise NotFoundError("Item not found")

    update_data = item_in.model_dump(exclude_unset=True)
    if not update_data:
        raise OrderValidationError("No updates provided")

    for key, value in update_data.items():
        if key == "flavors":
            value = _flavors_to_json(getattr(item_in, "flavors"))
        setattr(item, key, value)

    await db.commit()
    await db.refresh(item)
    return item


async def delete_menu_item(db: AsyncSession, item_id: str) -> bool:
    """Мягкое удаление: позиция остаётся для истории заказов."""
    item = await db.get(MenuItem, item_id)
    if not item:
        return False
    item.deleted = True
    await db.commit()
    return True


async def add_category(db: AsyncSession, name: str) -> List[str]:
    if await db.get(Category, name) is None:
        db.add(Category(name=name))
        await db.commit()
    return await get_categories(db)


async def delete_category(db: AsyncSession, name: str) -> List[str]:
    if name == DEFAULT_CATEGORY:
        raise OrderValidationError("Cannot delete default category")
    category = await db.get(Category, name)
    if category:
        await db.delete(category)
        await db.commit()
    return await get_categories(db)


async def reorder_categories(db: AsyncSession, names: List[str]) -> List[str]:
    for idx, name in enumerate(names):
        category: Optional[Category] = await db.get(Category, name)
        if category:
            category.sort_order = idx
    await db.commit()
    return await get_categories(db)
