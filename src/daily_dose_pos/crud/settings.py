import json
import logging
from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.errors import OrderValidationError
from daily_dose_pos.models import Setting
from daily_dose_pos.schemas.menu import GlobalAddonSection
from daily_dose_pos.schemas.settings import GLOBAL_ADDONS_KEY

logger = logging.getLogger(__name__)

_addons_adapter = TypeAdapter(List[GlobalAddonSection])


async def get_settings(db: AsyncSession) -> Dict[str, Optional[str]]:
    result = await db.execute(select(Setting))
    return {row.key: row.value for row in result.scalars().all()}


async def get_setting(db: AsyncSession, key: str) -> Optional[str]:
    setting = await db.get(Setting, key)
    return setting.value if setting else None


async def set_setting(db: AsyncSession, key: str, value: str) -> Setting:
    """
    Upsert настройки. global_addons проверяется до записи.
    """
    if key == GLOBAL_ADDONS_KEY:
        try:
            _addons_adapter.validate_json(value)
        except ValidationError as e:
            raise OrderValidationError(f"Invalid global add-ons: {e.errors()[0]['msg']}") from e

    setting = await db.get(Setting, key)
    if setting is None:
        setting = Setting(key=key, value=value)
        db.add(setting)
    else:
        setting.value = value
    await db.commit()
    return setting


async def get_global_addons(db: AsyncSession) -> List[GlobalAddonSection]:
    """
    Каталог глобальных add-on секций. Битое значение не ломает заказы:
    пишем в лог и считаем каталог пустым.
    """
    raw = await get_setting(db, GLOBAL_ADDONS_KEY)
    if not raw:
        return []
    try:
        return _addons_adapter.validate_json(raw)
    except (ValidationError, json.JSONDecodeError):
        logger.error("Failed to parse global add-ons setting", exc_info=True)
        return []
