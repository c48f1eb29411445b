from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.crud.settings import get_settings, set_setting
from daily_dose_pos.db.session import get_async_session
from daily_dose_pos.realtime import SETTINGS_UPDATE, RealtimeHub, get_realtime
from daily_dose_pos.schemas.settings import SettingWrite


router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=Dict[str, Optional[str]])
async def read_settings(db: AsyncSession = Depends(get_async_session)):
    return await get_settings(db)


@router.post("")
async def write_setting(
    setting_in: SettingWrite,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Сохраняет значение настройки и рассылает settings:update.
    """
    await set_setting(db, setting_in.key, setting_in.value)
    await hub.broadcast(SETTINGS_UPDATE, {"key": setting_in.key, "value": setting_in.value})
    return {"success": True, "key": setting_in.key, "value": setting_in.value}
