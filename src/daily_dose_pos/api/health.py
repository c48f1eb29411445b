from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.db.session import get_async_session
from daily_dose_pos.state import AppState, get_app_state
from daily_dose_pos.utils import utcnow

router = APIRouter()


@router.get("/health", summary="Health check")
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    state: AppState = Depends(get_app_state),
):
    """
    Health-check: доступность БД и флаги кассы.
    """
    await db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "maintenance": state.maintenance,
        "testMode": state.test_mode,
        "timestamp": utcnow(),
    }
