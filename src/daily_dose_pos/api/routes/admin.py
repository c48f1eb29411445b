from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.crud.analytics import get_analytics, invalidate_analytics_cache
from daily_dose_pos.crud.session import close_day, get_open_session, get_session_detail, list_sessions, open_day
from daily_dose_pos.db.session import get_async_session
from daily_dose_pos.realtime import SESSION_UPDATE, RealtimeHub, get_realtime
from daily_dose_pos.schemas.order import OrderRead
from daily_dose_pos.schemas.session import (
    CloseDaySummary,
    FlagsUpdate,
    HistoryItem,
    HistoryMeta,
    HistoryPage,
    SessionDetail,
    SessionRead,
    StoreStatus,
)
from daily_dose_pos.state import AppState, get_app_state


router = APIRouter(prefix="/admin", tags=["admin"])


async def _store_status(db: AsyncSession, state: AppState) -> StoreStatus:
    session = await get_open_session(db)
    return StoreStatus(
        status="OPEN" if session else "CLOSED",
        session=SessionRead.model_validate(session) if session else None,
        maintenance=state.maintenance,
        is_test=state.test_mode,
    )


@router.get("/status", response_model=StoreStatus)
async def store_status(
    db: AsyncSession = Depends(get_async_session),
    state: AppState = Depends(get_app_state),
):
    """
    Открыт ли день, плюс флаги обслуживания и тестового режима.
    """
    return await _store_status(db, state)


@router.post("/open-day", response_model=SessionRead)
async def open_day_endpoint(
    db: AsyncSession = Depends(get_async_session),
    state: AppState = Depends(get_app_state),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Открывает рабочий день. 400, если день уже открыт.
    """
    session = await open_day(db)
    state.maintenance = False
    await hub.broadcast(SESSION_UPDATE, {"status": "OPEN"})
    return session


@router.post("/close-day", response_model=CloseDaySummary)
async def close_day_endpoint(
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Закрывает день: итоги сессии и перевод всех заказов в closed.
    400, если открытого дня нет.
    """
    summary = await close_day(db)
    invalidate_analytics_cache()
    await hub.broadcast(SESSION_UPDATE, {"status": "CLOSED"})
    return summary


@router.patch("/flags", response_model=StoreStatus)
async def update_flags(
    flags_in: FlagsUpdate,
    db: AsyncSession = Depends(get_async_session),
    state: AppState = Depends(get_app_state),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Переключает режим обслуживания и тестовый режим.
    """
    if flags_in.maintenance is not None:
        state.maintenance = flags_in.maintenance
    if flags_in.is_test is not None:
        state.test_mode = flags_in.is_test

    status = await _store_status(db, state)
    await hub.broadcast(SESSION_UPDATE, {"maintenance": state.maintenance, "isTest": state.test_mode})
    return status


@router.get("/history", response_model=HistoryPage)
async def history(
    page: int = Query(1, ge=1, description="Номер страницы"),
    limit: int = Query(10, ge=1, le=100, description="Количество записей на странице"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Закрытые дни, последние первыми. Итоги доступны без ограничения срока.
    """
    sessions, meta = await list_sessions(db, page=page, limit=limit)
    return HistoryPage(
        items=[HistoryItem.from_session(s) for s in sessions],
        meta=HistoryMeta(**meta),
    )


@router.get("/history/{session_id}", response_model=SessionDetail)
async def history_detail(session_id: int, db: AsyncSession = Depends(get_async_session)):
    """
    Заказы дня. 410: детализация старше срока хранения.
    """
    session, orders = await get_session_detail(db, session_id)
    summary = HistoryItem.from_session(session)
    return SessionDetail(
        **summary.model_dump(),
        orders=[OrderRead.from_orm_with_name(o) for o in orders],
    )


@router.get("/analytics")
async def analytics(
    period: Literal["today", "week", "month"] = Query("week", description="Период"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Топ позиций, выручка по дням, заказы по часам и количество напитков.
    """
    return await get_analytics(db, period)
