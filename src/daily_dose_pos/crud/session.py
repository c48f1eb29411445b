"""
Учёт рабочего дня (сессии кассы).

Счётчики total_orders / total_sales накапливаются при создании заказов
и не пересчитываются при чтении. Отмена заказа счётчики не уменьшает.
"""
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from daily_dose_pos.config import settings
from daily_dose_pos.core.order_state import OrderStatusEnum
from daily_dose_pos.core.pricing import to_cents
from daily_dose_pos.errors import NoOpenSessionError, NotFoundError, SessionAlreadyOpenError, SessionExpiredError
from daily_dose_pos.models import Order, StoreSession
from daily_dose_pos.schemas.session import CloseDaySummary
from daily_dose_pos.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

OPEN = "OPEN"
CLOSED = "CLOSED"


async def get_open_session(db: AsyncSession) -> Optional[StoreSession]:
    result = await db.execute(select(StoreSession).where(StoreSession.status == OPEN))
    return result.scalars().first()


async def open_day(db: AsyncSession) -> StoreSession:
    """
    Открывает день. Вторая открытая сессия отсекается проверкой
    и, при гонке, уникальным частичным индексом.
    """
    if await get_open_session(db) is not None:
        raise SessionAlreadyOpenError()

    session = StoreSession(status=OPEN, opened_at=utcnow(), total_orders=0, total_sales=Decimal("0"))
    db.add(session)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise SessionAlreadyOpenError() from e

    await db.refresh(session)
    logger.info("Session %s opened", session.id)
    return session


async def increment_session_counters(db: AsyncSession, session_id: int, order_total: Decimal) -> None:
    """
    Атомарный инкремент счётчиков. Без commit: выполняется
    в транзакции создания заказа.
    """
    await db.execute(
        update(StoreSession)
        .where(StoreSession.id == session_id)
        .values(
            total_orders=StoreSession.total_orders + 1,
            total_sales=StoreSession.total_sales + order_total,
        )
    )


async def close_day(db: AsyncSession) -> CloseDaySummary:
    """
    Закрывает день одной транзакцией:
    - фиксирует счётчики и closed_at сессии;
    - переводит все незакрытые заказы в closed.
    """
    session = await get_open_session(db)
    if session is None:
        raise NoOpenSessionError()

    now = utcnow()

    # сверка накопительных счётчиков с заказами (только в лог)
    result = await db.execute(
        select(
            func.count(Order.id).label("count_orders"),
            func.sum(Order.total_amount).label("total_sales"),
        )
        .where(Order.is_test.is_(False))
        .where(Order.status != OrderStatusEnum.closed.value)
        .where(Order.created_at >= session.opened_at)
    )
    row = result.first()
    logged_sales = to_cents(Decimal(str(row.total_sales or 0)))
    if row.count_orders != session.total_orders or logged_sales != to_cents(Decimal(str(session.total_sales))):
        logger.warning(
            "Session %s counters (%s, %s) differ from order log (%s, %s)",
            session.id, session.total_orders, session.total_sales, row.count_orders, row.total_sales,
        )

    session.status = CLOSED
    session.closed_at = now

    await db.execute(
        update(Order)
        .where(Order.status != OrderStatusEnum.closed.value)
        .values(status=OrderStatusEnum.closed.value, closed_at=now)
    )
    await db.commit()
    await db.refresh(session)

    logger.info("Session %s closed: %s orders, %s sales", session.id, session.total_orders, session.total_sales)
    return CloseDaySummary(
        date=as_utc(session.opened_at).date(),
        total_orders=session.total_orders,
        total_sales=session.total_sales,
    )


async def list_sessions(db: AsyncSession, page: int = 1, limit: int = 10) -> Tuple[List[StoreSession], dict]:
    """
    Закрытые сессии, новые первыми. Итоги доступны всегда,
    независимо от срока хранения детализации.
    """
    offset = (page - 1) * limit
    result = await db.execute(
        select(StoreSession)
        .where(StoreSession.status == CLOSED)
        .order_by(StoreSession.closed_at.desc())
        .limit(limit)
        .offset(offset)
    )
    items = list(result.scalars().all())

    total = (await db.execute(
        select(func.count(StoreSession.id)).where(StoreSession.status == CLOSED)
    )).scalar_one()

    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
    return items, meta


async def get_session_detail(
    db: AsyncSession,
    session_id: int,
    now: Optional[datetime] = None,
) -> Tuple[StoreSession, List[Order]]:
    """
    Сессия и её заказы. Заказы принадлежат сессии по времени создания
    [opened_at, closed_at], а не по внешнему ключу.
    Детализация доступна SESSION_RETENTION_HOURS после закрытия.
    """
    session = await db.get(StoreSession, session_id)
    if session is None:
        raise NotFoundError("Session not found")

    now = now or utcnow()
    closed_at = as_utc(session.closed_at)
    if closed_at is not None and now - closed_at >= timedelta(hours=settings.SESSION_RETENTION_HOURS):
        raise SessionExpiredError()

    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.created_at >= session.opened_at)
        .order_by(Order.created_at.desc())
    )
    if session.closed_at is not None:
        stmt = stmt.where(Order.created_at <= session.closed_at)

    result = await db.execute(stmt)
    return session, list(result.scalars().unique().all())
