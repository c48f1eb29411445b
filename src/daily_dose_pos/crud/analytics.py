import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.config import settings
from daily_dose_pos.core.order_state import OrderStatusEnum
from daily_dose_pos.models import Order, OrderItem
from daily_dose_pos.utils import utcnow

# period -> (ts, data)
_ANALYTICS_CACHE: Dict[str, Tuple[float, Dict[str, Any]]] = {}

_EXCLUDED_STATUSES = (OrderStatusEnum.cancelled.value, OrderStatusEnum.voided.value)


def invalidate_analytics_cache() -> None:
    _ANALYTICS_CACHE.clear()


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "month":
        return now - timedelta(days=30)
    return now - timedelta(days=7)


def _counted(stmt, date_from: datetime):
    return (
        stmt.where(Order.status.not_in(_EXCLUDED_STATUSES))
        .where(Order.is_test.is_(False))
        .where(Order.created_at >= date_from)
    )


async def get_top_menu_items(db: AsyncSession, date_from: datetime, limit: int = 5) -> List[dict]:
    """
    Топ самых популярных позиций по количеству проданных порций.
    """
    stmt = _counted(
        select(
            OrderItem.menu_item_name.label("name"),
            func.sum(OrderItem.quantity).label("quantity"),
            func.sum(OrderItem.line_total).label("sales"),
        )
        .join(Order, Order.id == OrderItem.order_id),
        date_from,
    ).group_by(OrderItem.menu_item_name).order_by(desc("quantity")).limit(limit)

    result = await db.execute(stmt)
    return [
        {
            "name": row.name,
            "quantity": int(row.quantity or 0),
            "sales": float(row.sales or 0),
        }
        for row in result.all()
    ]


async def get_daily_totals(db: AsyncSession, date_from: datetime) -> List[dict]:
    """
    Выручка и количество заказов по дням.
    """
    day = func.date(Order.created_at)
    stmt = _counted(
        select(
            day.label("date"),
            func.sum(Order.total_amount).label("sales"),
            func.count(Order.id).label("orders"),
        ),
        date_from,
    ).group_by(day).order_by(day)

    result = await db.execute(stmt)
    return [
        {
            "date": str(row.date),
            "sales": float(row.sales or 0),
            "orders": int(row.orders or 0),
        }
        for row in result.all()
    ]


async def get_hourly_stats(db: AsyncSession, date_from: datetime) -> List[dict]:
    """
    Количество заказов по часам суток.
    """
    hour = extract("hour", Order.created_at)
    stmt = _counted(
        select(hour.label("hour"), func.count(Order.id).label("orders")),
        date_from,
    ).group_by(hour).order_by(hour)

    result = await db.execute(stmt)
    rows = result.all()

    # Формируем полный диапазон 0–23, чтобы в ответе были и "пустые" часы
    hours = {int(row.hour): int(row.orders) for row in rows}
    return [
        {"hour": h, "label": f"{h:02d}:00", "orders": hours.get(h, 0)}
        for h in range(24)
    ]


async def get_total_cups(db: AsyncSession, date_from: datetime) -> int:
    """Количество проданных напитков."""
    stmt = _counted(
        select(func.sum(OrderItem.quantity))
        .join(Order, Order.id == OrderItem.order_id)
        .where(OrderItem.menu_item_type == "drink"),
        date_from,
    )
    result = await db.execute(stmt)
    return int(result.scalar() or 0)


async def get_analytics(db: AsyncSession, period: str = "week") -> Dict[str, Any]:
    """
    Сводка для админки с кэшем на ANALYTICS_CACHE_TTL_SECONDS.
    """
    now = time.time()
    cached = _ANALYTICS_CACHE.get(period)
    if cached and now - cached[0] < settings.ANALYTICS_CACHE_TTL_SECONDS:
        return cached[1]

    date_from = period_start(period)
    data = {
        "period": period,
        "topItems": await get_top_menu_items(db, date_from),
        "dailyTotals": await get_daily_totals(db, date_from),
        "hourlyStats": await get_hourly_stats(db, date_from),
        "totalCups": await get_total_cups(db, date_from),
    }
    _ANALYTICS_CACHE[period] = (now, data)
    return data
