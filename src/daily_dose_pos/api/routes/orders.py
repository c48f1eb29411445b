from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from daily_dose_pos.crud.analytics import invalidate_analytics_cache
from daily_dose_pos.crud.order import (
    complete_drink_ticket,
    create_order,
    get_active_orders,
    get_drink_tickets,
    get_order_by_id,
    mark_order_paid,
    update_order_status,
)
from daily_dose_pos.db.session import get_async_session
from daily_dose_pos.errors import NotFoundError
from daily_dose_pos.realtime import ORDER_NEW, ORDER_UPDATE, RealtimeHub, get_realtime
from daily_dose_pos.schemas.order import OrderCreate, OrderPayment, OrderRead, OrderStatusUpdate
from daily_dose_pos.state import AppState, get_app_state


router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderRead])
async def list_orders(db: AsyncSession = Depends(get_async_session)):
    """
    Возвращает заказы в работе за последние сутки (без закрытых и отменённых).
    """
    orders = await get_active_orders(db)
    return [OrderRead.from_orm_with_name(o) for o in orders]


@router.post("", response_model=OrderRead, status_code=201)
async def create_order_endpoint(
    order_in: OrderCreate,
    db: AsyncSession = Depends(get_async_session),
    state: AppState = Depends(get_app_state),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Создаёт заказ. Итог считается на сервере.
    403: день не открыт или включён режим обслуживания.
    """
    order = await create_order(db, order_in, state)
    invalidate_analytics_cache()
    await hub.broadcast(ORDER_NEW, order)
    return order


@router.get("/drink-tickets", response_model=List[OrderRead])
async def list_drink_tickets(db: AsyncSession = Depends(get_async_session)):
    """
    Очередь напиточных тикетов (не зависит от статуса заказа).
    """
    orders = await get_drink_tickets(db)
    return [OrderRead.from_orm_with_name(o) for o in orders]


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str = Path(..., description="ID заказа"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Возвращает детализацию заказа по id.
    """
    order = await get_order_by_id(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return OrderRead.from_orm_with_name(order)


@router.patch("/{order_id}/status", response_model=OrderRead)
async def patch_order_status(
    order_id: str,
    status_in: OrderStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Смена статуса: new -> preparing -> ready -> completed, отмена/аннулирование.
    """
    order = await update_order_status(db, order_id, status_in.status)
    await hub.broadcast(ORDER_UPDATE, order)
    return order


@router.patch("/{order_id}/pay", response_model=OrderRead)
async def pay_order(
    order_id: str,
    payment_in: OrderPayment,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    """
    Отмечает отложенный (Pay Later) заказ оплаченным.
    """
    order = await mark_order_paid(db, order_id, payment_in)
    await hub.broadcast(ORDER_UPDATE, order)
    return order


@router.patch("/{order_id}/drink-ticket", response_model=OrderRead)
async def complete_drink_ticket_endpoint(
    order_id: str,
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime),
):
    order = await complete_drink_ticket(db, order_id)
    await hub.broadcast(ORDER_UPDATE, order)
    return order
