import logging
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from daily_dose_pos.config import settings
from daily_dose_pos.core.order_state import (
    DrinkTicketEnum,
    OrderStatusEnum,
    PaymentStatusEnum,
    check_payment,
    check_transition,
    drink_ticket_on_create,
    drink_ticket_on_status,
    initial_payment_status,
)
from daily_dose_pos.core.pricing import ZERO, line_total, to_cents
from daily_dose_pos.crud.menu import get_menu_items_by_ids
from daily_dose_pos.crud.session import get_open_session, increment_session_counters
from daily_dose_pos.crud.settings import get_global_addons
from daily_dose_pos.errors import (
    InvalidTransitionError,
    MaintenanceModeError,
    NotFoundError,
    OrderValidationError,
    StoreClosedError,
)
from daily_dose_pos.models import Order, OrderItem
from daily_dose_pos.schemas.order import OrderCreate, OrderPayment, OrderRead
from daily_dose_pos.state import AppState
from daily_dose_pos.utils import generate_order_id, utcnow

logger = logging.getLogger(__name__)

INACTIVE_STATUSES = (
    OrderStatusEnum.closed.value,
    OrderStatusEnum.cancelled.value,
    OrderStatusEnum.voided.value,
)


async def get_active_orders(db: AsyncSession, window_hours: Optional[int] = None) -> List[Order]:
    """
    Возвращает заказы в работе: не закрытые, не отменённые и не аннулированные,
    созданные за последние window_hours часов. Новые первыми.
    """
    window_hours = window_hours or settings.ACTIVE_ORDERS_WINDOW_HOURS
    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.status.not_in(INACTIVE_STATUSES))
        .where(Order.created_at > utcnow() - timedelta(hours=window_hours))
        .order_by(Order.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_order_by_id(db: AsyncSession, order_id: str) -> Optional[Order]:
    """
    Возвращает заказ по ID с подгруженными items.
    Предотвращает MissingGreenlet при сериализации.
    """
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalars().unique().first()


async def _get_order_or_404(db: AsyncSession, order_id: str) -> Order:
    order = await get_order_by_id(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


async def create_order(db: AsyncSession, order_in: OrderCreate, state: AppState) -> OrderRead:
    """
    Создаёт заказ одной транзакцией: заказ, позиции и инкремент счётчиков сессии.
    Итог пересчитывается на сервере по ценам из БД; итог клиента игнорируется.
    """
    if state.maintenance:
        raise MaintenanceModeError()

    open_session = await get_open_session(db)
    if open_session is None and not state.test_mode:
        raise StoreClosedError()

    menu = await get_menu_items_by_ids(db, list({i.menu_item.id for i in order_in.items}))
    global_addons = await get_global_addons(db)

    total = ZERO
    order_items = []
    for item in order_in.items:
        menu_item = menu.get(item.menu_item.id)
        if menu_item is None:
            raise OrderValidationError(f"Item {item.menu_item.name} not found")

        item_total = line_total(menu_item, item.selected_flavors, item.quantity, global_addons)
        total += item_total
        order_items.append(OrderItem(
            menu_item_id=menu_item.id,
            menu_item_name=menu_item.name,
            menu_item_type=menu_item.type,
            menu_item_emoji=menu_item.emoji,
            price=menu_item.price,
            line_total=to_cents(item_total),
            quantity=item.quantity,
            selected_flavors=list(item.selected_flavors),
        ))

    total = to_cents(total)
    is_test = order_in.is_test or state.test_mode
    order = Order(
        id=generate_order_id(),
        customer_name=order_in.customer_name or "Guest",
        total_amount=total,
        status=OrderStatusEnum.new.value,
        payment_status=initial_payment_status(order_in.payment_method).value,
        payment_method=order_in.payment_method,
        amount_tendered=order_in.amount_tendered,
        change_amount=order_in.change_amount,
        table_number=order_in.table_number,
        beeper_number=order_in.beeper_number,
        order_type=order_in.order_type,
        is_test=is_test,
        drink_ticket=_ticket_value(drink_ticket_on_create(i.menu_item_type for i in order_items)),
        created_at=utcnow(),
        items=order_items,
    )
    db.add(order)

    if open_session is not None and not is_test:
        await increment_session_counters(db, open_session.id, total)

    await db.commit()
    logger.info("Order %s created: total=%s test=%s", order.id, total, is_test)

    # загружаем заказ обратно с items
    order = await _get_order_or_404(db, order.id)
    return OrderRead.from_orm_with_name(order)


async def update_order_status(db: AsyncSession, order_id: str, status: OrderStatusEnum) -> OrderRead:
    """
    Меняет статус заказа по таблице переходов.
    Повторная установка того же статуса ничего не меняет.
    """
    order = await _get_order_or_404(db, order_id)

    changed = check_transition(order.status, status, order.payment_status, order.payment_method)
    if changed:
        previous = order.status
        order.status = status.value
        order.drink_ticket = _ticket_value(drink_ticket_on_status(
            order.drink_ticket, status, (i.menu_item_type for i in order.items)
        ))
        await db.commit()
        logger.info("Order %s: %s -> %s", order_id, previous, status.value)

    order = await _get_order_or_404(db, order_id)
    return OrderRead.from_orm_with_name(order)


async def mark_order_paid(db: AsyncSession, order_id: str, payment: OrderPayment) -> OrderRead:
    order = await _get_order_or_404(db, order_id)
    check_payment(order.payment_status, payment.payment_method)

    order.payment_status = PaymentStatusEnum.paid.value
    order.payment_method = payment.payment_method
    order.amount_tendered = payment.amount_tendered if payment.amount_tendered is not None else Decimal("0")
    order.change_amount = payment.change_amount if payment.change_amount is not None else Decimal("0")
    await db.commit()
    logger.info("Order %s marked as paid (%s)", order_id, payment.payment_method)

    order = await _get_order_or_404(db, order_id)
    return OrderRead.from_orm_with_name(order)


async def get_drink_tickets(db: AsyncSession) -> List[Order]:
    """Открытые напиточные тикеты, старые первыми (очередь бариста)."""
    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.drink_ticket == DrinkTicketEnum.pending.value)
        .where(Order.status.not_in((
            OrderStatusEnum.cancelled.value,
            OrderStatusEnum.voided.value,
            OrderStatusEnum.closed.value,
        )))
        .order_by(Order.created_at.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def complete_drink_ticket(db: AsyncSession, order_id: str) -> OrderRead:
    """Закрывает напиточный тикет. Статус заказа не меняется."""
    order = await _get_order_or_404(db, order_id)
    if order.drink_ticket is None:
        raise InvalidTransitionError("Order has no drink ticket")

    if order.drink_ticket != DrinkTicketEnum.done.value:
        order.drink_ticket = DrinkTicketEnum.done.value
        await db.commit()
        logger.info("Drink ticket for order %s completed", order_id)

    order = await _get_order_or_404(db, order_id)
    return OrderRead.from_orm_with_name(order)


def _ticket_value(ticket) -> Optional[str]:
    if ticket is None:
        return None
    return ticket.value if isinstance(ticket, DrinkTicketEnum) else ticket
