"""
Жизненный цикл заказа.

new -> preparing -> ready -> completed
cancelled / voided: административная отмена из незавершённых статусов.
closed: только массово при закрытии дня (close-day), не отдельным действием.
"""
import enum
from typing import Iterable

from daily_dose_pos.errors import InvalidTransitionError, OrderValidationError, PaymentRequiredError


class OrderStatusEnum(str, enum.Enum):
    new = "new"
    preparing = "preparing"
    ready = "ready"
    completed = "completed"
    cancelled = "cancelled"
    closed = "closed"
    voided = "voided"


class PaymentStatusEnum(str, enum.Enum):
    paid = "paid"
    pending = "pending"


class DrinkTicketEnum(str, enum.Enum):
    pending = "pending"
    done = "done"


PAY_LATER = "Pay Later"
PAYMENT_METHODS = ("Cash", "Card", "GCash", "Bank Transfer", PAY_LATER)
# Оплата подтверждается вне кассы: завершению заказа не мешает
PRESETTLED_METHODS = frozenset({"GCash", "Bank Transfer"})

_ADMIN_EXITS = {OrderStatusEnum.cancelled, OrderStatusEnum.voided}

TRANSITIONS = {
    OrderStatusEnum.new: {OrderStatusEnum.preparing} | _ADMIN_EXITS,
    OrderStatusEnum.preparing: {OrderStatusEnum.ready} | _ADMIN_EXITS,
    OrderStatusEnum.ready: {OrderStatusEnum.completed} | _ADMIN_EXITS,
    OrderStatusEnum.completed: set(),
    OrderStatusEnum.cancelled: set(),
    OrderStatusEnum.voided: set(),
    OrderStatusEnum.closed: set(),
}


def initial_payment_status(payment_method: str | None) -> PaymentStatusEnum:
    if payment_method == PAY_LATER:
        return PaymentStatusEnum.pending
    return PaymentStatusEnum.paid


def is_presettled(payment_method: str | None) -> bool:
    return payment_method in PRESETTLED_METHODS


def check_transition(
    current: OrderStatusEnum | str,
    target: OrderStatusEnum | str,
    payment_status: PaymentStatusEnum | str | None = None,
    payment_method: str | None = None,
) -> bool:
    """
    Проверяет переход статуса.
    Возвращает False, если статус не меняется (no-op), True, если переход допустим.
    Недопустимый переход -> InvalidTransitionError,
    ready -> completed без оплаты -> PaymentRequiredError.
    """
    current = OrderStatusEnum(current)
    target = OrderStatusEnum(target)

    if current == target:
        return False
    if target == OrderStatusEnum.closed:
        raise InvalidTransitionError("Orders are closed only by closing the day")
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move order from '{current.value}' to '{target.value}'")

    if target == OrderStatusEnum.completed and not is_presettled(payment_method):
        if PaymentStatusEnum(payment_status or PaymentStatusEnum.paid) != PaymentStatusEnum.paid:
            raise PaymentRequiredError()
    return True


def check_payment(payment_status: PaymentStatusEnum | str, payment_method: str) -> None:
    """pending -> paid: единственный допустимый переход оплаты."""
    if PaymentStatusEnum(payment_status) != PaymentStatusEnum.pending:
        raise InvalidTransitionError("Order is already paid")
    if payment_method not in PAYMENT_METHODS or payment_method == PAY_LATER:
        raise OrderValidationError(f"Invalid payment method: {payment_method}")


def has_drinks(item_types: Iterable[str | None]) -> bool:
    return any(t == "drink" for t in item_types)


def drink_ticket_on_create(item_types: Iterable[str | None]) -> DrinkTicketEnum | None:
    return DrinkTicketEnum.pending if has_drinks(item_types) else None


def drink_ticket_on_status(
    ticket: DrinkTicketEnum | str | None,
    target: OrderStatusEnum | str,
    item_types: Iterable[str | None],
) -> DrinkTicketEnum | str | None:
    """При переходе в ready напиточный тикет выставляется, если его ещё не было."""
    if OrderStatusEnum(target) == OrderStatusEnum.ready and ticket is None and has_drinks(item_types):
        return DrinkTicketEnum.pending
    return ticket
