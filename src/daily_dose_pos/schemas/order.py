from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import Field, conint, field_validator, model_validator

from daily_dose_pos.core.order_state import (
    PAYMENT_METHODS,
    DrinkTicketEnum,
    OrderStatusEnum,
    PaymentStatusEnum,
)
from daily_dose_pos.schemas.common import CamelModel, Money
from daily_dose_pos.schemas.menu import ItemType

PaymentMethod = Literal[PAYMENT_METHODS]
OrderType = Literal["dine-in", "take-out"]


class MenuItemSnapshot(CamelModel):
    """Снимок позиции меню внутри заказа (цена на момент заказа)."""

    id: str
    name: str
    price: Money
    type: ItemType = "food"
    emoji: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_to_str(cls, value: Union[str, int]):
        return str(value)


class OrderItemCreate(CamelModel):
    menu_item: MenuItemSnapshot
    quantity: conint(ge=1)
    selected_flavors: List[str] = []
    selected_flavor: Optional[str] = None  # устаревшее поле

    @model_validator(mode="after")
    def merge_legacy_flavor(self):
        if not self.selected_flavors and self.selected_flavor:
            self.selected_flavors = [self.selected_flavor]
        return self


class OrderCreate(CamelModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    customer_name: Optional[str] = None
    table_number: Optional[conint(gt=0)] = None
    beeper_number: Optional[conint(gt=0)] = None
    is_test: bool = False
    payment_method: PaymentMethod = "Cash"
    amount_tendered: Optional[Money] = Field(None, ge=0)
    change_amount: Optional[Money] = Field(None, ge=0)
    order_type: OrderType = "dine-in"


class OrderItemRead(CamelModel):
    menu_item: MenuItemSnapshot
    quantity: int
    selected_flavors: List[str] = []
    line_total: Money = Decimal("0")

    @classmethod
    def from_orm_with_name(cls, item):
        return cls(
            menu_item=MenuItemSnapshot(
                id=item.menu_item_id,
                name=item.menu_item_name,
                price=item.price,
                type=item.menu_item_type or "food",
                emoji=item.menu_item_emoji,
            ),
            quantity=item.quantity,
            selected_flavors=list(item.selected_flavors or []),
            line_total=item.line_total,
        )


class OrderRead(CamelModel):
    id: str
    items: List[OrderItemRead] = []
    total: Money
    status: OrderStatusEnum
    payment_status: PaymentStatusEnum
    payment_method: Optional[str] = None
    amount_tendered: Optional[Money] = None
    change_amount: Optional[Money] = None
    customer_name: str = "Guest"
    table_number: Optional[int] = None
    beeper_number: Optional[int] = None
    order_type: OrderType = "dine-in"
    is_test: bool = False
    drink_ticket: Optional[DrinkTicketEnum] = None
    created_at: datetime
    closed_at: Optional[datetime] = None

    @classmethod
    def from_orm_with_name(cls, order):
        return cls(
            id=order.id,
            items=[OrderItemRead.from_orm_with_name(i) for i in order.items],
            total=order.total_amount,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            amount_tendered=order.amount_tendered,
            change_amount=order.change_amount,
            customer_name=order.customer_name or "Guest",
            table_number=order.table_number,
            beeper_number=order.beeper_number,
            order_type=order.order_type or "dine-in",
            is_test=order.is_test,
            drink_ticket=order.drink_ticket,
            created_at=order.created_at,
            closed_at=order.closed_at,
        )


class OrderStatusUpdate(CamelModel):
    status: OrderStatusEnum


class OrderPayment(CamelModel):
    payment_method: PaymentMethod
    amount_tendered: Optional[Money] = Field(None, ge=0)
    change_amount: Optional[Money] = Field(None, ge=0)
