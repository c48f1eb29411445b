from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import relationship
from ..db.base import Base
from ..core.order_state import OrderStatusEnum, PaymentStatusEnum


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True, index=True)  # POS-...
    customer_name = Column(String(128), nullable=False, default="Guest")
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=OrderStatusEnum.new.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatusEnum.paid.value)
    payment_method = Column(String(50), nullable=True)
    amount_tendered = Column(Numeric(10, 2), nullable=True)
    change_amount = Column(Numeric(10, 2), nullable=True)
    table_number = Column(Integer, nullable=True)
    beeper_number = Column(Integer, nullable=True)
    order_type = Column(String(20), nullable=False, default="dine-in")
    is_test = Column(Boolean, nullable=False, default=False)
    drink_ticket = Column(String(20), nullable=True)  # None | pending | done
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    closed_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # связи
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
