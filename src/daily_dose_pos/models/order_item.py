from sqlalchemy import JSON, Column, Integer, Numeric, ForeignKey, String
from sqlalchemy.orm import relationship
from ..db.base import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(64), nullable=False)
    # снимок позиции меню на момент заказа
    menu_item_name = Column(String(128), nullable=False)
    menu_item_type = Column(String(20), nullable=False, default="food")
    menu_item_emoji = Column(String(16), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)  # базовая цена, фиксируется на момент заказа
    line_total = Column(Numeric(10, 2), nullable=False)  # (база + опции) * количество
    quantity = Column(Integer, nullable=False, default=1)
    selected_flavors = Column(JSON, nullable=False, default=list)

    # связи
    order = relationship("Order", back_populates="items")
