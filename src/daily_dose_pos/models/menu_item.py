from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text, func
from ..db.base import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(128), nullable=False)
    category = Column(String(64), nullable=False)  # кофе, еда, десерт и т.д.
    type = Column(String(20), nullable=False, default="food")  # food | drink
    price = Column(Numeric(10, 2), nullable=False)  # базовая цена
    emoji = Column(String(16), nullable=True)
    image = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    flavors = Column(JSON, nullable=False, default=list)  # list[str] | list[section]
    max_flavors = Column(Integer, nullable=False, default=1)
    is_available = Column(Boolean, default=True, nullable=False)
    deleted = Column(Boolean, default=False, nullable=False)  # мягкое удаление
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Category(Base):
    __tablename__ = "categories"

    name = Column(String(64), primary_key=True)
    sort_order = Column(Integer, nullable=False, default=0)
