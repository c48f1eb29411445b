from .menu_item import MenuItem, Category
from .order import Order
from .order_item import OrderItem
from .store_session import StoreSession
from .setting import Setting

__all__ = [
    "MenuItem",
    "Category",
    "Order",
    "OrderItem",
    "StoreSession",
    "Setting",
]
