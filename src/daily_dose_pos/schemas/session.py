from datetime import date, datetime
from typing import List, Optional

from daily_dose_pos.schemas.common import CamelModel, Money
from daily_dose_pos.schemas.order import OrderRead


class SessionRead(CamelModel):
    id: int
    status: str
    opened_at: datetime
    closed_at: Optional[datetime] = None
    total_orders: int
    total_sales: Money


class HistoryItem(SessionRead):
    date: date

    @classmethod
    def from_session(cls, session) -> "HistoryItem":
        return cls(
            id=session.id,
            status=session.status,
            opened_at=session.opened_at,
            closed_at=session.closed_at,
            total_orders=session.total_orders,
            total_sales=session.total_sales,
            date=session.opened_at.date(),
        )


class HistoryMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class HistoryPage(CamelModel):
    items: List[HistoryItem]
    meta: HistoryMeta


class SessionDetail(HistoryItem):
    orders: List[OrderRead] = []


class CloseDaySummary(CamelModel):
    date: date
    total_orders: int
    total_sales: Money


class StoreStatus(CamelModel):
    status: str  # OPEN | CLOSED
    session: Optional[SessionRead] = None
    maintenance: bool
    is_test: bool


class FlagsUpdate(CamelModel):
    maintenance: Optional[bool] = None
    is_test: Optional[bool] = None
