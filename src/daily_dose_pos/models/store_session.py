from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, func, text
from ..db.base import Base


class StoreSession(Base):
    """Рабочий день кассы (OPEN/CLOSED) с накопительными счётчиками."""

    __tablename__ = "sessions"
    __table_args__ = (
        # не больше одной открытой сессии
        Index(
            "uq_sessions_single_open",
            "status",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), nullable=False, default="OPEN", index=True)
    opened_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    total_orders = Column(Integer, nullable=False, default=0)
    total_sales = Column(Numeric(10, 2), nullable=False, default=0)
