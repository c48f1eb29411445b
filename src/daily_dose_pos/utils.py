import random
import time
from datetime import datetime, timezone

SERVER_ORDER_PREFIX = "POS"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite отдаёт naive datetime: считаем его UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_order_id() -> str:
    return f"{SERVER_ORDER_PREFIX}-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"
