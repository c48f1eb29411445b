from .api import PosApiClient, fetch_with_retry
from .errors import ApiError, ErrorKind, classify
from .order_store import CartLine, OrderOrigin, OrderStore, TrackedOrder

__all__ = [
    "PosApiClient",
    "fetch_with_retry",
    "ApiError",
    "ErrorKind",
    "classify",
    "CartLine",
    "OrderOrigin",
    "OrderStore",
    "TrackedOrder",
]
