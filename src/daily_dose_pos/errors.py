"""
Доменные ошибки POS.

Каждая ошибка несёт HTTP-статус, с которым её отдаёт API.
Клиент считает любой 4xx постоянной ошибкой (без повторов и без офлайн-очереди).
"""


class PosError(Exception):
    status_code = 400
    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class StoreClosedError(PosError):
    status_code = 403
    default_message = "Store is closed. Please open a session in Admin panel."


class MaintenanceModeError(PosError):
    status_code = 403
    default_message = "Store is under maintenance"


class OrderValidationError(PosError):
    status_code = 400
    default_message = "Invalid order"


class SelectionLimitError(PosError):
    status_code = 400
    default_message = "Too many options selected"


class NotFoundError(PosError):
    status_code = 404
    default_message = "Not found"


class InvalidTransitionError(PosError):
    status_code = 409
    default_message = "Illegal status transition"


class PaymentRequiredError(PosError):
    status_code = 409
    default_message = "Order has not been paid"


class SessionAlreadyOpenError(PosError):
    status_code = 400
    default_message = "Session already open"


class NoOpenSessionError(PosError):
    status_code = 400
    default_message = "No open session"


class SessionExpiredError(PosError):
    status_code = 410
    default_message = "Detailed receipts expired"
