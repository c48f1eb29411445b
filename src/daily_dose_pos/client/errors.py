"""
Классификация ошибок клиента.

PERMANENT: ответ сервера 4xx или 5xx после всех повторов: не повторяем,
откатываем оптимистичное состояние и показываем сообщение.
TRANSIENT: ответа нет (сеть, таймаут): заказ уходит в офлайн-очередь.
"""
import enum

import httpx


class ErrorKind(str, enum.Enum):
    permanent = "permanent"
    transient = "transient"


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            body = response.json()
            detail = body.get("detail") or body.get("error") or response.reason_phrase
        except ValueError:
            detail = response.text or response.reason_phrase
        if not isinstance(detail, str):
            # 422 от FastAPI: список ошибок валидации
            detail = "Validation failed"
        return cls(response.status_code, detail)

    @property
    def is_store_closed(self) -> bool:
        return self.status_code == 403

    def __repr__(self) -> str:
        return f"ApiError({self.status_code}, {self.detail!r})"


def classify(exc: Exception) -> ErrorKind:
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.transient
    return ErrorKind.permanent
