from dataclasses import dataclass

from fastapi import Request

from daily_dose_pos.config import settings


@dataclass
class AppState:
    """Флаги процесса, влияющие на приём заказов."""

    maintenance: bool = False
    test_mode: bool = False

    @classmethod
    def from_settings(cls) -> "AppState":
        return cls(maintenance=settings.MAINTENANCE_MODE, test_mode=settings.TEST_MODE)


def get_app_state(request: Request) -> AppState:
    """
    Использовать в Depends(get_app_state).
    Экземпляр кладётся в app.state.pos при создании приложения.
    """
    return request.app.state.pos
