"""
Запуск API через uvicorn.

    python -m daily_dose_pos
"""
import uvicorn

from daily_dose_pos.config import settings


def main() -> None:
    uvicorn.run(
        "daily_dose_pos.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_config=None,
    )


if __name__ == "__main__":
    main()
