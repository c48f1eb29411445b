import logging

from daily_dose_pos.config import settings

LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """
    Настраивает корневой логгер один раз при старте приложения.
    Уровень берётся из LOG_LEVEL, если не передан явно.
    """
    lvl = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(lvl)
