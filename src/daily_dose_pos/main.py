import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api import health
from daily_dose_pos.api.routes.admin import router as admin_router
from daily_dose_pos.api.routes.menu import router as menu_router
from daily_dose_pos.api.routes.orders import router as orders_router
from daily_dose_pos.api.routes.realtime import router as realtime_router
from daily_dose_pos.api.routes.settings import router as settings_router
from daily_dose_pos.config import settings
from daily_dose_pos.db.session import create_tables
from daily_dose_pos.errors import PosError
from daily_dose_pos.logging_config import setup_logging
from daily_dose_pos.realtime import RealtimeHub
from daily_dose_pos.state import AppState

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES:
        await create_tables()
    logger.info("🚀 Application started")
    yield
    logger.info("🛑 Application stopped")


def create_app(app_state: AppState | None = None) -> FastAPI:
    setup_logging()

    app = FastAPI(title="Daily Dose POS", lifespan=lifespan)
    app.state.pos = app_state or AppState.from_settings()
    app.state.realtime = RealtimeHub()

    @app.exception_handler(PosError)
    async def pos_error_handler(request: Request, exc: PosError):
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    # Подключаем роуты
    app.include_router(health.router)
    app.include_router(orders_router)
    app.include_router(admin_router)
    app.include_router(menu_router)
    app.include_router(settings_router)
    app.include_router(realtime_router)
    return app


app = create_app()
