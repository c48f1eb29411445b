import asyncio
import os
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES", "0")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from daily_dose_pos.crud.analytics import invalidate_analytics_cache  # noqa: E402
from daily_dose_pos.db.session import create_tables, get_async_session  # noqa: E402
from daily_dose_pos.main import create_app  # noqa: E402
from daily_dose_pos.state import AppState  # noqa: E402


@pytest.fixture()
def session_maker(tmp_path):
    """
    Отдельная файловая SQLite-база на каждый тест.
    NullPool: соединения не переживают event loop, в котором открыты.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}", poolclass=NullPool)
    asyncio.run(create_tables(engine))
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture()
def app_state() -> AppState:
    return AppState()


@pytest.fixture()
def app(session_maker, app_state):
    invalidate_analytics_cache()
    application = create_app(app_state)

    async def override_session():
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_async_session] = override_session
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def run_db(session_maker):
    """Выполняет корутину fn(session) напрямую против тестовой базы."""

    def _run(fn):
        async def _inner():
            async with session_maker() as session:
                return await fn(session)

        return asyncio.run(_inner())

    return _run


LATTE = {
    "id": "latte",
    "name": "Latte",
    "price": 120,
    "category": "Coffee",
    "type": "drink",
    "emoji": "☕",
    "flavors": [
        {"name": "Size", "max": 1, "options": [{"name": "Regular", "price": 0}, {"name": "Large", "price": 15}]},
        {"name": "Shots", "max": 2, "options": [{"name": "Extra Shot", "price": 5}]},
    ],
}

CROISSANT = {
    "id": "croissant",
    "name": "Croissant",
    "price": 85,
    "category": "Pastry",
    "type": "food",
    "flavors": ["Butter", "Chocolate"],
    "maxFlavors": 1,
}


@pytest.fixture()
def seed_menu(client):
    for item in (LATTE, CROISSANT):
        resp = client.post("/menu/items", json=item)
        assert resp.status_code == 201, resp.text
    return {"latte": LATTE, "croissant": CROISSANT}


@pytest.fixture()
def open_day(client):
    resp = client.post("/admin/open-day")
    assert resp.status_code == 200, resp.text
    return resp.json()


def order_line(item: Dict[str, Any], quantity: int = 1, flavors: Optional[List[str]] = None) -> Dict[str, Any]:
    return {
        "menuItem": {
            "id": item["id"],
            "name": item["name"],
            "price": item["price"],
            "type": item.get("type", "food"),
        },
        "quantity": quantity,
        "selectedFlavors": flavors or [],
    }


def order_payload(*lines: Dict[str, Any], **extra) -> Dict[str, Any]:
    payload = {"items": list(lines), "customerName": "Ana", "paymentMethod": "Cash"}
    payload.update(extra)
    return payload
