"""
Push-канал: order:new, order:update, menu:update, settings:update, session:update.

Доставка fire-and-forget, без подтверждений и без повторной отправки:
клиенты после переподключения сами перечитывают состояние.
"""
import json
import logging
from typing import Any, List

from fastapi import Request, WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

ORDER_NEW = "order:new"
ORDER_UPDATE = "order:update"
MENU_UPDATE = "menu:update"
SETTINGS_UPDATE = "settings:update"
SESSION_UPDATE = "session:update"


class RealtimeHub:
    def __init__(self) -> None:
        self.active_sockets: List[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.active_sockets.append(ws)
        logger.debug("Realtime client connected (%d total)", len(self.active_sockets))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.active_sockets:
            self.active_sockets.remove(ws)

    async def broadcast(self, event: str, data: Any = None) -> None:
        text = json.dumps({"event": event, "data": jsonable_encoder(data, by_alias=True)})
        for ws in list(self.active_sockets):
            try:
                await ws.send_text(text)
            except Exception:
                logger.info("Dropping dead realtime socket")
                self.disconnect(ws)


def get_realtime(request: Request) -> RealtimeHub:
    return request.app.state.realtime
