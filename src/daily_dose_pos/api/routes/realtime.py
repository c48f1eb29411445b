from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(ws: WebSocket):
    hub = ws.app.state.realtime
    await hub.connect(ws)
    try:
        while True:
            # входящие сообщения не нужны, держим соединение
            await ws.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(ws)
