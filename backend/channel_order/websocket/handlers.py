import logging

from fastapi import WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from channel_order.models.server import Server
from channel_order.websocket.manager import manager

logger = logging.getLogger(__name__)


async def server_ws_handler(websocket: WebSocket, server_id: int, db: Session) -> None:
    """Lifecycle handler for a server event socket.

    The socket is push-only: inbound frames are read and discarded so the
    connection notices client disconnects.
    """
    await websocket.accept()
    if db.query(Server).filter(Server.id == server_id).first() is None:
        await websocket.close(code=1008)
        return

    conn_id = await manager.connect(websocket, server_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(conn_id, server_id)
