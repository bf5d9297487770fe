import json
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections per server.

    Connections are stored as {server_id: {connection_id: WebSocket}}.
    Every client viewing a server's channel list holds one socket and
    receives the channel/category events that keep its store current.
    """

    def __init__(self) -> None:
        # server_id -> {connection_id: WebSocket}
        self._connections: dict[int, dict[int, WebSocket]] = defaultdict(dict)
        self._next_id = 0

    async def connect(self, websocket: WebSocket, server_id: int) -> int:
        """Register an already-accepted WebSocket. Returns its connection id."""
        self._next_id += 1
        conn_id = self._next_id
        self._connections[server_id][conn_id] = websocket
        logger.info("WebSocket connected to server %s (connection %s)", server_id, conn_id)
        return conn_id

    def disconnect(self, conn_id: int, server_id: int) -> None:
        self._connections.get(server_id, {}).pop(conn_id, None)
        logger.info("WebSocket disconnected from server %s (connection %s)", server_id, conn_id)

    async def broadcast_to_server(self, server_id: int, payload: dict) -> None:
        """Broadcast a JSON payload to all connections in a server."""
        dead: list[int] = []
        for conn_id, ws in list(self._connections.get(server_id, {}).items()):
            try:
                await ws.send_text(json.dumps(payload))
            except Exception:
                dead.append(conn_id)
        for conn_id in dead:
            self.disconnect(conn_id, server_id)


manager = ConnectionManager()
