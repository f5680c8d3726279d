"""WebSocket connection registry.

Each connection belongs to exactly one account; messages are addressed to an
account and fanned out to all of its open sockets.
"""

import json
import time
from collections import defaultdict
from dataclasses import dataclass, field

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()


@dataclass
class ClientConnection:
    websocket: WebSocket
    account_id: int
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class ConnectionManager:
    """Tracks open sockets per account. Single event loop, no locking."""

    def __init__(self) -> None:
        self._connections: dict[str, ClientConnection] = {}
        self._account_connections: dict[int, set[str]] = defaultdict(set)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, conn_id: str, account_id: int) -> None:
        await websocket.accept()
        self._connections[conn_id] = ClientConnection(websocket=websocket, account_id=account_id)
        self._account_connections[account_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, account_id=account_id)

    async def disconnect(self, conn_id: str) -> None:
        client = self._connections.pop(conn_id, None)
        if client is None:
            return
        self._account_connections[client.account_id].discard(conn_id)
        if not self._account_connections[client.account_id]:
            del self._account_connections[client.account_id]
        logger.info("ws_disconnected", conn_id=conn_id, account_id=client.account_id)

    async def send_to_account(self, account_id: int, message: dict) -> int:
        """Send ``message`` to every socket of an account. Returns how many got it."""
        payload = json.dumps(message)
        sent = 0
        for conn_id in list(self._account_connections.get(account_id, set())):
            client = self._connections.get(conn_id)
            if client is None:
                continue
            try:
                await client.websocket.send_text(payload)
            except Exception:
                await self.disconnect(conn_id)
                continue
            client.messages_sent += 1
            sent += 1
        return sent

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self._connections),
            "unique_accounts": len(self._account_connections),
        }


manager = ConnectionManager()
