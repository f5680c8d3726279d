"""Live account subscription over WebSocket."""

import json
import uuid

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from fairchain.auth.jwt import verify_token
from fairchain.database import get_session_factory
from fairchain.db.models import Account, utcnow
from fairchain.ledger.schemas import build_account_response
from fairchain.ws.manager import manager

logger = structlog.get_logger()

router = APIRouter()


def reply_to_client(raw: str) -> dict[str, str]:
    """Answer one client frame. Only `{"action": "ping"}` is understood."""
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError:
        return {"event": "error", "message": "Invalid JSON"}
    if not isinstance(msg, dict):
        return {"event": "error", "message": "Expected a JSON object"}
    if msg.get("action") == "ping":
        return {"event": "pong"}
    return {"event": "error", "message": f"Unknown action: {msg.get('action')}"}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query(...)) -> None:
    """Authenticated per-account event stream.

    Protocol:
        Server -> Client:
            {"event": "account", "data": {...}}       on connect and after every settlement
            {"event": "notification", "data": {...}}  for every new ledger entry
            {"event": "pong"}
            {"event": "error", "message": "..."}

        Client -> Server:
            {"action": "ping"}
    """
    try:
        payload = verify_token(token, expected_type="access")
        account_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        await websocket.close(code=4001, reason=f"Authentication failed: {e}")
        return

    async with get_session_factory()() as db:
        account = await db.get(Account, account_id)
    if account is None:
        await websocket.close(code=4001, reason="Authentication failed: account not found")
        return

    conn_id = str(uuid.uuid4())
    await manager.connect(websocket, conn_id, account_id)

    try:
        await websocket.send_json({
            "event": "account",
            "data": build_account_response(account, utcnow()).model_dump(mode="json"),
        })
        while True:
            raw = await websocket.receive_text()
            await websocket.send_json(reply_to_client(raw))
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
    finally:
        await manager.disconnect(conn_id)
