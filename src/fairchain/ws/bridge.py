"""Bridges per-account Redis pub/sub channels to WebSocket clients.

Settlements publish to ``ws:user:{account_id}`` after commit (see
``fairchain.ledger.push``); this bridge relays each message unchanged to the
account's open sockets.
"""

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from fairchain.ws.manager import ConnectionManager, manager

logger = structlog.get_logger()

USER_CHANNEL_PATTERN = "ws:user:*"


def parse_account_id(channel: str) -> int | None:
    prefix, _, tail = channel.rpartition(":")
    if prefix != "ws:user":
        return None
    try:
        return int(tail)
    except ValueError:
        return None


class PubSubBridge:
    """Pattern-subscribes to the per-account channels and forwards messages."""

    def __init__(self, redis_client: aioredis.Redis, connections: ConnectionManager = manager) -> None:
        self.redis = redis_client
        self.connections = connections
        self._running = False

    async def handle_message(self, message: dict) -> int:
        channel = message.get("channel", "")
        if isinstance(channel, bytes):
            channel = channel.decode()
        account_id = parse_account_id(channel)
        if account_id is None:
            logger.warning("pubsub_invalid_channel", channel=channel)
            return 0

        data = message.get("data", b"")
        try:
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("pubsub_invalid_message", channel=channel)
            return 0

        sent = await self.connections.send_to_account(account_id, payload)
        if sent:
            event_type = payload.get("event") if isinstance(payload, dict) else None
            logger.debug("account_event_relayed", account_id=account_id, event_type=event_type, recipients=sent)
        return sent

    async def start(self) -> None:
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(USER_CHANNEL_PATTERN)
        logger.info("pubsub_bridge_started", pattern=USER_CHANNEL_PATTERN)

        try:
            while self._running:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None or message.get("type") != "pmessage":
                    continue
                try:
                    await self.handle_message(message)
                except Exception:
                    logger.exception("pubsub_relay_failed", channel=message.get("channel"))
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()
            logger.info("pubsub_bridge_stopped")

    async def stop(self) -> None:
        self._running = False
