"""Push committed settlement results over Redis pub/sub for live subscribers.

The WebSocket bridge pattern-subscribes to ``ws:user:*`` and routes each
message to that user's open connections. Publishing happens after commit and
never affects the outcome of the settlement.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from fairchain.db.models import utcnow
from fairchain.ledger.schemas import build_account_response, build_notification_response

if TYPE_CHECKING:
    from fairchain.db.models import Account, Notification
    from fairchain.ledger.accounts import Settlement

logger = logging.getLogger(__name__)


def user_channel(account_id: int) -> str:
    return f"ws:user:{account_id}"


async def publish_account(redis: object | None, account: "Account", now: datetime | None = None) -> None:
    """Publish the current account document to its owner's channel."""
    if redis is None:
        return
    payload = {
        "event": "account",
        "data": build_account_response(account, now or utcnow()).model_dump(mode="json"),
    }
    try:
        await redis.publish(user_channel(account.id), json.dumps(payload))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to push account snapshot via ws:user:%s", account.id, exc_info=True)


async def publish_entries(redis: object | None, entries: Iterable["Notification"]) -> None:
    """Publish each ledger entry to the channel of the account that owns it."""
    if redis is None:
        return
    for entry in entries:
        payload = {
            "event": "notification",
            "data": build_notification_response(entry).model_dump(mode="json"),
        }
        try:
            await redis.publish(user_channel(entry.account_id), json.dumps(payload))  # type: ignore[union-attr]
        except Exception:
            logger.warning(
                "Failed to push notification via ws:user:%s", entry.account_id, exc_info=True
            )


async def publish_settlement(redis: object | None, settlement: "Settlement") -> None:
    """Publish every account and entry touched by a committed settlement."""
    if redis is None:
        return
    for account in [settlement.account, *settlement.counterparties]:
        await publish_account(redis, account)
    await publish_entries(redis, settlement.entries)
