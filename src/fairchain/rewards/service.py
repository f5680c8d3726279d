"""Reward settlements: daily check-in, ad bonus, mining cycle, tasks and daily codes.

Each public coroutine runs one transaction through ``run_transaction`` and
publishes the result after commit. The ``settle_*`` functions are the
transaction bodies; they receive the session, the reward configuration
snapshot and the clock explicitly.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.database import run_transaction
from fairchain.db.models import (
    DailyCode,
    NotificationType,
    RedeemedCode,
    Task,
    UserTask,
    UserTaskStatus,
    utcnow,
)
from fairchain.ledger.accounts import Settlement, append_entry, credit, fmt_amount, lock_account
from fairchain.ledger.config import RewardConfig, load_reward_config
from fairchain.ledger.cooldown import Waiting, as_utc, cooldown_state
from fairchain.ledger.errors import (
    AdBonusUnavailable,
    AlreadyCompleted,
    AlreadyRedeemed,
    CodeExpired,
    CodeNotFound,
    CooldownActive,
    IncorrectVerificationCode,
    NoActiveSession,
    SessionActive,
    SessionNotReady,
    TaskNotFound,
)
from fairchain.ledger.push import publish_account, publish_settlement

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Daily check-in
# ---------------------------------------------------------------------------


async def settle_check_in(
    db: AsyncSession, account_id: int, config: RewardConfig, now: datetime
) -> Settlement:
    account = await lock_account(db, account_id)

    state = cooldown_state(account.last_check_in, config.check_in_cooldown, now)
    if isinstance(state, Waiting):
        raise CooldownActive(state.remaining)

    reward = config.daily_check_in_reward
    credit(account, reward)
    account.last_check_in = now
    entry = append_entry(
        db, account.id, NotificationType.REWARD,
        "Daily Check-in",
        f"You earned +{fmt_amount(reward)} Fair for your daily check-in.",
        reward, now,
    )
    await db.flush()
    return Settlement(
        account=account, entries=[entry], amount=reward, ad_bonus_available=config.ads_enabled
    )


async def daily_check_in(
    account_id: int, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    """Credit the daily check-in reward once per cooldown window."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_check_in(db, account_id, await load_reward_config(db), now)

    settlement = await run_transaction(work)
    logger.info("check_in_settled", account_id=account_id, amount=str(settlement.amount))
    await publish_settlement(redis, settlement)
    return settlement


# ---------------------------------------------------------------------------
# Ad bonus
# ---------------------------------------------------------------------------


async def settle_ad_bonus(
    db: AsyncSession, account_id: int, config: RewardConfig, now: datetime
) -> Settlement:
    if not config.ads_enabled:
        raise AdBonusUnavailable("Rewarded ads are currently disabled.")

    account = await lock_account(db, account_id)
    if account.last_check_in is None or cooldown_state(
        account.last_check_in, config.check_in_cooldown, now
    ).is_ready:
        raise AdBonusUnavailable("Check in first to unlock the ad bonus.")
    if account.ad_bonus_claimed_at is not None and as_utc(account.ad_bonus_claimed_at) >= as_utc(
        account.last_check_in
    ):
        raise AdBonusUnavailable("You already claimed the ad bonus for this check-in.")

    reward = config.ad_reward
    credit(account, reward)
    account.ad_bonus_claimed_at = now
    entry = append_entry(
        db, account.id, NotificationType.REWARD,
        "Ad Reward",
        f"You earned +{fmt_amount(reward)} Fair for watching an ad.",
        reward, now,
    )
    await db.flush()
    return Settlement(account=account, entries=[entry], amount=reward)


async def claim_ad_bonus(
    account_id: int, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    """Credit the rewarded-ad bonus offered after a check-in (one per check-in)."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_ad_bonus(db, account_id, await load_reward_config(db), now)

    settlement = await run_transaction(work)
    logger.info("ad_bonus_settled", account_id=account_id, amount=str(settlement.amount))
    await publish_settlement(redis, settlement)
    return settlement


# ---------------------------------------------------------------------------
# Mining cycle
# ---------------------------------------------------------------------------


async def settle_mining_start(db: AsyncSession, account_id: int, now: datetime) -> Settlement:
    account = await lock_account(db, account_id)
    # A finished but unclaimed session must be claimed before a new one starts.
    if account.mining_started_at is not None:
        raise SessionActive()
    account.mining_started_at = now
    await db.flush()
    return Settlement(account=account)


async def start_mining(
    account_id: int, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_mining_start(db, account_id, now)

    settlement = await run_transaction(work)
    logger.info("mining_started", account_id=account_id)
    await publish_account(redis, settlement.account, now)
    return settlement


async def settle_mining_claim(
    db: AsyncSession, account_id: int, config: RewardConfig, now: datetime
) -> Settlement:
    account = await lock_account(db, account_id)
    if account.mining_started_at is None:
        raise NoActiveSession()

    state = cooldown_state(account.mining_started_at, config.mining_duration, now)
    if isinstance(state, Waiting):
        raise SessionNotReady(state.remaining)

    reward = config.mining_reward
    credit(account, reward)
    account.mining_started_at = None
    entry = append_entry(
        db, account.id, NotificationType.MINING,
        "Mining Reward Claimed",
        f"You earned +{fmt_amount(reward)} Fair from your mining session.",
        reward, now,
    )
    await db.flush()
    return Settlement(account=account, entries=[entry], amount=reward)


async def claim_mining(
    account_id: int, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    """Credit the mining reward once the 24-hour session has elapsed."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_mining_claim(db, account_id, await load_reward_config(db), now)

    settlement = await run_transaction(work)
    logger.info("mining_claim_settled", account_id=account_id, amount=str(settlement.amount))
    await publish_settlement(redis, settlement)
    return settlement


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def verification_matches(submitted: str | None, expected: str) -> bool:
    """Case-insensitive comparison ignoring surrounding whitespace."""
    if submitted is None:
        return False
    return submitted.strip().lower() == expected.strip().lower()


async def settle_task_completion(
    db: AsyncSession,
    account_id: int,
    task_id: int,
    verification: str | None,
    now: datetime,
) -> Settlement:
    task = await db.get(Task, task_id)
    if task is None:
        raise TaskNotFound()

    account = await lock_account(db, account_id)

    result = await db.execute(
        select(UserTask)
        .where(UserTask.account_id == account_id, UserTask.task_id == task_id)
        .with_for_update()
    )
    user_task = result.scalar_one_or_none()
    if user_task is not None and user_task.status is UserTaskStatus.COMPLETED:
        raise AlreadyCompleted()

    if task.verification_text and not verification_matches(verification, task.verification_text):
        raise IncorrectVerificationCode()

    credit(account, task.reward)
    if user_task is None:
        user_task = UserTask(account_id=account_id, task_id=task_id, task_title=task.title,
                             status=UserTaskStatus.COMPLETED, submitted_at=now)
        db.add(user_task)
    else:
        user_task.status = UserTaskStatus.COMPLETED
        user_task.task_title = task.title
        user_task.submitted_at = now

    entry = append_entry(
        db, account.id, NotificationType.REWARD,
        f"Task Completed: {task.title}",
        f"You earned +{fmt_amount(task.reward)} Fair.",
        task.reward, now,
    )
    await db.flush()
    return Settlement(account=account, entries=[entry], amount=task.reward)


async def complete_task(
    account_id: int,
    task_id: int,
    verification: str | None = None,
    *,
    now: datetime | None = None,
    redis: object | None = None,
) -> Settlement:
    """Credit a task's reward once per account after checking its verification text."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_task_completion(db, account_id, task_id, verification, now)

    settlement = await run_transaction(work)
    logger.info(
        "task_settled", account_id=account_id, task_id=task_id, amount=str(settlement.amount)
    )
    await publish_settlement(redis, settlement)
    return settlement


async def list_tasks_for_account(db: AsyncSession, account_id: int) -> list[tuple[Task, str | None]]:
    """All tasks with the caller's completion status (None when never attempted)."""
    tasks = (await db.execute(select(Task).order_by(Task.created_at.asc(), Task.id.asc()))).scalars().all()
    statuses = await db.execute(
        select(UserTask.task_id, UserTask.status).where(UserTask.account_id == account_id)
    )
    by_task = {task_id: status.value for task_id, status in statuses}
    return [(task, by_task.get(task.id)) for task in tasks]


# ---------------------------------------------------------------------------
# Daily codes
# ---------------------------------------------------------------------------


def normalize_code(code: str) -> str:
    return code.strip().lower()


async def settle_code_redemption(
    db: AsyncSession, account_id: int, code: str, now: datetime
) -> Settlement:
    if not code:
        raise CodeNotFound("Please enter a code.")

    daily_code = await db.get(DailyCode, code)
    if daily_code is None:
        raise CodeNotFound()

    account = await lock_account(db, account_id)

    existing = await db.execute(
        select(RedeemedCode).where(RedeemedCode.account_id == account_id, RedeemedCode.code == code)
    )
    if existing.scalar_one_or_none() is not None:
        raise AlreadyRedeemed()

    if as_utc(now) > as_utc(daily_code.valid_until):
        raise CodeExpired()

    credit(account, daily_code.reward_amount)
    db.add(RedeemedCode(account_id=account_id, code=code, redeemed_at=now))
    entry = append_entry(
        db, account.id, NotificationType.REWARD,
        "Daily Code Redeemed",
        f"You received +{fmt_amount(daily_code.reward_amount)} Fair from a daily code.",
        daily_code.reward_amount, now,
    )
    await db.flush()
    return Settlement(account=account, entries=[entry], amount=daily_code.reward_amount)


async def redeem_code(
    account_id: int, code: str, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    """Redeem a promotional daily code once per account before it expires."""
    now = now or utcnow()
    normalized = normalize_code(code)

    async def work(db: AsyncSession) -> Settlement:
        return await settle_code_redemption(db, account_id, normalized, now)

    settlement = await run_transaction(work)
    logger.info("code_redeemed", account_id=account_id, code=normalized, amount=str(settlement.amount))
    await publish_settlement(redis, settlement)
    return settlement
