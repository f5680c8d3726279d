"""Async SQLAlchemy engine, session management and the settlement transaction runner."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError

from fairchain.config import get_settings
from fairchain.ledger.errors import SettlementError, StoreUnavailable

logger = structlog.get_logger()

T = TypeVar("T")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

# Write conflicts resolved by re-running the whole unit of work. Duplicate-key
# races land here too: the rerun sees the winning row and fails its guard.
_CONFLICT_ERRORS = (StaleDataError, OperationalError, IntegrityError)


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    if url.startswith("sqlite"):
        _engine = create_async_engine(url, echo=False)
    else:
        _engine = create_async_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
        )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_session_factory()() as session:
        yield session


async def run_transaction(
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int | None = None,
) -> T:
    """Run ``work`` inside a single all-or-nothing transaction.

    ``work`` must perform all of its guard reads through the session it is
    given. On a write conflict the transaction is rolled back and ``work`` is
    re-run from scratch against fresh state, so guards are always evaluated
    at commit time. Settlement errors abort without retry. Anything the store
    cannot recover from surfaces as ``StoreUnavailable``.
    """
    settings = get_settings()
    attempts = max_attempts or settings.transaction_max_attempts
    backoff = settings.transaction_retry_backoff_ms / 1000
    factory = get_session_factory()
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        async with factory() as session:
            try:
                async with session.begin():
                    result = await work(session)
                return result
            except SettlementError:
                raise
            except _CONFLICT_ERRORS as exc:
                last_error = exc
                logger.warning(
                    "transaction_conflict_retry",
                    attempt=attempt,
                    max_attempts=attempts,
                    error=type(exc).__name__,
                )
            except SQLAlchemyError as exc:
                logger.error("transaction_failed", error=str(exc), exc_info=exc)
                raise StoreUnavailable() from exc
        if attempt < attempts:
            await asyncio.sleep(backoff * attempt)

    logger.error("transaction_retries_exhausted", attempts=attempts)
    raise StoreUnavailable() from last_error
