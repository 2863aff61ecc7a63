import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from blogauth.db import SessionLocal
from blogauth.models.base import utcnow
from blogauth.services import revocation, token_store
from blogauth.services.errors import StoreUnavailable
from blogauth.services.login_attempts import LoginAttemptLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    tokens_removed: int
    revocations_removed: int


def sweep_expired(db: Session, now: datetime | None = None) -> SweepResult:
    """Purge rows past their expiry. Validity checks never depend on this having run."""
    now = now or utcnow()
    tokens = token_store.purge_expired(db, now)
    revoked = revocation.purge_expired(db, now)
    logger.info("Token cleanup removed %d session tokens and %d blacklist entries", tokens, revoked)
    return SweepResult(tokens_removed=tokens, revocations_removed=revoked)


def sweep_expired_once(limiter: LoginAttemptLimiter | None = None) -> SweepResult:
    with SessionLocal() as db:
        result = sweep_expired(db)
    if limiter is not None:
        limiter.prune()
    return result


class TokenSweeper:
    """Purges expired tokens on a fixed interval until stopped.

    Each cycle runs in a worker thread. A failed cycle is logged and the next
    one still runs; only ``stop()`` ends the schedule.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None
        self._stop_requested: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_seconds: float, limiter: LoginAttemptLimiter | None = None) -> None:
        if self.running:
            return
        self._stop_requested = asyncio.Event()
        self._task = asyncio.create_task(self._run(interval_seconds, limiter), name="token-sweeper")
        logger.info("Token cleanup scheduled every %s seconds", interval_seconds)

    async def _run(self, interval_seconds: float, limiter: LoginAttemptLimiter | None) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop_requested.wait(), timeout=interval_seconds)
                return
            except asyncio.TimeoutError:
                pass
            try:
                await asyncio.to_thread(sweep_expired_once, limiter)
            except StoreUnavailable:
                logger.warning("Scheduled token cleanup failed; retrying next cycle")
            except Exception:
                logger.exception("Scheduled token cleanup crashed; retrying next cycle")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_requested.set()
        await self._task
        self._task = None
