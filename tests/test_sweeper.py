import asyncio
from datetime import timedelta

from blogauth.models.base import utcnow
from blogauth.models.revocation import RevocationEntry
from blogauth.models.session_token import SessionToken
from blogauth.services import revocation, sweeper, token_store


def test_sweep_removes_only_expired_rows(db):
    token_store.create(db, 1, "alice", "expired-token", timedelta(seconds=-5))
    token_store.create(db, 1, "alice", "live-token", timedelta(hours=1))
    revocation.add(db, "expired-revocation", utcnow() - timedelta(seconds=5))
    revocation.add(db, "live-revocation", utcnow() + timedelta(hours=1))

    result = sweeper.sweep_expired(db)

    assert result == sweeper.SweepResult(tokens_removed=1, revocations_removed=1)
    assert [row.token for row in db.query(SessionToken).all()] == ["live-token"]
    assert [row.token for row in db.query(RevocationEntry).all()] == ["live-revocation"]


def test_sweep_with_nothing_expired_is_a_no_op(db):
    token_store.create(db, 1, "alice", "live-token", timedelta(hours=1))

    assert sweeper.sweep_expired(db) == sweeper.SweepResult(tokens_removed=0, revocations_removed=0)


def test_sweep_once_prunes_limiter(db, limiter, clock):
    for _ in range(limiter.max_attempts):
        limiter.record_failure("alice")
    assert limiter.before_attempt("alice").locked
    clock.advance(timedelta(minutes=11).total_seconds())

    sweeper.sweep_expired_once(limiter)

    assert not limiter.before_attempt("alice").locked
    assert limiter.prune() == 0


def test_sweeper_start_and_stop():
    async def run():
        task_runner = sweeper.TokenSweeper()
        task_runner.start(3600)
        await asyncio.sleep(0)
        assert task_runner.running
        await task_runner.stop()
        return task_runner.running

    assert asyncio.run(run()) is False


def test_sweeper_keeps_running_after_a_failed_cycle(monkeypatch):
    calls = []

    def flaky_sweep(limiter=None):
        calls.append(limiter)
        if len(calls) == 1:
            raise RuntimeError("disk full")
        return sweeper.SweepResult(tokens_removed=0, revocations_removed=0)

    monkeypatch.setattr(sweeper, "sweep_expired_once", flaky_sweep)

    async def run():
        task_runner = sweeper.TokenSweeper()
        task_runner.start(0.01)
        for _ in range(300):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        still_running = task_runner.running
        await task_runner.stop()
        return still_running

    assert asyncio.run(run()) is True
    assert len(calls) >= 2
