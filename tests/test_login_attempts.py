import threading
from datetime import timedelta

from blogauth.services.login_attempts import LoginAttemptLimiter


def test_fresh_username_is_not_locked(limiter):
    assert not limiter.before_attempt("alice").locked


def test_fifth_failure_locks_and_resets_counter(limiter):
    for _ in range(4):
        assert not limiter.record_failure("alice").locked

    status = limiter.record_failure("alice")

    assert status.locked
    assert status.minutes_remaining == 10
    assert limiter.attempts("alice") == 0
    assert limiter.before_attempt("alice").locked


def test_remaining_minutes_count_down(limiter, clock):
    for _ in range(5):
        limiter.record_failure("alice")

    clock.advance(4 * 60 + 1)
    assert limiter.before_attempt("alice").minutes_remaining == 6

    clock.advance(5 * 60 + 30)
    assert limiter.before_attempt("alice").minutes_remaining == 1


def test_lockout_expires(limiter, clock):
    for _ in range(5):
        limiter.record_failure("alice")

    clock.advance(10 * 60)

    assert not limiter.before_attempt("alice").locked


def test_success_clears_counter_and_lockout(limiter):
    for _ in range(3):
        limiter.record_failure("alice")

    limiter.record_success("alice")

    assert limiter.attempts("alice") == 0
    for _ in range(4):
        assert not limiter.record_failure("alice").locked


def test_counters_are_per_username(limiter):
    for _ in range(5):
        limiter.record_failure("alice")

    assert limiter.before_attempt("alice").locked
    assert not limiter.before_attempt("bob").locked


def test_prune_keeps_pending_failures_and_active_lockouts(limiter, clock):
    limiter.record_failure("bob")
    for _ in range(5):
        limiter.record_failure("alice")
    for _ in range(5):
        limiter.record_failure("carol")
    clock.advance(11 * 60)
    for _ in range(5):
        limiter.record_failure("alice")

    removed = limiter.prune()

    assert removed == 1  # carol's lockout is over
    assert limiter.attempts("bob") == 1
    assert limiter.before_attempt("alice").locked


def test_concurrent_failures_are_each_counted_once():
    limiter = LoginAttemptLimiter(max_attempts=10_000, lockout=timedelta(minutes=10))
    workers, per_worker = 8, 250
    start = threading.Barrier(workers)

    def hammer():
        start.wait()
        for _ in range(per_worker):
            limiter.record_failure("alice")

    threads = [threading.Thread(target=hammer) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert limiter.attempts("alice") == workers * per_worker


def test_concurrent_failures_lock_exactly_once():
    limiter = LoginAttemptLimiter(max_attempts=5, lockout=timedelta(minutes=10))
    results = []
    lock = threading.Lock()
    start = threading.Barrier(5)

    def fail_once():
        start.wait()
        status = limiter.record_failure("alice")
        with lock:
            results.append(status.locked)

    threads = [threading.Thread(target=fail_once) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert limiter.before_attempt("alice").locked
