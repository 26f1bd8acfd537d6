"""Tests for process-local locks and Redis-backed artwork claims."""

import threading
from unittest.mock import MagicMock

import pytest
import redis

from mockup_forge.locks import ArtworkClaimStore, ProcessLocks


def test_acquire_release():
    locks = ProcessLocks()
    assert locks.acquire("1") is True
    assert locks.acquire("1") is False
    assert locks.is_held("1")
    locks.release("1")
    assert locks.acquire("1") is True


def test_independent_keys():
    locks = ProcessLocks()
    assert locks.acquire("1")
    assert locks.acquire("2")


def test_release_unknown_is_noop():
    ProcessLocks().release("nope")


def test_only_one_thread_wins():
    locks = ProcessLocks()
    results: list[bool] = []
    barrier = threading.Barrier(8)

    def contend():
        barrier.wait()
        results.append(locks.acquire("artwork"))

    threads = [threading.Thread(target=contend) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1


def test_claim_uses_set_nx_px():
    client = MagicMock()
    client.set.return_value = True
    store = ArtworkClaimStore(client, ttl_seconds=960)

    token = store.acquire("123")

    assert token
    client.set.assert_called_once_with(
        "mockup_forge:claim:123", token, nx=True, px=960_000
    )


def test_claim_taken_returns_none():
    client = MagicMock()
    client.set.return_value = None
    assert ArtworkClaimStore(client, ttl_seconds=10).acquire("123") is None


def test_claim_tokens_unique():
    client = MagicMock()
    client.set.return_value = True
    store = ArtworkClaimStore(client, ttl_seconds=10)
    assert store.acquire("1") != store.acquire("1")


def test_claim_redis_error_propagates():
    """Without a claim backend the job fails rather than running unprotected."""
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("down")
    with pytest.raises(redis.ConnectionError):
        ArtworkClaimStore(client, ttl_seconds=10).acquire("1")


def test_release_compares_token():
    client = MagicMock()
    store = ArtworkClaimStore(client, ttl_seconds=10)
    store.release("123", "tok")
    args = client.eval.call_args.args
    assert args[1:] == (1, "mockup_forge:claim:123", "tok")


def test_release_failure_logged_not_raised():
    client = MagicMock()
    client.eval.side_effect = redis.ConnectionError("down")
    ArtworkClaimStore(client, ttl_seconds=10).release("1", "tok")
