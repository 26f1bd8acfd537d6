"""Tests for catalog call retry with exponential backoff."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from mockup_forge.catalog.retry import RETRYABLE_STATUS_CODES, compute_delay, retry_with_backoff
from mockup_forge.errors import CatalogAPIError, CatalogTransportError, JobTimeoutError


def _flaky(errors, result="ok"):
    calls = {"n": 0}

    def fn():
        calls["n"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return fn, calls


def test_retries_server_errors():
    sleeps = []
    fn, calls = _flaky([CatalogAPIError("x", 503), CatalogAPIError("x", 502)])
    wrapped = retry_with_backoff(max_retries=3, sleep=sleeps.append)(fn)
    assert wrapped() == "ok"
    assert calls["n"] == 3
    assert len(sleeps) == 2


def test_gives_up_after_max_retries():
    fn, calls = _flaky([CatalogAPIError("x", 500)] * 5)
    wrapped = retry_with_backoff(max_retries=2, sleep=lambda _: None)(fn)
    with pytest.raises(CatalogAPIError):
        wrapped()
    assert calls["n"] == 3


def test_client_errors_not_retried():
    fn, calls = _flaky([CatalogAPIError("x", 422)])
    wrapped = retry_with_backoff(max_retries=3, sleep=lambda _: None)(fn)
    with pytest.raises(CatalogAPIError):
        wrapped()
    assert calls["n"] == 1


def test_transport_errors_retried():
    fn, calls = _flaky([CatalogTransportError("reset")])
    wrapped = retry_with_backoff(max_retries=1, sleep=lambda _: None)(fn)
    assert wrapped() == "ok"
    assert calls["n"] == 2


def test_deadline_never_retried():
    fn, calls = _flaky([JobTimeoutError("x", 10, 5)])
    wrapped = retry_with_backoff(max_retries=3, sleep=lambda _: None)(fn)
    with pytest.raises(JobTimeoutError):
        wrapped()
    assert calls["n"] == 1


def test_zero_retries_single_attempt():
    fn, calls = _flaky([CatalogAPIError("x", 429)])
    with pytest.raises(CatalogAPIError):
        retry_with_backoff(max_retries=0)(fn)()
    assert calls["n"] == 1


def test_retryable_codes():
    assert RETRYABLE_STATUS_CODES == {429, 500, 502, 503, 504}


class TestComputeDelay:
    def test_retry_after_respected(self):
        assert compute_delay(0, 1.0, 60.0, 0.3, retry_after="7") == 7.0

    def test_retry_after_capped(self):
        assert compute_delay(0, 1.0, 10.0, 0.3, retry_after="120") == 10.0

    def test_bad_retry_after_ignored(self):
        with patch("mockup_forge.catalog.retry.random.uniform", return_value=0.0):
            assert compute_delay(2, 1.0, 60.0, 0.3, retry_after="soon") == 4.0

    def test_exponential_and_capped(self):
        with patch("mockup_forge.catalog.retry.random.uniform", return_value=0.0):
            assert [compute_delay(a, 5.0, 60.0, 0.2) for a in range(5)] == [5, 10, 20, 40, 60]

    def test_jitter_bounds(self):
        for _ in range(50):
            assert 8.0 <= compute_delay(1, 5.0, 60.0, 0.2) <= 12.0
