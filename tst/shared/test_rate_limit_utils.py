"""Tests for request throttling and client identification."""

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from securecontact.shared.rate_limit_utils import RateLimiter, get_client_ip


def make_request(headers=None, host="10.1.1.1"):
    client = SimpleNamespace(host=host) if host else None
    return SimpleNamespace(headers=headers or {}, client=client)


class TestGetClientIp:

    def test_first_forwarded_address_wins(self) -> None:
        request = make_request({"X-Forwarded-For": "198.51.100.4, 10.0.0.1"})
        assert get_client_ip(request) == "198.51.100.4"

    def test_falls_back_to_peer(self) -> None:
        assert get_client_ip(make_request()) == "10.1.1.1"

    def test_unknown_without_peer(self) -> None:
        assert get_client_ip(make_request(host=None)) == "unknown"


class TestRateLimiter:

    @pytest.fixture
    def now(self):
        return [1000.0]

    @pytest.fixture
    def limiter(self, now) -> RateLimiter:
        return RateLimiter("contact", max_requests=3, window_seconds=60, clock=lambda: now[0])

    def test_allows_up_to_limit(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            limiter.check("a")

    def test_rejects_over_limit(self, limiter: RateLimiter, now) -> None:
        for _ in range(3):
            limiter.check("a")
        now[0] += 10
        with pytest.raises(HTTPException) as exc_info:
            limiter.check("a")

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail["retryAfterSeconds"] == 51
        assert exc_info.value.headers["Retry-After"] == "51"

    def test_window_slides(self, limiter: RateLimiter, now) -> None:
        for _ in range(3):
            limiter.check("a")
        now[0] += 60
        limiter.check("a")

    def test_keys_are_independent(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            limiter.check("a")
        limiter.check("b")

    def test_reset(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            limiter.check("a")
        limiter.reset("a")
        limiter.check("a")
