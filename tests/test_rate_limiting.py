"""Tests for rate limiting on the tokenization config endpoint."""

from unittest.mock import patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from shulpay.core.rate_limiter import RateLimiter
from shulpay.main import app
from shulpay.routers.cardknox import client_ip, config_rate_limiter
from tests.conftest import create_processor


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Ensure rate limiter is clean before and after every test."""
    config_rate_limiter.reset()
    yield
    config_rate_limiter.reset()


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60)

        assert [limiter.is_allowed("ip") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        assert limiter.is_allowed("a")
        assert limiter.is_allowed("b")
        assert not limiter.is_allowed("a")

    def test_window_expiry_resets_count(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=1000.0):
            assert limiter.is_allowed("ip")
            assert not limiter.is_allowed("ip")
        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=1060.0):
            assert limiter.is_allowed("ip")

    def test_prune_drops_expired_windows(self):
        limiter = RateLimiter(max_requests=5, window_seconds=10)

        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=0.0):
            limiter.is_allowed("old")
        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=5.0):
            limiter.is_allowed("new")
        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=12.0):
            assert limiter.prune() == 1

    def test_expired_windows_swept_during_checks(self):
        limiter = RateLimiter(max_requests=5, window_seconds=10)

        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=0.0):
            limiter.is_allowed("old")
        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=5.0):
            limiter.is_allowed("recent")
        with patch("shulpay.core.rate_limiter.time.monotonic", return_value=10.0):
            limiter.is_allowed("fresh")

        assert sorted(limiter._windows) == ["fresh", "recent"]

    def test_reset(self):
        limiter = RateLimiter(max_requests=1)
        limiter.is_allowed("ip")

        limiter.reset()

        assert limiter.is_allowed("ip")


class TestConfigEndpointRateLimit:
    def _post(self, client, processor_id, ip="203.0.113.7"):
        return client.post(
            "/cardknox-config",
            json={"processor_id": str(processor_id)},
            headers={"X-Forwarded-For": f"{ip}, 10.0.0.1"},
        )

    def test_rejects_over_limit(self, client, db_session):
        processor = create_processor(db_session)

        with patch.object(config_rate_limiter, "max_requests", 2):
            assert self._post(client, processor.id).status_code == 200
            assert self._post(client, processor.id).status_code == 200
            response = self._post(client, processor.id)

        assert response.status_code == 429
        assert response.json() == {"success": False, "error": "Too many requests"}

    def test_limit_is_per_client_ip(self, client, db_session):
        processor = create_processor(db_session)

        with patch.object(config_rate_limiter, "max_requests", 1):
            assert self._post(client, processor.id, ip="198.51.100.1").status_code == 200
            assert self._post(client, processor.id, ip="198.51.100.2").status_code == 200
            assert self._post(client, processor.id, ip="198.51.100.1").status_code == 429

    def test_invalid_requests_count_toward_limit(self, client):
        with patch.object(config_rate_limiter, "max_requests", 1):
            assert self._post(client, "not-a-uuid").status_code == 400
            assert self._post(client, "not-a-uuid").status_code == 429

    def test_direct_caller_keyed_by_peer_address(self, client, db_session):
        processor = create_processor(db_session)

        original = config_rate_limiter.is_allowed
        with patch.object(config_rate_limiter, "is_allowed", wraps=original) as is_allowed:
            client.post("/cardknox-config", json={"processor_id": str(processor.id)})

        is_allowed.assert_called_once_with("testclient")


def _request(headers=None, client=("198.51.100.1", 50000)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/cardknox-config",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestClientIp:
    def test_forwarded_for_takes_first_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert client_ip(request) == "203.0.113.7"

    def test_cloudflare_header(self):
        assert client_ip(_request({"CF-Connecting-IP": "203.0.113.9"})) == "203.0.113.9"

    def test_two_direct_callers_get_separate_keys(self):
        first = client_ip(_request(client=("198.51.100.1", 50000)))
        second = client_ip(_request(client=("198.51.100.2", 50001)))

        assert first == "198.51.100.1"
        assert second == "198.51.100.2"

    def test_unknown_without_peer(self):
        assert client_ip(_request(client=None)) == "unknown"
