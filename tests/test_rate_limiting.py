"""
Tests for rate limiting functionality
"""

import asyncio

import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.rate_limit_middleware import (DEFAULT_IP_LIMITS, RATE_LIMITS,
                                            RateLimitMiddleware,
                                            rate_limit_plan)
from app.models.user import User


@pytest.fixture
def rate_cache():
    """Mock cache for rate limiting"""
    cache = MagicMock()
    cache.get_int.return_value = 0
    cache.set.return_value = None
    return cache


@pytest.fixture
def mock_request():
    """Create mock request"""
    request = MagicMock(spec=Request)
    request.url.path = "/api/v1/accounts/me"
    request.headers = {}
    request.state = MagicMock()
    request.client = MagicMock()
    request.client.host = "127.0.0.1"
    return request


@pytest.fixture
def middleware(rate_cache):
    with patch("app.core.rate_limit_middleware.get_cache", return_value=rate_cache):
        yield RateLimitMiddleware(MagicMock())


@pytest.fixture
def rate_limit_enabled(monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "rate_limit_enabled", True)


async def _ok(request):
    return JSONResponse({"status": "ok"})


class TestPlanLimits:

    def test_free_user_within_limit(self, middleware, rate_cache):
        rate_cache.get_int.return_value = 30

        assert middleware._check_limit("user", "a@example.com", RATE_LIMITS["free"]) is True
        rate_cache.set.assert_called()

    def test_free_user_exceeds_per_minute_limit(self, middleware, rate_cache):
        rate_cache.get_int.return_value = 60
        assert middleware._check_limit("user", "a@example.com", RATE_LIMITS["free"]) is False
        rate_cache.set.assert_not_called()

    def test_free_user_exceeds_per_hour_limit(self, middleware, rate_cache):
        rate_cache.get_int.side_effect = lambda key: 30 if "minute" in key else 1000
        assert middleware._check_limit("user", "a@example.com", RATE_LIMITS["free"]) is False

    def test_pro_user_higher_limits(self, middleware, rate_cache):
        rate_cache.get_int.return_value = 80
        assert middleware._check_limit("user", "a@example.com", RATE_LIMITS["pro"]) is True

    def test_custom_plan_has_no_hourly_cap(self, middleware, rate_cache):
        rate_cache.get_int.side_effect = lambda key: 10 if "minute" in key else 1_000_000
        assert middleware._check_limit("user", "a@example.com", RATE_LIMITS["custom"]) is True
        # Only the minute window is counted
        assert rate_cache.set.call_count == 1

    def test_ip_limit(self, middleware, rate_cache):
        rate_cache.get_int.return_value = DEFAULT_IP_LIMITS["per_minute"]
        assert middleware._check_limit("ip", "10.0.0.1", DEFAULT_IP_LIMITS) is False

    def test_keys_are_scoped(self, middleware):
        minute_key, hour_key = middleware._window_keys("user", "a@example.com")
        assert minute_key.startswith("rate_limit:user:a@example.com:minute:")
        assert hour_key.startswith("rate_limit:user:a@example.com:hour:")


class TestRateLimitPlan:

    def test_active_pro_keeps_pro_limits(self):
        user = User(email="a@example.com", plan="pro",
                    subscription_end_date=datetime.utcnow() + timedelta(days=10))
        assert rate_limit_plan(user) == "pro"

    def test_past_due_pro_keeps_pro_limits(self):
        user = User(email="a@example.com", plan="pro",
                    subscription_end_date=datetime.utcnow() - timedelta(days=2))
        assert rate_limit_plan(user) == "pro"

    def test_expired_pro_gets_free_limits(self):
        user = User(email="a@example.com", plan="pro",
                    subscription_end_date=datetime.utcnow() - timedelta(days=30))
        assert rate_limit_plan(user) == "free"


class TestClientIp:

    def test_forwarded_for_first_hop(self, middleware, mock_request):
        mock_request.headers = {"X-Forwarded-For": "1.2.3.4, 10.0.0.1"}
        assert middleware._get_client_ip(mock_request) == "1.2.3.4"

    def test_real_ip(self, middleware, mock_request):
        mock_request.headers = {"X-Real-IP": "5.6.7.8"}
        assert middleware._get_client_ip(mock_request) == "5.6.7.8"

    def test_direct_client(self, middleware, mock_request):
        assert middleware._get_client_ip(mock_request) == "127.0.0.1"


class TestDispatch:

    def test_disabled_passes_through(self, middleware, rate_cache, mock_request):
        response = asyncio.run(middleware.dispatch(mock_request, _ok))
        assert response.status_code == 200
        rate_cache.get_int.assert_not_called()

    def test_public_paths_skip_limits(self, middleware, rate_cache, mock_request, rate_limit_enabled):
        mock_request.url.path = "/health"
        response = asyncio.run(middleware.dispatch(mock_request, _ok))
        assert response.status_code == 200
        rate_cache.get_int.assert_not_called()

    @patch("app.core.rate_limit_middleware.SessionLocal")
    @patch("app.core.rate_limit_middleware.verify_firebase_token")
    def test_user_over_limit_gets_429(self, mock_verify, mock_session_local, middleware, rate_cache,
                                      mock_request, rate_limit_enabled):
        mock_verify.return_value = {"uid": "u1", "email": "A@Example.com"}
        user = MagicMock(subscription_end_date=None, pending_plan=None)
        user.plan = "free"
        mock_session_local.return_value.get.return_value = user
        rate_cache.get_int.return_value = 60
        mock_request.headers = {"Authorization": "Bearer token"}

        response = asyncio.run(middleware.dispatch(mock_request, _ok))

        assert response.status_code == 429
        body = response.body.decode()
        assert "Rate limit exceeded" in body
        assert "free" in body
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Limit"] == "60"
        mock_session_local.return_value.close.assert_called_once()

    @patch("app.core.rate_limit_middleware.SessionLocal")
    @patch("app.core.rate_limit_middleware.verify_firebase_token")
    def test_user_within_limit_gets_headers(self, mock_verify, mock_session_local, middleware, rate_cache,
                                            mock_request, rate_limit_enabled):
        mock_verify.return_value = {"uid": "u1", "email": "a@example.com"}
        user = MagicMock(subscription_end_date=None, pending_plan=None)
        user.plan = "pro"
        mock_session_local.return_value.get.return_value = user
        mock_request.headers = {"Authorization": "Bearer token"}

        response = asyncio.run(middleware.dispatch(mock_request, _ok))

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "120"
        assert "X-RateLimit-Reset" in response.headers

    @patch("app.core.rate_limit_middleware.SessionLocal")
    @patch("app.core.rate_limit_middleware.verify_firebase_token")
    def test_expired_pro_user_gets_free_limits(self, mock_verify, mock_session_local, middleware, rate_cache,
                                               mock_request, rate_limit_enabled):
        mock_verify.return_value = {"uid": "u1", "email": "a@example.com"}
        mock_session_local.return_value.get.return_value = User(
            email="a@example.com",
            plan="pro",
            subscription_end_date=datetime.utcnow() - timedelta(days=30),
        )
        mock_request.headers = {"Authorization": "Bearer token"}

        response = asyncio.run(middleware.dispatch(mock_request, _ok))

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "60"

    @patch("app.core.rate_limit_middleware.verify_firebase_token")
    def test_invalid_token_falls_back_to_ip(self, mock_verify, middleware, rate_cache,
                                            mock_request, rate_limit_enabled):
        mock_verify.side_effect = ValueError("bad token")
        rate_cache.get_int.return_value = DEFAULT_IP_LIMITS["per_minute"]
        mock_request.headers = {"Authorization": "Bearer nope"}

        response = asyncio.run(middleware.dispatch(mock_request, _ok))

        assert response.status_code == 429
        assert "authenticate" in response.body.decode()
