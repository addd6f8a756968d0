from datetime import datetime, timedelta
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.cache import get_cache
from app.core.config import settings
from app.core.database import SessionLocal
from app.core.firebase import verify_firebase_token
from app.models.plan import PlanTier
from app.models.subscription import SubscriptionStatus
from app.models.user import User
from app.workflow.subscription import compute_subscription_status

logger = logging.getLogger(__name__)

# Requests allowed per plan tier
RATE_LIMITS = {
    'free': {
        'per_minute': 60,
        'per_hour': 1000,
    },
    'pro': {
        'per_minute': 120,
        'per_hour': 5000,
    },
    'custom': {
        'per_minute': 300,
        'per_hour': 0,  # unlimited
    },
}

# Unauthenticated requests are limited per client IP
DEFAULT_IP_LIMITS = {
    'per_minute': 30,
    'per_hour': 500,
}

PUBLIC_PATHS = ['/health', '/docs', '/openapi.json', '/redoc']


def rate_limit_plan(user: User) -> str:
    """Plan tier whose limits apply; an expired subscription gets Free limits"""
    subscription_status = compute_subscription_status(
        user.plan,
        user.subscription_end_date,
        user.pending_plan is not None,
        datetime.utcnow(),
        settings.grace_period_days,
    )
    if subscription_status == SubscriptionStatus.EXPIRED:
        return PlanTier.FREE.value
    return user.plan


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies per-plan limits to authenticated callers and per-IP limits to
    everyone else. Counters live in Redis; without Redis every request passes.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.cache = get_cache()

    async def dispatch(self, request: Request, call_next):
        if not settings.rate_limit_enabled or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        email, plan = self._identify(request)

        if email and plan:
            limits = RATE_LIMITS.get(plan, RATE_LIMITS['free'])
            if not self._check_limit('user', email, limits):
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "detail": f"Rate limit exceeded. Your {plan} plan allows {limits['per_minute']} requests per minute. Please try again later.",
                        "retry_after": 60
                    },
                    headers={
                        "Retry-After": "60",
                        "X-RateLimit-Limit": str(limits['per_minute']),
                        "X-RateLimit-Remaining": "0",
                    }
                )
        else:
            client_ip = self._get_client_ip(request)
            if not self._check_limit('ip', client_ip, DEFAULT_IP_LIMITS):
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "detail": "Rate limit exceeded. Please authenticate or try again later.",
                        "retry_after": 60
                    },
                    headers={"Retry-After": "60"}
                )

        response = await call_next(request)

        if email and plan:
            limits = RATE_LIMITS.get(plan, RATE_LIMITS['free'])
            remaining = self._get_remaining_requests(email, limits)
            response.headers["X-RateLimit-Limit"] = str(limits['per_minute'])
            response.headers["X-RateLimit-Remaining"] = str(remaining)
            response.headers["X-RateLimit-Reset"] = str(int((datetime.utcnow() + timedelta(minutes=1)).timestamp()))

        return response

    def _identify(self, request: Request) -> tuple:
        """(email, plan) of the bearer token's account, or (None, None)"""
        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            return None, None

        try:
            decoded_token = verify_firebase_token(auth_header.split(' ')[1])
            email = (decoded_token.get('email') or '').strip().lower()
            if not email:
                return None, None

            db = SessionLocal()
            try:
                user = db.get(User, email)
                if user:
                    request.state.user_email = email
                    plan = rate_limit_plan(user)
                    request.state.user_plan = plan
                    return email, plan
            finally:
                db.close()
        except Exception as e:
            # The auth dependency reports invalid tokens
            logger.debug(f"Rate limit middleware: Could not verify token: {e}")

        return None, None

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"

    def _window_keys(self, scope: str, ident: str) -> tuple[str, str]:
        now = datetime.utcnow()
        minute = now.replace(second=0, microsecond=0)
        hour = now.replace(minute=0, second=0, microsecond=0)
        return (
            f"rate_limit:{scope}:{ident}:minute:{minute.isoformat()}",
            f"rate_limit:{scope}:{ident}:hour:{hour.isoformat()}",
        )

    def _check_limit(self, scope: str, ident: str, limits: dict) -> bool:
        """Count the request against both windows; False once a limit is reached"""
        minute_key, hour_key = self._window_keys(scope, ident)

        minute_count = self.cache.get_int(minute_key) or 0
        if minute_count >= limits['per_minute']:
            logger.warning(f"Rate limit exceeded (per minute) - {scope}: {ident}")
            return False

        if limits['per_hour'] > 0:
            hour_count = self.cache.get_int(hour_key) or 0
            if hour_count >= limits['per_hour']:
                logger.warning(f"Rate limit exceeded (per hour) - {scope}: {ident}")
                return False
            self.cache.set(hour_key, hour_count + 1, ttl_minutes=60)

        self.cache.set(minute_key, minute_count + 1, ttl_minutes=1)
        return True

    def _get_remaining_requests(self, email: str, limits: dict) -> int:
        minute_key, _ = self._window_keys('user', email)
        minute_count = self.cache.get_int(minute_key) or 0
        return max(0, limits['per_minute'] - minute_count)
