"""
API-key and rate-limit dependencies for the UPIShield API.
"""

import time
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from upishield.config import settings
from upishield.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

api_key_header = APIKeyHeader(name=settings.api_token_header, auto_error=False)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
):
    """
    Require the configured API token on protected routes.

    With no token configured (local development) every request passes.
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("API token not configured in production mode")
        return None

    if not api_key:
        logger.warning("Missing API key", client=_client_ip(request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Provide the {settings.api_token_header} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != settings.api_token:
        logger.warning("Invalid API key", client=_client_ip(request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


class RateLimiter:
    """Sliding-window request counter keyed by client address."""

    def __init__(self):
        self._requests: Dict[str, List[float]] = defaultdict(list)

    def _prune(self, key: str, window: int):
        now = time.time()
        self._requests[key] = [ts for ts in self._requests[key] if now - ts < window]

    def is_allowed(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """Record a request if under the limit. Returns (allowed, remaining)."""
        self._prune(key, window)
        used = len(self._requests[key])
        if used >= limit:
            return False, 0

        self._requests[key].append(time.time())
        return True, limit - used - 1

    def get_retry_after(self, key: str, window: int) -> int:
        if not self._requests[key]:
            return 0
        oldest = min(self._requests[key])
        return max(0, int(window - (time.time() - oldest)))

    def reset(self):
        self._requests.clear()


rate_limiter = RateLimiter()


async def check_rate_limit(request: Request):
    """Per-IP rate limit; a limit of 0 disables it."""
    if not settings.rate_limit_requests:
        return

    client_ip = _client_ip(request)
    allowed, remaining = rate_limiter.is_allowed(
        key=client_ip,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
    )

    request.state.rate_limit_remaining = remaining
    request.state.rate_limit_limit = settings.rate_limit_requests

    if not allowed:
        retry_after = rate_limiter.get_retry_after(client_ip, settings.rate_limit_window)
        logger.warning("Rate limit exceeded", client=client_ip, retry_after=retry_after)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(settings.rate_limit_requests),
                "X-RateLimit-Remaining": "0",
            },
        )
