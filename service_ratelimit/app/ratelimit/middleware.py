"""
Request-side glue between FastAPI and the admission filter.
"""

import math
from typing import Dict

from fastapi import Request

from shared.errors import RateLimitError
from shared.logging import get_logger, set_client_context

from .admission import AdmissionFilter, Decision

UNKNOWN_CLIENT = "unknown"


class RateLimitMiddleware:
    """Resolves the caller's identifier and runs it through the filter."""

    def __init__(self, admission: AdmissionFilter, trust_proxy: bool = True):
        self.admission = admission
        self.trust_proxy = trust_proxy
        self.logger = get_logger("ratelimit.middleware")

    async def check_request(self, request: Request) -> Decision:
        """Admit or deny the request's client."""
        client_id = self._get_client_id(request)
        set_client_context(client_id)
        return self.admission.admit(client_id)

    async def enforce(self, request: Request) -> Decision:
        """Like :meth:`check_request`, but raise ``RateLimitError`` on denial."""
        decision = await self.check_request(request)
        if not decision.allowed:
            retry_after = max(1, math.ceil(decision.retry_after_seconds))
            raise RateLimitError(
                details={
                    "limit": decision.limit,
                    "remaining": decision.tokens_remaining,
                    "retry_after_seconds": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    **self.rate_limit_headers(decision),
                },
            )
        return decision

    def rate_limit_headers(self, decision: Decision) -> Dict[str, str]:
        """Standard rate limit headers for a decision."""
        return {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.tokens_remaining),
        }

    def _get_client_id(self, request: Request) -> str:
        """Extract client ID from request.

        Requests with no resolvable address all share the ``"unknown"`` bucket.
        """
        if self.trust_proxy:
            forwarded_for = request.headers.get('X-Forwarded-For')
            if isinstance(forwarded_for, str) and forwarded_for.strip():
                first = forwarded_for.split(',')[0].strip()
                if first:
                    return first

            real_ip = request.headers.get('X-Real-IP')
            if isinstance(real_ip, str) and real_ip.strip():
                return real_ip.strip()

        if request.client and request.client.host:
            return request.client.host

        return UNKNOWN_CLIENT
