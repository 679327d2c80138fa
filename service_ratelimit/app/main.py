"""
Rate limiting service: FastAPI wiring around the token bucket admission filter.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import FileResponse

from shared.base_service import BaseService
from service_ratelimit.app.ratelimit import AdmissionFilter, RateLimitMiddleware, RefillPolicy

STATIC_DIR = Path(__file__).parent / "static"


class RateLimitService(BaseService):
    """HTTP service whose /api routes are guarded by a per-client token bucket."""

    def __init__(self, admission: Optional[AdmissionFilter] = None):
        super().__init__("ratelimit", int(os.getenv("PORT", "3000")))

        if admission is None:
            admission = AdmissionFilter(
                policy=RefillPolicy.from_config(self.config),
                collector=self.metrics,
            )
        self.admission = admission
        self.rate_limit_middleware = RateLimitMiddleware(
            self.admission,
            trust_proxy=self.config.trust_proxy,
        )

        self._setup_ratelimit_routes()

        self.logger.info(
            "Rate limiter configured",
            capacity=self.admission.policy.capacity,
            refill_rate=self.admission.policy.refill_rate,
            refill_interval_seconds=self.admission.policy.refill_interval,
            trust_proxy=self.config.trust_proxy,
        )

        # Expose service instance via app state for introspection/testing
        self.app.state.ratelimit_service = self

    async def _enforce_rate_limit(self, request: Request, response: Response):
        """Dependency applied to every protected route."""
        decision = await self.rate_limit_middleware.enforce(request)
        response.headers.update(self.rate_limit_middleware.rate_limit_headers(decision))
        return decision

    async def _health_details(self) -> Dict[str, Any]:
        policy = self.admission.policy
        return {
            "capacity": policy.capacity,
            "refill_rate": policy.refill_rate,
            "refill_interval_seconds": policy.refill_interval,
            "active_buckets": len(self.admission.store),
        }

    def _setup_ratelimit_routes(self):
        """Set up the dashboard, metrics and protected API routes."""

        @self.app.get("/", include_in_schema=False)
        async def dashboard():
            """Serve the metrics dashboard."""
            return FileResponse(STATIC_DIR / "index.html")

        # Registered on the app, outside the protected router.
        @self.app.get("/api/metrics")
        async def get_metrics():
            """Admission counters; never rate limited."""
            return self.admission.metrics_snapshot().model_dump(by_alias=True)

        protected = APIRouter(prefix="/api", dependencies=[Depends(self._enforce_rate_limit)])

        @protected.get("/data")
        async def get_data():
            """Main API endpoint."""
            return {"message": "Success"}

        self.app.include_router(protected)


def create_app(admission: Optional[AdmissionFilter] = None):
    """Create FastAPI application."""
    service = RateLimitService(admission)
    return service.app


if __name__ == "__main__":
    service = RateLimitService()
    service.run()
