"""
Rate limiting service package.

The service fronts client requests with a per-client token bucket:
- app.main: FastAPI app, routes, and admission dependency wiring.
- app.ratelimit: Bucket store, refill engine, counters and middleware.
- app.static: Metrics dashboard served at "/".
"""
