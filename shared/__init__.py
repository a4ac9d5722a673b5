"""
Shared utilities for Tiny Content Cache.

Common building blocks consumed by the cache core and the caching service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- circuit_breaker: Protection for calls to the shared cache backend
- base_service: FastAPI service skeleton

Do not import from service_* packages into shared/.
"""
