"""
Content cache package for Tiny Content Cache.

Memoizes the rendered body of a content unit per content identifier and
evicts it when the content changes state.

Structure:
- app.main: FastAPI app wiring the cache between callers and the content service.
- app.caching: Eligibility rules, publish gate, render capture and the decision engine.
- app.invalidation: Lifecycle event bus, invalidation coordinator and Kafka listener.
- app.store: Store adapter over the shared Redis cache.
- app.adapters: HTTP client for the upstream content service.
"""
