"""
Store package.

Provides the Redis-backed store adapter. The store is an optimization:
errors are absorbed here and never propagate to callers.
"""
