"""
Invalidation package.

Evicts cached content eagerly on lifecycle events instead of waiting for
the TTL to expire.
"""
