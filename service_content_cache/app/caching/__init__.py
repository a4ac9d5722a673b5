"""
Content caching package.

The decision engine consults the store only for eligible requests and
writes only publishable content. Cache failures never change what the
caller receives, only how long it takes.
"""
