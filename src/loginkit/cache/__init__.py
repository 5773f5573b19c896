"""Provider metadata caching for loginkit.

This package provides :class:`MetadataCache`, which keeps discovered
OpenID provider configurations keyed by domain with a fixed time-to-live.
The cache is in-process by default and can be backed by :mod:`diskcache`
so that the TTL spans separate CLI invocations.

The cache is consumed by :class:`~loginkit.oauth.discovery.MetadataResolver`.
"""

from loginkit.cache.cache import MetadataCache

__all__ = ["MetadataCache"]
