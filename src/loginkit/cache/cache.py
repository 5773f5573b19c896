"""Domain-keyed cache for OpenID provider metadata.

Each entry stores the metadata as a plain dict together with the instant
it was fetched, as reported by an injectable clock. Freshness is computed
on read against the configured TTL, so tests can drive expiry without
sleeping.

The backing store is any mapping that supports ``get``, item assignment,
``pop``, and ``clear``: a ``dict`` for a process-local cache or a
:class:`diskcache.Cache` (see :meth:`MetadataCache.on_disk`) for a cache
that survives between invocations.

See Also:
    :class:`~loginkit.oauth.discovery.MetadataResolver` -- the only writer.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

import diskcache
from pydantic import ValidationError

from loginkit.models import DEFAULT_DISCOVERY_TTL, ProviderMetadata

logger = logging.getLogger(__name__)


class MetadataCache:
    """Cache of :class:`~loginkit.models.ProviderMetadata` keyed by domain.

    Args:
        backend: Mapping used for storage. Defaults to a fresh ``dict``.
        ttl_seconds: Maximum entry age in seconds (24 hours by default).
        clock: Callable returning the current time in seconds.

    Example::

        cache = MetadataCache(ttl_seconds=60, clock=lambda: 1000.0)
        cache.put("acme.example", ProviderMetadata.fallback("acme.example"))
        assert cache.get("acme.example") is not None
    """

    def __init__(
        self,
        backend: Optional[Any] = None,
        ttl_seconds: int = DEFAULT_DISCOVERY_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries = backend if backend is not None else {}
        self._ttl = ttl_seconds
        self._clock = clock

    @classmethod
    def on_disk(
        cls,
        cache_dir: str | Path,
        ttl_seconds: int = DEFAULT_DISCOVERY_TTL,
        clock: Callable[[], float] = time.time,
    ) -> MetadataCache:
        """Create a cache persisted under ``<cache_dir>/discovery``."""
        backend = diskcache.Cache(str(Path(cache_dir) / "discovery"))
        return cls(backend=backend, ttl_seconds=ttl_seconds, clock=clock)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def get(self, domain: str) -> Optional[ProviderMetadata]:
        """Return the cached metadata for *domain* if it is younger than the TTL.

        Stale or undecodable entries are evicted and ``None`` is returned.
        """
        entry = self._entries.get(domain)
        if entry is None:
            return None

        try:
            data, stored_at = entry
            age = self._clock() - float(stored_at)
            if age >= self._ttl:
                logger.debug("Discovery cache entry for %s expired (age %.0fs)", domain, age)
                self._entries.pop(domain, None)
                return None
            return ProviderMetadata.model_validate(data)
        except (TypeError, ValueError, ValidationError):
            logger.debug("Discarding unreadable discovery cache entry for %s", domain)
            self._entries.pop(domain, None)
            return None

    def put(self, domain: str, metadata: ProviderMetadata) -> None:
        """Store *metadata* for *domain*, stamped with the current clock value."""
        self._entries[domain] = (metadata.model_dump(mode="json"), self._clock())

    def invalidate(self, domain: Optional[str] = None) -> None:
        """Drop the entry for *domain*, or every entry when *domain* is ``None``."""
        if domain is None:
            self._entries.clear()
        else:
            self._entries.pop(domain, None)

    def close(self) -> None:
        """Release the backing :class:`diskcache.Cache`, if any."""
        if isinstance(self._entries, diskcache.Cache):
            self._entries.close()
