"""OpenID Connect discovery with caching and conventional fallback.

This module provides :class:`MetadataResolver`, which turns a bare provider
domain into a complete :class:`~loginkit.models.ProviderMetadata`. It
fetches ``https://{domain}/.well-known/openid-configuration`` at most once
per cache lifetime and validates the four required endpoints.

:meth:`MetadataResolver.resolve` never raises. Any discovery failure
(transport error, non-2xx status, unparseable body, missing required
field) is logged as a warning and answered with
:meth:`ProviderMetadata.fallback`, which points at the conventional
``/oauth/...`` paths under the same domain. Fallback values are not cached,
so the next invocation tries discovery again.

See Also:
    :class:`loginkit.cache.MetadataCache` for the domain-keyed TTL cache.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from loginkit.cache import MetadataCache
from loginkit.models import ProviderMetadata

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


def normalize_domain(domain: str) -> str:
    """Reduce user input such as ``"https://acme.example/"`` to ``"acme.example"``."""
    value = domain.strip()
    for prefix in ("https://", "http://"):
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break
    return value.rstrip("/")


def discovery_url(domain: str) -> str:
    return f"https://{normalize_domain(domain)}{WELL_KNOWN_PATH}"


class MetadataResolver:
    """Resolve provider metadata for a domain, with caching and safe fallback.

    Args:
        cache: Cache to consult and fill. Defaults to a process-local
            :class:`~loginkit.cache.MetadataCache` with a 24 hour TTL.
        timeout: HTTP timeout in seconds for the discovery request.
    """

    def __init__(
        self,
        cache: Optional[MetadataCache] = None,
        timeout: float = 10.0,
    ) -> None:
        self._cache = cache if cache is not None else MetadataCache()
        self._timeout = timeout

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    def resolve(self, domain: str) -> ProviderMetadata:
        """Return metadata for *domain* from cache, the network, or convention.

        Args:
            domain: Provider host, optionally with a scheme prefix.

        Returns:
            A complete :class:`~loginkit.models.ProviderMetadata`.
        """
        domain = normalize_domain(domain)

        cached = self._cache.get(domain)
        if cached is not None:
            logger.debug("Using cached provider metadata for %s", domain)
            return cached

        try:
            metadata = self.discover(domain)
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            # pydantic.ValidationError and json.JSONDecodeError are ValueErrors.
            logger.warning(
                "Failed to discover OpenID configuration for %s, using defaults: %s",
                domain,
                exc,
            )
            return ProviderMetadata.fallback(domain)

        self._cache.put(domain, metadata)
        return metadata

    def discover(self, domain: str) -> ProviderMetadata:
        """Fetch and validate the discovery document without any fallback.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx status.
            ValueError: If the body is not JSON or misses a required field.
        """
        url = discovery_url(domain)
        logger.debug("Fetching %s", url)
        response = httpx.get(
            url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        doc: Any = response.json()
        if not isinstance(doc, dict):
            raise ValueError("discovery document is not a JSON object")
        try:
            return ProviderMetadata.model_validate(doc)
        except ValidationError as exc:
            missing = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
            raise ValueError(
                f"Missing or invalid required field in OpenID configuration: {missing}"
            ) from exc

    def invalidate(self, domain: Optional[str] = None) -> None:
        """Forget cached metadata for *domain*, or for every domain."""
        self._cache.invalidate(normalize_domain(domain) if domain else None)
