"""Dynamic client registration (:rfc:`7591`).

:func:`register_client` asks the provider for a fresh public client --
native application, ``authorization_code`` grant, no client secret
(``token_endpoint_auth_method=none``), a single localhost redirect URI --
and saves the response per domain so later logins reuse it.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from loginkit.auth.client_store import ClientStore
from loginkit.exceptions import RegistrationError, RegistrationUnsupportedError
from loginkit.models import ClientRegistration, ClientRegistrationRequest
from loginkit.oauth.discovery import MetadataResolver, normalize_domain

logger = logging.getLogger(__name__)


def build_registration_request(client_name: str, redirect_uri: str) -> ClientRegistrationRequest:
    return ClientRegistrationRequest(client_name=client_name, redirect_uris=[redirect_uri])


def register_client(
    domain: str,
    client_name: str,
    redirect_uri: str,
    resolver: Optional[MetadataResolver] = None,
    store: Optional[ClientStore] = None,
    timeout: float = 30.0,
) -> ClientRegistration:
    """Register a new OAuth client with the provider for *domain*.

    Args:
        domain: Provider domain.
        client_name: Human-readable ``client_name`` shown on consent screens.
        redirect_uri: The single redirect URI to register.
        resolver: Metadata resolver supplying ``registration_endpoint``.
        store: Where to persist the registration. Defaults to
            :class:`~loginkit.auth.client_store.ClientStore`.
        timeout: HTTP timeout in seconds.

    Returns:
        The provider's :class:`~loginkit.models.ClientRegistration`.

    Raises:
        RegistrationUnsupportedError: If the provider advertises no
            registration endpoint.
        RegistrationError: On a non-2xx status (carrying the provider's
            body verbatim), a transport failure, or a malformed response.
    """
    domain = normalize_domain(domain)
    resolver = resolver or MetadataResolver()
    store = store or ClientStore()

    metadata = resolver.resolve(domain)
    if not metadata.registration_endpoint:
        raise RegistrationUnsupportedError(
            "OAuth provider does not support dynamic client registration"
        )

    body = build_registration_request(client_name, redirect_uri)
    logger.debug("Registering client %r at %s", client_name, metadata.registration_endpoint)

    try:
        response = httpx.post(
            metadata.registration_endpoint,
            json=body.model_dump(),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        payload: Any = response.json()
        registration = ClientRegistration.model_validate(payload)
    except httpx.HTTPStatusError as exc:
        raise RegistrationError(f"Client registration failed: {exc.response.text}") from exc
    except httpx.HTTPError as exc:
        raise RegistrationError(f"Client registration failed: {exc}") from exc
    except (ValidationError, ValueError) as exc:
        raise RegistrationError(f"Invalid client registration response: {exc}") from exc

    store.save(domain, registration)
    return registration
