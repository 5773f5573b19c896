"""Authorization code for token exchange.

:func:`exchange_code` POSTs the form-encoded ``authorization_code`` grant to
the provider's token endpoint. The client proves itself with exactly one of
``client_secret`` (:class:`~loginkit.models.ConfidentialClient`) or
``code_verifier`` (:class:`~loginkit.models.PublicClient`); the two are never
sent together. The request is attempted once.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from loginkit.exceptions import TokenExchangeError
from loginkit.models import ClientAuth, ConfidentialClient, ProviderMetadata, PublicClient, TokenResponse

logger = logging.getLogger(__name__)


def build_token_request(
    client_id: str,
    code: str,
    redirect_uri: str,
    client_auth: ClientAuth,
) -> dict[str, str]:
    """Return the form body for the token request.

    Raises:
        TypeError: If *client_auth* is not one of the two known variants.
    """
    data: dict[str, str] = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": client_id,
        "redirect_uri": redirect_uri,
    }
    if isinstance(client_auth, ConfidentialClient):
        data["client_secret"] = client_auth.secret
    elif isinstance(client_auth, PublicClient):
        data["code_verifier"] = client_auth.verifier
    else:
        raise TypeError(f"Unsupported client authentication: {client_auth!r}")
    return data


def exchange_code(
    metadata: ProviderMetadata,
    client_id: str,
    code: str,
    redirect_uri: str,
    client_auth: ClientAuth,
    timeout: float = 30.0,
) -> TokenResponse:
    """Exchange the authorization code for tokens.

    Args:
        metadata: Provider metadata supplying ``token_endpoint``.
        client_id: The client that started the authorization request.
        code: The code captured by the callback receiver.
        redirect_uri: The redirect URI used in the authorization request.
        client_auth: Secret or PKCE verifier for this attempt.
        timeout: HTTP timeout in seconds.

    Returns:
        The parsed :class:`~loginkit.models.TokenResponse`.

    Raises:
        TokenExchangeError: On a non-2xx status (carrying the provider's
            body verbatim), a transport failure, or a response without
            ``access_token``.
    """
    data = build_token_request(client_id, code, redirect_uri, client_auth)
    logger.debug("Exchanging authorization code at %s", metadata.token_endpoint)

    try:
        response = httpx.post(
            metadata.token_endpoint,
            data=data,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        payload: Any = response.json()
    except httpx.HTTPStatusError as exc:
        raise TokenExchangeError(f"Token exchange failed: {exc.response.text}") from exc
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token exchange failed: {exc}") from exc
    except ValueError as exc:
        raise TokenExchangeError(f"Token endpoint returned invalid JSON: {exc}") from exc

    if not isinstance(payload, dict) or "access_token" not in payload:
        raise TokenExchangeError("Token response missing 'access_token' field")

    try:
        return TokenResponse.model_validate(payload)
    except ValidationError as exc:
        raise TokenExchangeError(f"Invalid token response: {exc}") from exc
