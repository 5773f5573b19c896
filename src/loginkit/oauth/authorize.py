"""Authorization request construction.

Builds the provider-bound authorization URL and the anti-forgery ``state``
value that binds it to the callback.
"""

from __future__ import annotations

import secrets
from typing import Optional
from urllib.parse import urlencode

from loginkit.models import DEFAULT_SCOPE, ClientCredentials, PKCEPair, ProviderMetadata


def generate_state() -> str:
    """Return an unpredictable, single-use ``state`` value (256 bits of randomness)."""
    return secrets.token_urlsafe(32)


def build_authorization_url(
    credentials: ClientCredentials,
    metadata: ProviderMetadata,
    state: str,
    redirect_uri: str,
    pkce: Optional[PKCEPair] = None,
    scope: str = DEFAULT_SCOPE,
) -> str:
    """Assemble the authorization endpoint URL for one login attempt.

    Args:
        credentials: The client performing the login.
        metadata: Provider metadata supplying ``authorization_endpoint``.
        state: Value returned by :func:`generate_state` for this attempt.
        redirect_uri: Exact redirect URI registered with the provider.
        pkce: PKCE pair when running as a public client. When ``None`` no
            challenge parameters are sent.
        scope: Space-separated scopes to request.

    Returns:
        The full URL to open in the user's browser.
    """
    params: dict[str, str] = {
        "response_type": "code",
        "client_id": credentials.client_id,
        "redirect_uri": redirect_uri,
        "state": state,
        "scope": scope,
    }
    if pkce is not None:
        params["code_challenge"] = pkce.challenge
        params["code_challenge_method"] = pkce.method

    endpoint = metadata.authorization_endpoint
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(params)}"
