"""Userinfo endpoint access for the ``whoami`` command."""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from loginkit.exceptions import AuthError, ConnectionError_
from loginkit.models import UserInfo
from loginkit.oauth.discovery import MetadataResolver


def fetch_user_info(
    domain: str,
    access_token: str,
    resolver: Optional[MetadataResolver] = None,
    timeout: float = 30.0,
) -> UserInfo:
    """Return the subject and profile claims for *access_token*.

    Raises:
        AuthError: If the provider rejects the token or returns a body
            without ``sub``.
        ConnectionError_: If the userinfo endpoint cannot be reached.
    """
    resolver = resolver or MetadataResolver()
    metadata = resolver.resolve(domain)

    try:
        response = httpx.get(
            metadata.userinfo_endpoint,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            timeout=timeout,
        )
        response.raise_for_status()
        return UserInfo.model_validate(response.json())
    except httpx.HTTPStatusError as exc:
        raise AuthError(f"Failed to fetch user info: {exc.response.text}") from exc
    except httpx.HTTPError as exc:
        raise ConnectionError_(f"Failed to fetch user info: {exc}") from exc
    except (ValidationError, ValueError) as exc:
        raise AuthError(f"Invalid user info response: {exc}") from exc
