"""Canonical data models shared across all loginkit modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Provider wire models** -- parsed from (or sent to) the identity provider:
    :class:`ProviderMetadata`, :class:`ClientRegistrationRequest`,
    :class:`ClientRegistration`, :class:`TokenResponse`, and
    :class:`UserInfo`.

**Login-attempt models** -- live for the duration of one login:
    :class:`ClientCredentials`, :class:`PKCEPair`, and the client
    authentication variant :class:`ConfidentialClient` |
    :class:`PublicClient`.

**Persisted / configuration models** -- serialised as JSON on disk:
    :class:`TokenRecord`, :class:`GlobalConfig`, and the resolved
    :class:`LoginSettings`.

All models use Pydantic v2. Provider wire models use ``extra="allow"`` so
that provider-specific keys survive a load/save round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SCOPE = "openid profile email"
"""Scope requested at registration and authorization time."""

DEFAULT_REDIRECT_URI = "http://localhost:3000/callback"
DEFAULT_CLIENT_NAME = "loginkit"
DEFAULT_CALLBACK_TIMEOUT = 300
DEFAULT_DISCOVERY_TTL = 24 * 60 * 60


# --- Provider metadata ---


class ProviderMetadata(BaseModel):
    """OpenID provider configuration for a single domain.

    Either parsed from ``/.well-known/openid-configuration`` or synthesised
    by :meth:`fallback`. Both paths yield the same complete shape, so
    downstream code never needs to know which one produced the value.

    Instances are immutable; a refresh replaces the whole value.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    jwks_uri: Optional[str] = None
    registration_endpoint: Optional[str] = None
    scopes_supported: list[str] = Field(default_factory=list)
    response_types_supported: list[str] = Field(default_factory=list)
    grant_types_supported: list[str] = Field(default_factory=list)
    code_challenge_methods_supported: list[str] = Field(default_factory=list)
    token_endpoint_auth_methods_supported: list[str] = Field(default_factory=list)

    @field_validator(
        "issuer", "authorization_endpoint", "token_endpoint", "userinfo_endpoint"
    )
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @classmethod
    def fallback(cls, domain: str) -> ProviderMetadata:
        """Build conventional metadata for *domain* from well-known path suffixes.

        Args:
            domain: Bare provider host, e.g. ``"acme.example"``.

        Returns:
            A complete :class:`ProviderMetadata` pointing at
            ``https://{domain}/oauth/...``.
        """
        base = f"https://{domain}"
        return cls(
            issuer=base,
            authorization_endpoint=f"{base}/oauth/authorize",
            token_endpoint=f"{base}/oauth/token",
            userinfo_endpoint=f"{base}/oauth/userinfo",
            jwks_uri=f"{base}/.well-known/jwks.json",
            registration_endpoint=f"{base}/oauth/register",
            scopes_supported=DEFAULT_SCOPE.split(),
            response_types_supported=["code"],
            grant_types_supported=["authorization_code"],
            code_challenge_methods_supported=["S256"],
            token_endpoint_auth_methods_supported=["client_secret_post", "none"],
        )


# --- Client registration ---


class ClientRegistrationRequest(BaseModel):
    """Body POSTed to the provider's ``registration_endpoint``."""

    client_name: str
    redirect_uris: list[str]
    grant_types: list[str] = Field(default_factory=lambda: ["authorization_code"])
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    token_endpoint_auth_method: str = "none"
    application_type: str = "native"
    scope: str = DEFAULT_SCOPE


class ClientRegistration(BaseModel):
    """A provider's dynamic registration response, persisted per domain."""

    model_config = ConfigDict(extra="allow")

    client_id: str
    client_secret: Optional[str] = None
    client_id_issued_at: Optional[int] = None
    redirect_uris: list[str] = Field(default_factory=list)
    grant_types: list[str] = Field(default_factory=list)
    response_types: list[str] = Field(default_factory=list)
    token_endpoint_auth_method: Optional[str] = None
    application_type: Optional[str] = None


class ClientCredentials(BaseModel):
    """A usable OAuth client for one login attempt.

    Registration responses, operator-supplied environment values, and
    manually entered client IDs are all normalised into this shape.

    Attributes:
        client_id: The OAuth client identifier.
        client_secret: Present for confidential clients only.
        use_pkce: Force PKCE even when a secret is available. The secret
            is then not sent.
        source: Where the credentials came from (``environment``,
            ``saved``, ``registered``, ``manual``).
    """

    client_id: str
    client_secret: Optional[str] = None
    use_pkce: bool = False
    source: str = "manual"

    @property
    def is_confidential(self) -> bool:
        return bool(self.client_secret) and not self.use_pkce

    @classmethod
    def from_registration(
        cls, registration: ClientRegistration, source: str
    ) -> ClientCredentials:
        return cls(
            client_id=registration.client_id,
            client_secret=registration.client_secret or None,
            source=source,
        )


# --- PKCE and client authentication ---


class PKCEPair(BaseModel):
    """A PKCE ``code_verifier`` and its S256 ``code_challenge``."""

    model_config = ConfigDict(frozen=True)

    verifier: str
    challenge: str
    method: str = "S256"


@dataclass(frozen=True)
class ConfidentialClient:
    """Client authenticates at the token endpoint with its secret."""

    secret: str


@dataclass(frozen=True)
class PublicClient:
    """Client proves possession of the authorization request via PKCE."""

    pkce: PKCEPair

    @property
    def verifier(self) -> str:
        return self.pkce.verifier


ClientAuth = Union[ConfidentialClient, PublicClient]


# --- Tokens ---


class TokenResponse(BaseModel):
    """JSON body returned by the provider's token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    id_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int = Field(
        default=3600, description="Lifetime in seconds; 3600 when the provider omits it"
    )


class TokenRecord(BaseModel):
    """The single persisted login session.

    Valid iff ``now < stored_at + expires_in``. Expired records are purged
    by :class:`~loginkit.auth.token_store.TokenStore`, never extended.
    """

    access_token: str
    id_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int
    domain: str
    stored_at: datetime

    @field_validator("stored_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def expires_at(self) -> datetime:
        return self.stored_at + timedelta(seconds=self.expires_in)

    def is_valid(self, now: datetime) -> bool:
        """Return ``True`` while *now* is strictly before :attr:`expires_at`."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now < self.expires_at

    @classmethod
    def from_response(
        cls, domain: str, token: TokenResponse, stored_at: datetime
    ) -> TokenRecord:
        return cls(
            access_token=token.access_token,
            id_token=token.id_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            domain=domain,
            stored_at=stored_at,
        )


class UserInfo(BaseModel):
    """Subject and profile claims returned by the userinfo endpoint."""

    model_config = ConfigDict(extra="allow")

    sub: str
    email: Optional[str] = None
    email_verified: Optional[bool] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None
    updated_at: Optional[int] = None


# --- Configuration ---


class GlobalConfig(BaseModel):
    """User defaults stored in ``config.json`` under the config directory.

    Every field is optional in the file; environment variables and CLI
    flags take precedence (see :func:`loginkit.config.resolve_settings`).
    """

    domain: Optional[str] = Field(default=None, description="Default provider domain")
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI, description="Local callback URI registered with the provider"
    )
    client_name: str = Field(
        default=DEFAULT_CLIENT_NAME, description="client_name sent during dynamic registration"
    )
    callback_timeout: int = Field(
        default=DEFAULT_CALLBACK_TIMEOUT, description="Seconds to wait for the browser callback"
    )
    discovery_cache_enabled: bool = Field(
        default=True, description="Persist provider metadata between invocations"
    )
    discovery_cache_ttl: int = Field(
        default=DEFAULT_DISCOVERY_TTL, description="Provider metadata TTL in seconds"
    )


class LoginSettings(BaseModel):
    """Effective settings for one invocation after precedence resolution."""

    domain: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    use_pkce: bool = False
    redirect_uri: str = DEFAULT_REDIRECT_URI
    client_name: str = DEFAULT_CLIENT_NAME
    callback_timeout: int = DEFAULT_CALLBACK_TIMEOUT
    discovery_cache_enabled: bool = True
    discovery_cache_ttl: int = DEFAULT_DISCOVERY_TTL
