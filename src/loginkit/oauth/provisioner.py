"""Client credential resolution as an ordered chain of strategies.

Precedence (first match wins)::

    EnvironmentCredentials  operator-supplied client ID / secret
    SavedRegistration       registration saved for this exact domain
    DynamicRegistration     register a new client with the provider
    ManualEntry             ask the user (CLI only, when interactive)

Each strategy returns :class:`~loginkit.models.ClientCredentials` or
``None`` when it does not apply. A :class:`~loginkit.exceptions.RegistrationError`
from one strategy does not stop the chain; it is re-raised only if no
later strategy produces credentials.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from loginkit.auth.client_store import ClientStore
from loginkit.exceptions import AuthError, RegistrationError
from loginkit.models import ClientCredentials
from loginkit.oauth.discovery import MetadataResolver, normalize_domain
from loginkit.oauth.registration import register_client

logger = logging.getLogger(__name__)


class CredentialStrategy(ABC):
    """One step of the credential resolution chain."""

    name: str = "strategy"

    @abstractmethod
    def resolve(self, domain: str, preferred_name: str) -> Optional[ClientCredentials]:
        """Return credentials for *domain*, or ``None`` if not applicable."""
        ...


class EnvironmentCredentials(CredentialStrategy):
    """Caller-injected client ID and optional secret (flags or environment)."""

    name = "environment"

    def __init__(self, client_id: Optional[str], client_secret: Optional[str] = None) -> None:
        self._client_id = client_id
        self._client_secret = client_secret

    def resolve(self, domain: str, preferred_name: str) -> Optional[ClientCredentials]:
        if not self._client_id:
            return None
        return ClientCredentials(
            client_id=self._client_id,
            client_secret=self._client_secret or None,
            source=self.name,
        )


class SavedRegistration(CredentialStrategy):
    """A registration previously saved for this exact domain."""

    name = "saved"

    def __init__(self, store: ClientStore) -> None:
        self._store = store

    def resolve(self, domain: str, preferred_name: str) -> Optional[ClientCredentials]:
        registration = self._store.load(domain)
        if registration is None:
            return None
        return ClientCredentials.from_registration(registration, source=self.name)


class DynamicRegistration(CredentialStrategy):
    """Register a new public client with the provider."""

    name = "registered"

    def __init__(
        self,
        resolver: MetadataResolver,
        store: ClientStore,
        redirect_uri: str,
    ) -> None:
        self._resolver = resolver
        self._store = store
        self._redirect_uri = redirect_uri

    def resolve(self, domain: str, preferred_name: str) -> Optional[ClientCredentials]:
        registration = register_client(
            domain,
            preferred_name,
            self._redirect_uri,
            resolver=self._resolver,
            store=self._store,
        )
        return ClientCredentials.from_registration(registration, source=self.name)


class ManualEntry(CredentialStrategy):
    """Ask for a client ID through a caller-supplied prompt.

    Args:
        prompt: Callable receiving the domain and returning a client ID,
            or ``None``/empty when the user declines.
    """

    name = "manual"

    def __init__(self, prompt: Callable[[str], Optional[str]]) -> None:
        self._prompt = prompt

    def resolve(self, domain: str, preferred_name: str) -> Optional[ClientCredentials]:
        client_id = self._prompt(domain)
        if not client_id:
            return None
        return ClientCredentials(client_id=client_id.strip(), source=self.name)


class ClientProvisioner:
    """Evaluate credential strategies in order and return the first match.

    Args:
        strategies: Strategies in precedence order.
    """

    def __init__(self, strategies: Sequence[CredentialStrategy]) -> None:
        self._strategies = list(strategies)

    @property
    def strategies(self) -> list[CredentialStrategy]:
        return list(self._strategies)

    def provision(self, domain: str, preferred_name: str) -> ClientCredentials:
        """Return client credentials for *domain*.

        Raises:
            RegistrationError: If registration failed and no later strategy
                produced credentials.
            AuthError: If no strategy applied at all.
        """
        domain = normalize_domain(domain)
        registration_failure: Optional[RegistrationError] = None

        for strategy in self._strategies:
            try:
                credentials = strategy.resolve(domain, preferred_name)
            except RegistrationError as exc:
                logger.warning("Dynamic registration failed for %s: %s", domain, exc)
                registration_failure = exc
                continue
            if credentials is not None:
                logger.debug("Using %s client credentials for %s", strategy.name, domain)
                return credentials

        if registration_failure is not None:
            raise registration_failure
        raise AuthError(
            f"No OAuth client credentials available for {domain}. "
            "Set LOGINKIT_CLIENT_ID or run 'loginkit register'."
        )


def default_provisioner(
    resolver: MetadataResolver,
    store: ClientStore,
    redirect_uri: str,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    prompt: Optional[Callable[[str], Optional[str]]] = None,
) -> ClientProvisioner:
    """Build the standard chain: environment, saved, dynamic, then manual if *prompt* is given."""
    strategies: list[CredentialStrategy] = [
        EnvironmentCredentials(client_id, client_secret),
        SavedRegistration(store),
        DynamicRegistration(resolver, store, redirect_uri),
    ]
    if prompt is not None:
        strategies.append(ManualEntry(prompt))
    return ClientProvisioner(strategies)
