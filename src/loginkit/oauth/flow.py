"""OAuth2 Authorization Code flow orchestration.

:class:`AuthorizationCodeFlow` ties the pieces together for one login:

1. Resolve provider metadata for the domain.
2. Issue a fresh ``state`` and pick the client authentication mode -- the
   client secret for confidential clients, otherwise a fresh PKCE pair.
3. Bind the local callback listener, then open the authorization URL in
   the user's browser.
4. Block until the redirect arrives or the deadline passes.
5. Exchange the code for tokens.

Nothing here is retried; each failure surfaces as a
:class:`~loginkit.exceptions.LoginkitError` subclass.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from typing import Callable, Optional

from loginkit.auth.token_store import TokenStore
from loginkit.models import (
    DEFAULT_SCOPE,
    ClientAuth,
    ClientCredentials,
    ConfidentialClient,
    PublicClient,
    TokenRecord,
    TokenResponse,
)
from loginkit.oauth.authorize import build_authorization_url, generate_state
from loginkit.oauth.callback import DEFAULT_CALLBACK_TIMEOUT, CallbackReceiver
from loginkit.oauth.discovery import MetadataResolver, normalize_domain
from loginkit.oauth.exchange import exchange_code
from loginkit.oauth.pkce import generate_pkce_pair

logger = logging.getLogger(__name__)


def select_client_auth(credentials: ClientCredentials) -> ClientAuth:
    """Choose secret or PKCE for this attempt. Never both."""
    secret = credentials.client_secret
    if secret and not credentials.use_pkce:
        return ConfidentialClient(secret=secret)
    return PublicClient(pkce=generate_pkce_pair())


def _open_in_background(open_browser: Callable[[str], object], url: str) -> None:
    thread = threading.Thread(target=open_browser, args=(url,), daemon=True)
    thread.start()


class AuthorizationCodeFlow:
    """Run the interactive Authorization Code flow against one provider.

    Args:
        resolver: Provider metadata resolver.
        redirect_uri: Local redirect URI registered for the client.
        timeout: Seconds to wait for the browser callback.
        open_browser: Callable that opens a URL. Defaults to
            :func:`webbrowser.open`.
        on_authorization_url: Optional hook receiving the URL before the
            browser is opened, e.g. to print it for headless sessions.
        scope: Space-separated scopes to request.
    """

    def __init__(
        self,
        resolver: MetadataResolver,
        redirect_uri: str,
        timeout: float = DEFAULT_CALLBACK_TIMEOUT,
        open_browser: Callable[[str], object] = webbrowser.open,
        on_authorization_url: Optional[Callable[[str], None]] = None,
        scope: str = DEFAULT_SCOPE,
    ) -> None:
        self._resolver = resolver
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._open_browser = open_browser
        self._on_authorization_url = on_authorization_url
        self._scope = scope

    def run(self, domain: str, credentials: ClientCredentials) -> TokenResponse:
        """Perform one complete login attempt and return the token response.

        Raises:
            AuthorizationDeniedError: The user or provider denied access.
            StateMismatchError: The callback failed state validation.
            CallbackTimeoutError: No callback arrived in time.
            TokenExchangeError: The token endpoint rejected the code.
        """
        domain = normalize_domain(domain)
        metadata = self._resolver.resolve(domain)

        state = generate_state()
        client_auth = select_client_auth(credentials)
        pkce = client_auth.pkce if isinstance(client_auth, PublicClient) else None
        logger.debug(
            "Starting %s flow for %s",
            "PKCE" if pkce is not None else "client secret",
            domain,
        )

        auth_url = build_authorization_url(
            credentials,
            metadata,
            state,
            self._redirect_uri,
            pkce=pkce,
            scope=self._scope,
        )

        with CallbackReceiver(self._redirect_uri, state) as receiver:
            if self._on_authorization_url is not None:
                self._on_authorization_url(auth_url)
            _open_in_background(self._open_browser, auth_url)
            code = receiver.wait(timeout=self._timeout)

        return exchange_code(
            metadata,
            credentials.client_id,
            code,
            self._redirect_uri,
            client_auth,
        )

    def login(
        self,
        domain: str,
        credentials: ClientCredentials,
        token_store: TokenStore,
    ) -> tuple[TokenRecord, bool]:
        """Run the flow and persist the resulting token.

        Returns:
            ``(record, persisted)``. When saving fails the in-memory record
            is still returned with ``persisted=False``.
        """
        domain = normalize_domain(domain)
        token = self.run(domain, credentials)
        saved = token_store.save(domain, token)
        if saved is not None:
            return saved, True
        return TokenRecord.from_response(domain, token, stored_at=token_store.now()), False
