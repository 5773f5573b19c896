"""OAuth 2.0 Authorization Code flow engine.

Modules, leaf-first:

- :mod:`~loginkit.oauth.discovery` -- provider metadata with cache and fallback.
- :mod:`~loginkit.oauth.registration` -- dynamic client registration.
- :mod:`~loginkit.oauth.provisioner` -- credential resolution chain.
- :mod:`~loginkit.oauth.pkce` -- PKCE verifier / challenge.
- :mod:`~loginkit.oauth.authorize` -- ``state`` and authorization URL.
- :mod:`~loginkit.oauth.callback` -- one-shot local redirect listener.
- :mod:`~loginkit.oauth.exchange` -- code for token exchange.
- :mod:`~loginkit.oauth.flow` -- orchestration of a full login.
- :mod:`~loginkit.oauth.userinfo` -- userinfo endpoint access.
"""

from loginkit.oauth.authorize import build_authorization_url, generate_state
from loginkit.oauth.callback import CallbackReceiver, CallbackState
from loginkit.oauth.discovery import MetadataResolver, normalize_domain
from loginkit.oauth.exchange import build_token_request, exchange_code
from loginkit.oauth.flow import AuthorizationCodeFlow, select_client_auth
from loginkit.oauth.pkce import derive_challenge, generate_pkce_pair
from loginkit.oauth.provisioner import (
    ClientProvisioner,
    CredentialStrategy,
    DynamicRegistration,
    EnvironmentCredentials,
    ManualEntry,
    SavedRegistration,
    default_provisioner,
)
from loginkit.oauth.registration import register_client
from loginkit.oauth.userinfo import fetch_user_info

__all__ = [
    "AuthorizationCodeFlow",
    "CallbackReceiver",
    "CallbackState",
    "ClientProvisioner",
    "CredentialStrategy",
    "DynamicRegistration",
    "EnvironmentCredentials",
    "ManualEntry",
    "MetadataResolver",
    "SavedRegistration",
    "build_authorization_url",
    "build_token_request",
    "default_provisioner",
    "derive_challenge",
    "exchange_code",
    "fetch_user_info",
    "generate_pkce_pair",
    "generate_state",
    "normalize_domain",
    "register_client",
    "select_client_auth",
]
