"""Local persistence for login state.

- :class:`TokenStore` -- the single active token, with expiry enforced on read.
- :class:`ClientStore` -- dynamic client registrations keyed by provider domain.

Typical usage::

    from loginkit.auth import TokenStore

    headers = TokenStore().auth_headers()
    # {"Authorization": "Bearer ..."} ready for downstream requests.
"""

from loginkit.auth.client_store import ClientStore
from loginkit.auth.token_store import TokenStore

__all__ = ["ClientStore", "TokenStore"]
