"""Persistent store for the single active login session.

The token lives in ``~/.local/share/loginkit/token.json`` (XDG) or the
platform-equivalent directory, written atomically with ``0o600``
permissions. Exactly one :class:`~loginkit.models.TokenRecord` is kept per
machine; a new login overwrites the previous one.

Expiry is enforced on read: :meth:`TokenStore.load` deletes an expired
record and reports ``None``, so callers never see a stale token. Local
state problems are never fatal -- a failed save is logged (the caller still
holds the token in memory) and an unreadable file reads as "no token".

See Also:
    :class:`~loginkit.auth.client_store.ClientStore` -- per-domain client
    registrations kept next to the token.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from loginkit.config import atomic_write, get_data_dir
from loginkit.exceptions import NotAuthenticatedError
from loginkit.models import TokenRecord, TokenResponse

logger = logging.getLogger(__name__)

TOKEN_FILENAME = "token.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenStore:
    """Read/write the active :class:`~loginkit.models.TokenRecord`.

    Args:
        path: Token file location. Defaults to ``<data_dir>/token.json``.
        clock: Callable returning the current aware UTC datetime.

    Example::

        store = TokenStore()
        store.save("acme.example", TokenResponse(access_token="tok", expires_in=3600))
        record = store.load()
        assert record is not None and record.access_token == "tok"
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._path = path
        self._clock = clock

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    @property
    def path(self) -> Path:
        """The filesystem path of the token file."""
        if self._path is None:
            self._path = get_data_dir() / TOKEN_FILENAME
        return self._path

    def save(self, domain: str, token: TokenResponse) -> Optional[TokenRecord]:
        """Persist *token* for *domain*, stamped with the current time.

        Returns:
            The stored :class:`~loginkit.models.TokenRecord`, or ``None``
            if it could not be written. Write failures are logged, not
            raised.
        """
        record = TokenRecord.from_response(domain, token, stored_at=self._clock())
        try:
            text = json.dumps(record.model_dump(mode="json"), indent=2) + "\n"
            atomic_write(self.path, text, mode=0o600)
        except OSError as exc:
            logger.warning("Failed to save token to %s: %s", self._path, exc)
            return None
        return record

    def load(self) -> Optional[TokenRecord]:
        """Return the stored token if it is still valid.

        An expired record is removed from disk before ``None`` is returned.
        Missing, unreadable, or corrupt files also yield ``None``.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
            record = TokenRecord.model_validate(json.loads(text))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Ignoring unreadable token file %s: %s", self._path, exc)
            return None

        if not record.is_valid(self._clock()):
            logger.debug("Stored token for %s expired at %s", record.domain, record.expires_at)
            self.clear()
            return None
        return record

    def clear(self) -> None:
        """Delete the token file. Missing files and OS errors are ignored."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove token file %s: %s", self._path, exc)

    def bearer_token(self) -> str:
        """Return the valid access token for downstream API calls.

        Raises:
            NotAuthenticatedError: If no valid token is stored.
        """
        record = self.load()
        if record is None:
            raise NotAuthenticatedError(
                'Not authenticated. Please run "loginkit login" first.'
            )
        return record.access_token

    def auth_headers(self) -> dict[str, str]:
        """Return ``{"Authorization": "Bearer <token>"}`` for the stored token."""
        return {"Authorization": f"Bearer {self.bearer_token()}"}
