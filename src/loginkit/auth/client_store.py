"""Persistent store of dynamic client registrations, one per provider domain.

Registrations live together in ``~/.local/share/loginkit/clients.json`` as a
JSON object keyed by domain. The file is read, modified, and rewritten as a
whole; concurrent logins against the same state are not supported and the
last writer wins.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from loginkit.config import atomic_write, get_data_dir
from loginkit.models import ClientRegistration

logger = logging.getLogger(__name__)

CLIENTS_FILENAME = "clients.json"


class ClientStore:
    """Read/write saved client registrations.

    Args:
        path: Registrations file. Defaults to ``<data_dir>/clients.json``.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        if self._path is None:
            self._path = get_data_dir() / CLIENTS_FILENAME
        return self._path

    def _read_all(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.debug("Ignoring unreadable client registrations %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, Any]) -> None:
        atomic_write(self.path, json.dumps(data, indent=2) + "\n", mode=0o600)

    def domains(self) -> list[str]:
        """Return every domain with a saved registration, sorted."""
        return sorted(self._read_all())

    def load(self, domain: str) -> Optional[ClientRegistration]:
        """Return the saved registration for *domain*, or ``None``."""
        entry = self._read_all().get(domain)
        if entry is None:
            return None
        try:
            return ClientRegistration.model_validate(entry)
        except ValidationError:
            logger.debug("Ignoring invalid saved registration for %s", domain)
            return None

    def save(self, domain: str, registration: ClientRegistration) -> bool:
        """Save *registration* under *domain*, replacing any previous one.

        Returns:
            ``True`` on success. Failures are logged as warnings.
        """
        data = self._read_all()
        data[domain] = registration.model_dump(mode="json", exclude_none=True)
        try:
            self._write_all(data)
        except OSError as exc:
            logger.warning("Could not save client data locally to %s: %s", self._path, exc)
            return False
        return True

    def delete(self, domain: str) -> bool:
        """Remove the registration for *domain*.

        Returns:
            ``True`` if an entry was removed.
        """
        data = self._read_all()
        if domain not in data:
            return False
        del data[domain]
        try:
            self._write_all(data)
        except OSError as exc:
            logger.warning("Could not update %s: %s", self._path, exc)
            return False
        return True

    def clear_all(self) -> int:
        """Remove every saved registration and return how many were dropped."""
        count = len(self._read_all())
        try:
            self._write_all({})
        except OSError as exc:
            logger.warning("Could not clear %s: %s", self._path, exc)
            return 0
        return count
