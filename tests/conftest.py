"""Shared test fixtures for loginkit.

Provides reusable fixtures for isolated config environments, provider
metadata, output state, and running CLI commands. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import socket
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from loginkit.models import ProviderMetadata
from loginkit.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    state, forces the XDG layout on every platform, and clears all
    LOGINKIT_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("loginkit.config._is_xdg_platform", lambda: True)

    for var in [
        "LOGINKIT_DOMAIN",
        "LOGINKIT_CLIENT_ID",
        "LOGINKIT_CLIENT_SECRET",
        "LOGINKIT_REDIRECT_URI",
        "LOGINKIT_CLIENT_NAME",
        "LOGINKIT_USE_PKCE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def discovery_doc() -> dict[str, object]:
    """A complete OpenID discovery document for ``acme.example``."""
    return {
        "issuer": "https://acme.example",
        "authorization_endpoint": "https://acme.example/authorize",
        "token_endpoint": "https://acme.example/token",
        "userinfo_endpoint": "https://acme.example/userinfo",
        "jwks_uri": "https://acme.example/jwks",
        "registration_endpoint": "https://acme.example/register",
        "scopes_supported": ["openid", "profile", "email"],
        "code_challenge_methods_supported": ["S256"],
    }


@pytest.fixture
def metadata(discovery_doc: dict[str, object]) -> ProviderMetadata:
    return ProviderMetadata.model_validate(discovery_doc)


def _mock_response(
    payload: object = None,
    status_code: int = 200,
    text: str | None = None,
    json_error: Exception | None = None,
) -> MagicMock:
    """Create a mock httpx.Response for patched ``httpx.get``/``httpx.post``."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    response.text = text if text is not None else str(payload)

    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=response,
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def make_response():
    """Factory building mock httpx.Response objects, see :func:`_mock_response`."""
    return _mock_response


@pytest.fixture
def free_port() -> int:
    """Return a TCP port on 127.0.0.1 that is currently unbound."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
