"""Tests for dynamic client registration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from loginkit.auth.client_store import ClientStore
from loginkit.exceptions import RegistrationError, RegistrationUnsupportedError
from loginkit.models import ProviderMetadata
from loginkit.oauth.registration import build_registration_request, register_client

REDIRECT = "http://localhost:3000/callback"


@pytest.fixture()
def store(tmp_path: Path) -> ClientStore:
    return ClientStore(tmp_path / "clients.json")


@pytest.fixture()
def resolver(metadata: ProviderMetadata) -> MagicMock:
    mock = MagicMock()
    mock.resolve.return_value = metadata
    return mock


def test_registration_request_shape() -> None:
    body = build_registration_request("My CLI", REDIRECT).model_dump()
    assert body == {
        "client_name": "My CLI",
        "redirect_uris": [REDIRECT],
        "grant_types": ["authorization_code"],
        "response_types": ["code"],
        "token_endpoint_auth_method": "none",
        "application_type": "native",
        "scope": "openid profile email",
    }


def test_register_and_save(resolver, store, make_response) -> None:
    with patch("loginkit.oauth.registration.httpx.post") as mock_post:
        mock_post.return_value = make_response(
            {"client_id": "new-client", "client_id_issued_at": 1700000000, "vendor": "x"}
        )
        registration = register_client(
            "https://acme.example/", "My CLI", REDIRECT, resolver=resolver, store=store
        )

    assert registration.client_id == "new-client"
    assert registration.client_secret is None
    assert mock_post.call_args.args[0] == "https://acme.example/register"
    assert mock_post.call_args.kwargs["json"]["client_name"] == "My CLI"

    saved = store.load("acme.example")
    assert saved is not None
    assert saved.client_id == "new-client"
    assert saved.model_dump()["vendor"] == "x"


def test_unsupported_without_endpoint(store) -> None:
    metadata = ProviderMetadata(
        issuer="https://acme.example",
        authorization_endpoint="https://acme.example/authorize",
        token_endpoint="https://acme.example/token",
        userinfo_endpoint="https://acme.example/userinfo",
    )
    resolver = MagicMock()
    resolver.resolve.return_value = metadata
    with patch("loginkit.oauth.registration.httpx.post") as mock_post:
        with pytest.raises(RegistrationUnsupportedError, match="does not support"):
            register_client("acme.example", "cli", REDIRECT, resolver=resolver, store=store)
    mock_post.assert_not_called()


def test_provider_rejection_body_verbatim(resolver, store, make_response) -> None:
    body = '{"error":"invalid_redirect_uri"}'
    with patch("loginkit.oauth.registration.httpx.post") as mock_post:
        mock_post.return_value = make_response({}, status_code=400, text=body)
        with pytest.raises(RegistrationError) as exc_info:
            register_client("acme.example", "cli", REDIRECT, resolver=resolver, store=store)

    assert str(exc_info.value) == f"Client registration failed: {body}"
    assert store.load("acme.example") is None


def test_transport_failure(resolver, store) -> None:
    with patch("loginkit.oauth.registration.httpx.post") as mock_post:
        mock_post.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(RegistrationError):
            register_client("acme.example", "cli", REDIRECT, resolver=resolver, store=store)


def test_response_without_client_id(resolver, store, make_response) -> None:
    with patch("loginkit.oauth.registration.httpx.post") as mock_post:
        mock_post.return_value = make_response({"client_secret": "x"})
        with pytest.raises(RegistrationError, match="Invalid client registration"):
            register_client("acme.example", "cli", REDIRECT, resolver=resolver, store=store)
