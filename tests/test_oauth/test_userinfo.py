"""Tests for userinfo retrieval."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from loginkit.exceptions import AuthError, ConnectionError_
from loginkit.oauth.userinfo import fetch_user_info


@pytest.fixture()
def resolver(metadata) -> MagicMock:
    mock = MagicMock()
    mock.resolve.return_value = metadata
    return mock


def test_fetch_user_info(resolver, make_response) -> None:
    claims = {"sub": "user-1", "email": "a@acme.example", "name": "Ada", "org": "acme"}
    with patch("loginkit.oauth.userinfo.httpx.get") as mock_get:
        mock_get.return_value = make_response(claims)
        user = fetch_user_info("acme.example", "at-1", resolver=resolver)

    assert user.sub == "user-1"
    assert user.email == "a@acme.example"
    assert user.model_dump()["org"] == "acme"
    assert mock_get.call_args.args[0] == "https://acme.example/userinfo"
    assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer at-1"


def test_rejected_token(resolver, make_response) -> None:
    with patch("loginkit.oauth.userinfo.httpx.get") as mock_get:
        mock_get.return_value = make_response({}, status_code=401, text="invalid_token")
        with pytest.raises(AuthError, match="invalid_token"):
            fetch_user_info("acme.example", "at-1", resolver=resolver)


def test_unreachable(resolver) -> None:
    with patch("loginkit.oauth.userinfo.httpx.get") as mock_get:
        mock_get.side_effect = httpx.ConnectError("refused")
        with pytest.raises(ConnectionError_):
            fetch_user_info("acme.example", "at-1", resolver=resolver)


def test_missing_sub(resolver, make_response) -> None:
    with patch("loginkit.oauth.userinfo.httpx.get") as mock_get:
        mock_get.return_value = make_response({"email": "a@acme.example"})
        with pytest.raises(AuthError, match="Invalid user info"):
            fetch_user_info("acme.example", "at-1", resolver=resolver)
