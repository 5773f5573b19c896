"""Tests for saved client registrations."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from loginkit.auth.client_store import ClientStore
from loginkit.models import ClientRegistration


@pytest.fixture()
def store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ClientStore:
    # Point get_data_dir() to tmp_path so files land in a disposable location
    monkeypatch.setattr("loginkit.auth.client_store.get_data_dir", lambda: tmp_path)
    return ClientStore()


class TestClientStore:
    def test_empty(self, store: ClientStore) -> None:
        assert store.domains() == []
        assert store.load("acme.example") is None

    def test_save_and_load(self, store: ClientStore, tmp_path: Path) -> None:
        assert store.save("acme.example", ClientRegistration(client_id="cid", client_secret="s"))
        loaded = store.load("acme.example")
        assert loaded.client_id == "cid"
        assert loaded.client_secret == "s"
        assert store.path == tmp_path / "clients.json"

    def test_none_fields_not_written(self, store: ClientStore) -> None:
        store.save("acme.example", ClientRegistration(client_id="cid"))
        data = json.loads(store.path.read_text())
        assert "client_secret" not in data["acme.example"]

    def test_domains_are_isolated(self, store: ClientStore) -> None:
        store.save("b.example", ClientRegistration(client_id="b"))
        store.save("a.example", ClientRegistration(client_id="a"))
        assert store.domains() == ["a.example", "b.example"]
        assert store.load("a.example").client_id == "a"

    def test_delete(self, store: ClientStore) -> None:
        store.save("acme.example", ClientRegistration(client_id="cid"))
        assert store.delete("acme.example")
        assert not store.delete("acme.example")
        assert store.load("acme.example") is None

    def test_clear_all(self, store: ClientStore) -> None:
        store.save("a.example", ClientRegistration(client_id="a"))
        store.save("b.example", ClientRegistration(client_id="b"))
        assert store.clear_all() == 2
        assert store.domains() == []

    def test_corrupt_file_reads_empty(self, store: ClientStore) -> None:
        store.path.write_text("not json")
        assert store.domains() == []
        assert store.save("acme.example", ClientRegistration(client_id="cid"))
        assert store.load("acme.example").client_id == "cid"

    def test_invalid_entry_ignored(self, store: ClientStore) -> None:
        store.path.write_text(json.dumps({"acme.example": {"client_secret": "x"}}))
        assert store.load("acme.example") is None

    def test_save_failure_returns_false(self, store: ClientStore) -> None:
        with patch("loginkit.auth.client_store.atomic_write", side_effect=OSError("ro")):
            assert not store.save("acme.example", ClientRegistration(client_id="cid"))
