"""Tests for the one-shot local callback receiver."""

from __future__ import annotations

import socket
import threading
import time
from http.client import HTTPConnection

import pytest

from loginkit.exceptions import (
    AuthError,
    AuthorizationDeniedError,
    CallbackTimeoutError,
    InvalidUsageError,
    StateMismatchError,
)
from loginkit.oauth.callback import CallbackReceiver, CallbackState

STATE = "expected-state-value"


def _simulate_callback(port: int, path: str) -> tuple[int, str, dict[str, str]]:
    """Send a GET to the local callback server and return status, body, headers."""
    conn = HTTPConnection("127.0.0.1", port, timeout=5)
    conn.request("GET", path)
    response = conn.getresponse()
    body = response.read().decode("utf-8")
    headers = {k.lower(): v for k, v in response.getheaders()}
    conn.close()
    return response.status, body, headers


@pytest.fixture()
def receiver(free_port: int):
    rcv = CallbackReceiver(f"http://127.0.0.1:{free_port}/callback", STATE)
    rcv.start()
    yield rcv
    rcv.stop()


class TestConstruction:
    def test_default_port(self) -> None:
        assert CallbackReceiver("http://localhost/callback", STATE).address == ("localhost", 3000)

    @pytest.mark.parametrize(
        "uri", ["https://localhost:3000/callback", "localhost:3000/callback", "http:///callback"]
    )
    def test_rejects_non_local_http(self, uri: str) -> None:
        with pytest.raises(InvalidUsageError):
            CallbackReceiver(uri, STATE)

    def test_initially_listening_state(self) -> None:
        rcv = CallbackReceiver("http://127.0.0.1:3000/callback", STATE)
        assert rcv.state is CallbackState.LISTENING
        assert not rcv.is_listening


class TestServedCallback:
    def test_success(self, receiver: CallbackReceiver, free_port: int) -> None:
        status, body, headers = _simulate_callback(
            free_port, f"/callback?code=abc123&state={STATE}"
        )
        assert status == 200
        assert "Authorization successful" in body
        assert headers["cache-control"] == "no-store"
        assert headers["content-type"].startswith("text/html")

        assert receiver.wait(timeout=5) == "abc123"
        assert receiver.state is CallbackState.SUCCEEDED
        assert not receiver.is_listening

    def test_state_off_by_one_character(self, receiver: CallbackReceiver, free_port: int) -> None:
        wrong = STATE[:-1] + ("X" if STATE[-1] != "X" else "Y")
        status, body, _ = _simulate_callback(free_port, f"/callback?code=abc&state={wrong}")
        assert status == 400
        assert "Authorization failed" in body

        with pytest.raises(StateMismatchError) as exc_info:
            receiver.wait(timeout=5)
        assert STATE not in str(exc_info.value)
        assert wrong not in str(exc_info.value)
        assert receiver.state is CallbackState.REJECTED

    def test_missing_state(self, receiver: CallbackReceiver, free_port: int) -> None:
        _simulate_callback(free_port, "/callback?code=abc")
        with pytest.raises(StateMismatchError):
            receiver.wait(timeout=5)

    def test_provider_error_regardless_of_state(
        self, receiver: CallbackReceiver, free_port: int
    ) -> None:
        status, _, _ = _simulate_callback(
            free_port,
            "/callback?error=access_denied&error_description=User%20said%20no&state=bogus",
        )
        assert status == 400
        with pytest.raises(AuthorizationDeniedError) as exc_info:
            receiver.wait(timeout=5)
        assert exc_info.value.detail == "access_denied - User said no"
        assert "access_denied" in str(exc_info.value)

    def test_missing_code(self, receiver: CallbackReceiver, free_port: int) -> None:
        _simulate_callback(free_port, f"/callback?state={STATE}")
        with pytest.raises(AuthError, match="No authorization code"):
            receiver.wait(timeout=5)
        assert receiver.state is CallbackState.REJECTED

    def test_other_path_is_not_found(self, receiver: CallbackReceiver, free_port: int) -> None:
        status, body, _ = _simulate_callback(free_port, "/favicon.ico")
        assert status == 404
        assert body == "Not found"
        assert receiver.state is CallbackState.LISTENING

        _simulate_callback(free_port, f"/callback?code=later&state={STATE}")
        assert receiver.wait(timeout=5) == "later"

    def test_first_decisive_request_wins(
        self, receiver: CallbackReceiver, free_port: int
    ) -> None:
        _simulate_callback(free_port, f"/callback?code=first&state={STATE}")
        status, _, _ = _simulate_callback(free_port, f"/callback?code=second&state={STATE}")
        assert status == 404
        assert receiver.wait(timeout=5) == "first"

    def test_timeout_releases_port(self, free_port: int) -> None:
        uri = f"http://127.0.0.1:{free_port}/callback"
        rcv = CallbackReceiver(uri, STATE)
        rcv.start()
        with pytest.raises(CallbackTimeoutError, match="timeout"):
            rcv.wait(timeout=0.2)
        assert rcv.state is CallbackState.TIMED_OUT
        assert not rcv.is_listening

        with CallbackReceiver(uri, "another-state") as again:
            assert again.is_listening

    def test_single_use(self, receiver: CallbackReceiver) -> None:
        with pytest.raises(RuntimeError, match="single-use"):
            receiver.start()

    def test_wait_before_start(self) -> None:
        rcv = CallbackReceiver("http://127.0.0.1:3000/callback", STATE)
        with pytest.raises(RuntimeError):
            rcv.wait(timeout=0.1)

    def test_stop_is_idempotent(self, receiver: CallbackReceiver) -> None:
        receiver.stop()
        receiver.stop()
        assert not receiver.is_listening

    def test_port_in_use(self, free_port: int) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)
            rcv = CallbackReceiver(f"http://127.0.0.1:{free_port}/callback", STATE)
            with pytest.raises(AuthError, match="Cannot listen"):
                rcv.start()

    def test_idle_connection_does_not_block_redirect(
        self, receiver: CallbackReceiver, free_port: int
    ) -> None:
        with socket.create_connection(("127.0.0.1", free_port), timeout=5):
            status, _, _ = _simulate_callback(free_port, f"/callback?code=abc&state={STATE}")
            assert status == 200
            started = time.monotonic()
            assert receiver.wait(timeout=5) == "abc"
            assert time.monotonic() - started < 2
        assert not receiver.is_listening

    def test_deadline_with_idle_connection(self, free_port: int) -> None:
        rcv = CallbackReceiver(f"http://127.0.0.1:{free_port}/callback", STATE)
        rcv.start()
        outcome: dict[str, Exception] = {}

        def _wait() -> None:
            try:
                rcv.wait(timeout=0.5)
            except CallbackTimeoutError as exc:
                outcome["error"] = exc

        with socket.create_connection(("127.0.0.1", free_port), timeout=5):
            thread = threading.Thread(target=_wait, daemon=True)
            started = time.monotonic()
            thread.start()
            thread.join(timeout=3)
            elapsed = time.monotonic() - started
            assert not thread.is_alive()

        assert elapsed < 3
        assert isinstance(outcome.get("error"), CallbackTimeoutError)
        assert rcv.state is CallbackState.TIMED_OUT
        assert not rcv.is_listening

    def test_wakeup_without_outcome_is_auth_error(self, receiver: CallbackReceiver) -> None:
        receiver._done.set()
        with pytest.raises(AuthError, match="without an authorization code"):
            receiver.wait(timeout=1)
        assert not receiver.is_listening


class TestHandleRequest:
    """State machine transitions without a socket."""

    def test_success_then_terminal(self) -> None:
        rcv = CallbackReceiver("http://127.0.0.1:3000/cb", STATE)
        assert rcv.handle_request(f"/cb?code=c&state={STATE}")[0] == 200
        assert rcv.state is CallbackState.SUCCEEDED
        assert rcv.handle_request("/cb?error=access_denied")[0] == 404
        assert rcv.state is CallbackState.SUCCEEDED

    def test_error_without_description(self) -> None:
        rcv = CallbackReceiver("http://127.0.0.1:3000/cb", STATE)
        rcv.handle_request("/cb?error=access_denied")
        assert isinstance(rcv._failure, AuthorizationDeniedError)
        assert rcv._failure.detail == "access_denied"
