"""One-shot local HTTP listener for the OAuth redirect.

:class:`CallbackReceiver` binds the host and port named in the redirect URI,
serves each connection on its own thread, and presents a single blocking
:meth:`~CallbackReceiver.wait` call to the login flow. The first request
on the redirect path decides the outcome::

    LISTENING --error param-----------> REJECTED  (AuthorizationDeniedError)
    LISTENING --state absent/mismatch-> REJECTED  (StateMismatchError)
    LISTENING --no code---------------> REJECTED  (AuthError)
    LISTENING --state ok + code-------> SUCCEEDED
    LISTENING --deadline--------------> TIMED_OUT (CallbackTimeoutError)

A :class:`threading.Event` is shared by the request handler and the
deadline: whichever sets it first under the lock wins, and the server is
shut down and its socket closed on every exit path.

Usage::

    with CallbackReceiver(redirect_uri, state) as receiver:
        webbrowser.open(auth_url)       # only after the port is bound
        code = receiver.wait(timeout=300)
"""

from __future__ import annotations

import enum
import hmac
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from loginkit.exceptions import (
    AuthError,
    AuthorizationDeniedError,
    CallbackTimeoutError,
    InvalidUsageError,
    LoginkitError,
    StateMismatchError,
)

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_PORT = 3000
DEFAULT_CALLBACK_TIMEOUT = 300.0
# Idle connections (browser preconnects) are dropped after this many seconds.
REQUEST_TIMEOUT = 5.0

_PAGE = (
    "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>{title}</title></head>"
    "<body><h2>{title}</h2><p>{message}</p></body></html>"
)
SUCCESS_PAGE = _PAGE.format(
    title="Authorization successful",
    message="You can close this window and return to the terminal.",
)
FAILURE_PAGE = _PAGE.format(
    title="Authorization failed",
    message="You can close this window. Details are shown in the terminal.",
)
NOT_FOUND_PAGE = "Not found"


class CallbackState(str, enum.Enum):
    """Lifecycle of a :class:`CallbackReceiver`. All but ``LISTENING`` are terminal."""

    LISTENING = "listening"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


def _first(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class CallbackReceiver:
    """Single-use, time-bounded receiver for the authorization redirect.

    Args:
        redirect_uri: The ``http://host:port/path`` URI sent in the
            authorization request. Port 3000 is assumed when absent.
        expected_state: The ``state`` issued for this login attempt.

    Raises:
        InvalidUsageError: If *redirect_uri* is not an ``http`` URI with a
            host.
    """

    def __init__(self, redirect_uri: str, expected_state: str) -> None:
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname:
            raise InvalidUsageError(
                f"Redirect URI must be a local http:// URI, got: {redirect_uri}"
            )
        self._host = parsed.hostname
        self._port = parsed.port or DEFAULT_CALLBACK_PORT
        self._path = parsed.path or "/"
        self._expected_state = expected_state

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = CallbackState.LISTENING
        self._code: Optional[str] = None
        self._failure: Optional[LoginkitError] = None
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._started = False

    @property
    def state(self) -> CallbackState:
        return self._state

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    def __enter__(self) -> CallbackReceiver:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def start(self) -> None:
        """Bind the listener and start serving on a daemon thread.

        Raises:
            AuthError: If the port cannot be bound.
            RuntimeError: If the receiver was already started once.
        """
        if self._started:
            raise RuntimeError("CallbackReceiver is single-use and was already started")
        self._started = True

        try:
            server = _CallbackServer((self._host, self._port), _make_handler(self))
        except OSError as exc:
            raise AuthError(
                f"Cannot listen on {self._host}:{self._port} for the OAuth callback: {exc}"
            ) from exc

        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="loginkit-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback listener bound on %s:%d%s", self._host, self._port, self._path)

    def stop(self) -> None:
        """Shut down the server and release the port. Safe to call repeatedly."""
        server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.debug("Callback listener on %s:%d closed", self._host, self._port)

    def wait(self, timeout: float = DEFAULT_CALLBACK_TIMEOUT) -> str:
        """Block until the redirect arrives or *timeout* seconds elapse.

        The listener is torn down before this method returns or raises.

        Returns:
            The authorization code.

        Raises:
            AuthorizationDeniedError: The provider reported an ``error``.
            StateMismatchError: The ``state`` was missing or did not match.
            AuthError: The redirect carried no ``code``.
            CallbackTimeoutError: Nothing arrived before the deadline.
        """
        if not self._started:
            raise RuntimeError("CallbackReceiver.wait() called before start()")
        try:
            if not self._done.wait(timeout):
                with self._lock:
                    if self._state is CallbackState.LISTENING:
                        self._finish(
                            CallbackState.TIMED_OUT,
                            CallbackTimeoutError(
                                f"Authorization timeout: no callback received within {timeout:g} seconds"
                            ),
                        )
        finally:
            self.stop()

        if self._failure is not None:
            raise self._failure
        if self._code is None:
            raise AuthError("Callback listener stopped without an authorization code")
        return self._code

    # ------------------------------------------------------------------
    # Request handling (runs on connection threads)
    # ------------------------------------------------------------------

    def handle_request(self, raw_path: str) -> tuple[int, str]:
        """Apply one inbound request to the state machine.

        Returns:
            ``(status_code, html_body)`` for the browser.
        """
        parsed = urlparse(raw_path)
        if parsed.path != self._path:
            return 404, NOT_FOUND_PAGE

        with self._lock:
            if self._state is not CallbackState.LISTENING:
                return 404, NOT_FOUND_PAGE

            params = parse_qs(parsed.query)
            error = _first(params, "error")
            state = _first(params, "state")
            code = _first(params, "code")

            if error:
                description = _first(params, "error_description")
                detail = f"{error} - {description}" if description else error
                self._finish(CallbackState.REJECTED, AuthorizationDeniedError(detail))
                return 400, FAILURE_PAGE

            if not state or not hmac.compare_digest(
                state.encode("utf-8"), self._expected_state.encode("utf-8")
            ):
                self._finish(CallbackState.REJECTED, StateMismatchError())
                return 400, FAILURE_PAGE

            if not code:
                self._finish(
                    CallbackState.REJECTED,
                    AuthError("No authorization code received from callback"),
                )
                return 400, FAILURE_PAGE

            self._code = code
            self._finish(CallbackState.SUCCEEDED)
            return 200, SUCCESS_PAGE

    def _finish(
        self, state: CallbackState, failure: Optional[LoginkitError] = None
    ) -> None:
        # Caller holds self._lock.
        self._state = state
        self._failure = failure
        self._done.set()


class _CallbackServer(ThreadingHTTPServer):
    # One thread per connection: a stalled socket never blocks the redirect
    # or shutdown().
    daemon_threads = True
    block_on_close = False


def _make_handler(receiver: CallbackReceiver) -> type[BaseHTTPRequestHandler]:
    class CallbackHandler(BaseHTTPRequestHandler):
        timeout = REQUEST_TIMEOUT

        def do_GET(self) -> None:
            status, body = receiver.handle_request(self.path)
            payload = body.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(payload)))
            self.send_header("Cache-Control", "no-store")
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            # Request lines carry the authorization code; keep them out of logs.
            pass

    return CallbackHandler
