"""Exception hierarchy for loginkit.

All exceptions inherit from :class:`LoginkitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`loginkit.exit_codes`.
The top-level error handler in :func:`loginkit.app.main` catches
``LoginkitError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    LoginkitError (exit 1)
    +-- InvalidUsageError               (exit 2)
    +-- AuthError                       (exit 3)
    |   +-- AuthorizationDeniedError
    |   +-- StateMismatchError
    |   +-- TokenExchangeError
    |   +-- NotAuthenticatedError
    +-- RegistrationError               (exit 4)
    |   +-- RegistrationUnsupportedError
    +-- CallbackTimeoutError            (exit 5)
    +-- ConnectionError_                (exit 6)
    +-- ConfigError                     (exit 1)
"""

from loginkit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REGISTRATION_FAILURE,
    EXIT_TIMEOUT,
)


class LoginkitError(Exception):
    """Base exception for all loginkit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`loginkit.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(LoginkitError):
    """Raised for invalid CLI arguments or missing required settings (e.g. no domain)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(LoginkitError):
    """Raised when a login attempt fails for a protocol or provider reason."""

    exit_code = EXIT_AUTH_FAILURE


class AuthorizationDeniedError(AuthError):
    """Raised when the provider redirects back with an ``error`` parameter.

    Args:
        detail: The provider's ``error`` value, optionally followed by its
            ``error_description``.
    """

    def __init__(self, detail: str):
        super().__init__(f"Authorization error: {detail}")
        self.detail = detail


class StateMismatchError(AuthError):
    """Raised when the callback ``state`` is absent or does not match the issued one.

    The message deliberately names neither the expected nor the received value.
    """

    def __init__(self, message: str = "State mismatch - possible CSRF attack"):
        super().__init__(message)


class TokenExchangeError(AuthError):
    """Raised when the token endpoint rejects the code or cannot be reached."""


class NotAuthenticatedError(AuthError):
    """Raised when a caller asks for a bearer token but no valid token is stored."""


class RegistrationError(LoginkitError):
    """Raised when dynamic client registration fails."""

    exit_code = EXIT_REGISTRATION_FAILURE


class RegistrationUnsupportedError(RegistrationError):
    """Raised when the provider metadata advertises no ``registration_endpoint``."""


class CallbackTimeoutError(LoginkitError):
    """Raised when no authorization callback arrives before the deadline."""

    exit_code = EXIT_TIMEOUT


class ConnectionError_(LoginkitError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(LoginkitError):
    """Raised for configuration problems (invalid config JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
