"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a failure category of the login flow and is
referenced by the corresponding :class:`~loginkit.exceptions.LoginkitError`
subclass. Shell wrappers can inspect the exit code to tell a denied login
apart from an unreachable provider without parsing stderr.

Example::

    $ loginkit login --domain acme.example
    $ echo $?
    5   # EXIT_TIMEOUT -- no browser callback arrived in time
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required settings."""

EXIT_AUTH_FAILURE = 3
"""The login was denied, failed state validation, or the token exchange failed."""

EXIT_REGISTRATION_FAILURE = 4
"""Dynamic client registration failed or is not supported by the provider."""

EXIT_TIMEOUT = 5
"""No authorization callback arrived before the deadline."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
