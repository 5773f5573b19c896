"""loginkit -- Obtain an identity-provider access token from the command line.

This package runs the OAuth 2.0 Authorization Code flow for an interactive
user without a pre-registered, hardcoded client: it discovers the
provider's endpoints, registers a client on the fly when needed, opens the
browser, receives the redirect on a short-lived local listener, exchanges
the code (with PKCE or a client secret), and keeps the resulting token on
disk until it expires.

Typical workflow::

    loginkit login --domain acme.example   # browser login, token saved
    loginkit whoami                        # userinfo for the stored token
    curl -H "Authorization: Bearer $(loginkit token)" https://api.acme.example/

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and settings precedence.
    oauth: The Authorization Code flow engine.
    auth: Token and client registration persistence.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
