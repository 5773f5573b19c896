"""Login commands -- obtain, inspect, and discard access tokens.

Provides the top-level ``login``, ``register``, ``unregister``, ``logout``,
``status``, ``token``, ``whoami``, and ``discover`` commands plus the
``clients`` sub-command group for saved client registrations.

Typical workflow::

    loginkit login -d acme.example     # browser login, token saved
    loginkit status                    # domain and expiry of the token
    loginkit token                     # raw access token on stdout
    loginkit logout                    # forget the token
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterator, Optional

import typer

from loginkit.exceptions import InvalidUsageError, LoginkitError
from loginkit.exit_codes import EXIT_AUTH_FAILURE
from loginkit.models import LoginSettings
from loginkit.output import (
    error,
    info,
    print_value,
    progress,
    show_record,
    show_table,
    success,
    suggest,
    warning,
)

if TYPE_CHECKING:
    from loginkit.oauth import MetadataResolver


clients_app = typer.Typer(no_args_is_help=True)

_DOMAIN_HELP = "Provider domain (or set LOGINKIT_DOMAIN)."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Report :class:`LoginkitError` on stderr and exit with its code."""
    try:
        yield
    except LoginkitError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _require_domain(settings: LoginSettings) -> str:
    if not settings.domain:
        raise InvalidUsageError(
            "Domain is required. Pass --domain or set LOGINKIT_DOMAIN."
        )
    return settings.domain


def _is_interactive(ctx: typer.Context) -> bool:
    no_input = ctx.obj.get("no_input", False) if ctx.obj else False
    return sys.stdin.isatty() and not no_input


def _build_resolver(settings: LoginSettings) -> MetadataResolver:
    """Create a resolver whose cache honours the configured TTL and persistence."""
    from loginkit.cache import MetadataCache
    from loginkit.config import get_cache_dir
    from loginkit.oauth import MetadataResolver

    if settings.discovery_cache_enabled:
        cache = MetadataCache.on_disk(get_cache_dir(), ttl_seconds=settings.discovery_cache_ttl)
    else:
        cache = MetadataCache(ttl_seconds=settings.discovery_cache_ttl)
    return MetadataResolver(cache=cache)


def _prompt_client_id(domain: str) -> Optional[str]:
    if not typer.confirm("Would you like to enter a client ID manually?", default=True):
        return None
    return typer.prompt(f"Enter your OAuth Client ID for {domain}")


def _format_remaining(expires_at: datetime) -> str:
    seconds = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    if seconds <= 0:
        return "expired"
    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    return f"{hours}h {minutes:02d}m" if hours else f"{minutes}m"


_SOURCE_MESSAGES = {
    "environment": "Using client credentials from environment",
    "saved": "Using saved client registration",
    "registered": "Client registered successfully",
    "manual": "Using manually entered client ID",
}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def login_command(
    ctx: typer.Context,
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help=_DOMAIN_HELP),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", "-c", help="OAuth client ID (or set LOGINKIT_CLIENT_ID)."
    ),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", "-s", help="OAuth client secret (or set LOGINKIT_CLIENT_SECRET)."
    ),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", "-r", help="Local redirect URI (or set LOGINKIT_REDIRECT_URI)."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="client_name used if a client must be registered."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the authorization URL instead of opening a browser."
    ),
    pkce: bool = typer.Option(
        False,
        "--pkce",
        help="Use PKCE even when a client secret is available (or set LOGINKIT_USE_PKCE).",
    ),
) -> None:
    """Log in through the browser and save the access token.

    Client credentials are taken from ``--client-id``/environment first,
    then from a saved registration for the domain, then by registering a
    new client. If registration fails in an interactive terminal, a client
    ID can be entered manually.

    Example::

        loginkit login -d acme.example
        LOGINKIT_CLIENT_ID=abc loginkit login -d acme.example
    """
    from loginkit.auth import ClientStore, TokenStore
    from loginkit.config import resolve_settings
    from loginkit.oauth import AuthorizationCodeFlow, default_provisioner

    with _cli_errors():
        settings = resolve_settings(
            cli_domain=domain,
            cli_client_id=client_id,
            cli_client_secret=client_secret,
            cli_redirect_uri=redirect_uri,
            cli_client_name=name,
            cli_use_pkce=pkce,
        )
        target = _require_domain(settings)
        resolver = _build_resolver(settings)
        try:
            provisioner = default_provisioner(
                resolver,
                ClientStore(),
                settings.redirect_uri,
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                prompt=_prompt_client_id if _is_interactive(ctx) else None,
            )
            credentials = provisioner.provision(target, settings.client_name)
            if settings.use_pkce:
                credentials = credentials.model_copy(update={"use_pkce": True})
            info(_SOURCE_MESSAGES.get(credentials.source, "Using client credentials"))
            info("Using client secret" if credentials.is_confidential else "Using PKCE flow")

            def _show_url(url: str) -> None:
                if no_browser:
                    info(f"Open this URL in a browser to continue:\n{url}")
                    return
                info("Opening browser for authentication...")
                info(f"If the browser does not open, visit:\n{url}")

            flow = AuthorizationCodeFlow(
                resolver,
                settings.redirect_uri,
                timeout=settings.callback_timeout,
                open_browser=(lambda url: None) if no_browser else _default_browser,
                on_authorization_url=_show_url,
            )
            progress("Waiting for authorization...")
            record, persisted = flow.login(target, credentials, TokenStore())
        finally:
            resolver.cache.close()

    success("Authentication successful!")
    if persisted:
        info("Token saved for future API calls")
    else:
        warning("Could not save the token locally; it is only valid for this session.")
    info(f"Expires at {record.expires_at.isoformat()}")


def _default_browser(url: str) -> None:
    import webbrowser

    webbrowser.open(url)


def register_command(
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help=_DOMAIN_HELP),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Application name."),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", "-r", help="Redirect URI to register."
    ),
) -> None:
    """Register a new OAuth client dynamically and save it for the domain.

    Example::

        loginkit register -d acme.example --name "My Laptop"
    """
    from loginkit.auth import ClientStore
    from loginkit.config import resolve_settings
    from loginkit.oauth import register_client

    with _cli_errors():
        settings = resolve_settings(
            cli_domain=domain, cli_redirect_uri=redirect_uri, cli_client_name=name
        )
        target = _require_domain(settings)
        resolver = _build_resolver(settings)
        try:
            progress("Registering OAuth client...")
            registration = register_client(
                target,
                settings.client_name,
                settings.redirect_uri,
                resolver=resolver,
                store=ClientStore(),
            )
        finally:
            resolver.cache.close()

    success("Client registered successfully!")
    print_value(registration.client_id)
    suggest(f"You can now login with: loginkit login -d {target}")


def unregister_command(
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help=_DOMAIN_HELP),
) -> None:
    """Remove the saved client registration for a domain."""
    from loginkit.auth import ClientStore
    from loginkit.config import resolve_settings
    from loginkit.oauth import normalize_domain

    with _cli_errors():
        target = normalize_domain(_require_domain(resolve_settings(cli_domain=domain)))

    if ClientStore().delete(target):
        success(f"Client registration for {target} removed")
    else:
        info(f"No saved client registration for {target}.")


def logout_command() -> None:
    """Clear the stored access token."""
    from loginkit.auth import TokenStore

    TokenStore().clear()
    success("Logged out successfully")


def status_command() -> None:
    """Show whether a valid token is stored. Exits 3 when not authenticated."""
    from loginkit.auth import TokenStore

    record = TokenStore().load()
    if record is None:
        info("Not authenticated.")
        suggest("Log in: loginkit login -d <domain>")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)

    show_record(
        {
            "domain": record.domain,
            "token_type": record.token_type,
            "id_token": bool(record.id_token),
            "stored_at": record.stored_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "remaining": _format_remaining(record.expires_at),
        },
        title="Session",
    )


def token_command() -> None:
    """Print the stored access token to stdout for use in scripts.

    Example::

        curl -H "Authorization: Bearer $(loginkit token)" https://api.example.com/tasks
    """
    from loginkit.auth import TokenStore

    with _cli_errors():
        print_value(TokenStore().bearer_token())


def whoami_command() -> None:
    """Display the current user from the provider's userinfo endpoint."""
    from loginkit.auth import TokenStore
    from loginkit.config import resolve_settings
    from loginkit.oauth import fetch_user_info

    record = TokenStore().load()
    if record is None:
        info('Not authenticated. Run "loginkit login" first.')
        raise typer.Exit(code=EXIT_AUTH_FAILURE)

    with _cli_errors():
        resolver = _build_resolver(resolve_settings())
        try:
            user = fetch_user_info(record.domain, record.access_token, resolver=resolver)
        finally:
            resolver.cache.close()

    show_record(user.model_dump(mode="json", exclude_none=True), title="Current User")


def discover_command(
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help=_DOMAIN_HELP),
    refresh: bool = typer.Option(
        False, "--refresh", help="Ignore cached metadata and fetch it again."
    ),
) -> None:
    """Show the provider metadata used for a domain.

    Falls back to conventional endpoints when discovery fails, exactly as
    ``login`` does.
    """
    from loginkit.config import resolve_settings

    with _cli_errors():
        settings = resolve_settings(cli_domain=domain)
        target = _require_domain(settings)
        resolver = _build_resolver(settings)
        try:
            if refresh:
                resolver.invalidate(target)
            metadata = resolver.resolve(target)
        finally:
            resolver.cache.close()

    show_record(
        metadata.model_dump(mode="json", exclude_none=True),
        title=f"Provider metadata for {target}",
    )


# ---------------------------------------------------------------------------
# clients sub-commands
# ---------------------------------------------------------------------------


@clients_app.command("list")
def clients_list() -> None:
    """List saved client registrations."""
    from loginkit.auth import ClientStore

    store = ClientStore()
    domains = store.domains()
    if not domains:
        info("No saved client registrations.")
        return

    rows = []
    for name in domains:
        registration = store.load(name)
        rows.append(
            {
                "domain": name,
                "client_id": registration.client_id if registration else "invalid",
                "auth_method": registration.token_endpoint_auth_method if registration else None,
            }
        )
    show_table(rows, title="Saved clients")


@clients_app.command("clear")
def clients_clear(
    ctx: typer.Context,
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Domain to clear."),
    all_domains: bool = typer.Option(False, "--all", help="Clear every saved client."),
) -> None:
    """Clear saved client registrations for one domain or all domains."""
    from loginkit.auth import ClientStore
    from loginkit.oauth import normalize_domain

    store = ClientStore()
    if all_domains:
        force = ctx.obj.get("force", False) if ctx.obj else False
        if not force and not typer.confirm(
            "Are you sure you want to clear ALL saved OAuth clients?", default=False
        ):
            info("Cancelled.")
            raise typer.Exit()
        count = store.clear_all()
        success(f"All client registrations cleared ({count})")
        return

    if not domain:
        error("Pass --domain <domain> or --all.")
        raise typer.Exit(code=2)
    target = normalize_domain(domain)
    if store.delete(target):
        success(f"Client registration for {target} cleared")
    else:
        info(f"No saved client registration for {target}.")
