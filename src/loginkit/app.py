"""loginkit command-line entry point.

``loginkit login`` and the other session commands hang directly off the
root app; saved client registrations and the config file each get a
sub-group (``loginkit clients ...``, ``loginkit config ...``).

Exit status follows :mod:`loginkit.exit_codes`: a
:class:`~loginkit.exceptions.LoginkitError` that escapes a command exits
with its own code, Ctrl-C exits 130, and anything else leaves a traceback
in ``<data dir>/logs/`` and exits 1.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from loginkit import __version__
from loginkit.commands.auth import (
    clients_app,
    discover_command,
    login_command,
    logout_command,
    register_command,
    status_command,
    token_command,
    unregister_command,
    whoami_command,
)
from loginkit.commands.config import config_app
from loginkit.exit_codes import EXIT_GENERIC_FAILURE

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="loginkit",
    help="Log in to an OAuth 2.0 / OpenID Connect provider from the terminal.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

for _name, _command in [
    ("login", login_command),
    ("register", register_command),
    ("unregister", unregister_command),
    ("logout", logout_command),
    ("status", status_command),
    ("token", token_command),
    ("whoami", whoami_command),
    ("discover", discover_command),
]:
    app.command(_name)(_command)
app.add_typer(clients_app, name="clients", help="List or clear saved client registrations.")
app.add_typer(config_app, name="config", help="Show or edit default settings.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"loginkit {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print records as JSON."),
    plain_output: bool = typer.Option(
        False, "--plain", help="Print records as tab-separated text."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print data, warnings and errors."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log discovery, registration and callback details."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask before clearing data."),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt, e.g. for a client ID."
    ),
) -> None:
    """Pick the output format and log level, and share --force/--no-input via ``ctx.obj``."""
    from loginkit.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    logging.getLogger("loginkit").setLevel(logging.DEBUG if verbose else logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj.update(force=force, no_input=no_input)


def _configure_logging() -> None:
    # stdout stays reserved for tokens and records.
    logging.basicConfig(
        level=logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> str:
    """Save the current traceback under the data directory and return its path."""
    from loginkit.config import get_data_dir

    log_path = get_data_dir() / "logs" / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """Console-script entry point."""
    from loginkit.exceptions import LoginkitError
    from loginkit.output import error

    _configure_logging()
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except LoginkitError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
