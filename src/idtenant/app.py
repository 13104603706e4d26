"""Typer application and CLI entry point for idtenant.

This module builds the root Typer application, registers the built-in
commands (``connect``, ``encode``, ``invoke``, ``last-error``,
``sessions``, ``profile``, ``extensions``) and attaches commands contributed
by installed extensions.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. It installs the Ctrl-C handler, maps
:class:`~idtenant.exceptions.IdTenantError` to its exit code, and writes a
crash log under the data directory for anything unexpected.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from idtenant import __version__
from idtenant.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="idtenant",
    help="Sign in to an identity tenant and call its APIs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"idtenant {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send ``idtenant`` log records to stderr, at DEBUG with ``--verbose``."""
    from rich.console import Console
    from rich.logging import RichHandler

    package_logger = logging.getLogger("idtenant")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Tenant profile to use."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Disable interactive prompts."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~idtenant.output.OutputManager`, configures
    logging and stores shared options in ``ctx.obj``.
    """
    from idtenant.config import load_global_config
    from idtenant.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_global_config().output.format)
        except ValueError:
            fmt = OutputFormat.AUTO

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["no_input"] = no_input
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Command registration
# ------------------------------------------------------------------ #

_registered = False


def register_commands() -> None:
    """Attach built-in and extension commands to :data:`app` (idempotent)."""
    global _registered
    if _registered:
        return

    from idtenant.commands.connect import connect_command, encode_command
    from idtenant.commands.extensions import extensions_app
    from idtenant.commands.invoke import invoke_command, last_error_command
    from idtenant.commands.profile import profile_app
    from idtenant.commands.sessions import sessions_app

    app.command("connect")(connect_command)
    app.command("encode")(encode_command)
    app.command("invoke")(invoke_command)
    app.command("last-error")(last_error_command)
    app.add_typer(sessions_app, name="sessions", help="Cached session management.")
    app.add_typer(profile_app, name="profile", help="Tenant profile management.")
    app.add_typer(extensions_app, name="extensions", help="Installed extensions.")
    _registered = True

    _load_extensions()


def _load_extensions() -> None:
    from idtenant.config import load_global_config
    from idtenant.exceptions import IdTenantError
    from idtenant.extensions import ExtensionManager

    try:
        config = load_global_config()
    except IdTenantError as exc:
        logger.warning("Skipping extensions: %s", exc)
        return
    manager = ExtensionManager()
    manager.discover(config)
    manager.register_commands(app)


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``<data_dir>/logs`` and return its path."""
    from idtenant.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``idtenant`` console script.

    :class:`~idtenant.exceptions.IdTenantError` exits with the error's
    ``exit_code``; any other exception produces a crash log and exit 1.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from idtenant.exceptions import IdTenantError
        from idtenant.output import error

        if isinstance(exc, IdTenantError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
