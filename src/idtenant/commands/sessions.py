"""Session commands -- inspect and clear cached tenant sessions.

Sessions are cached per host by ``idtenant connect`` when
``sessions.persist`` is enabled. Bearer credentials are never printed.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from idtenant.output import format_response, get_output, info, success, suggest

sessions_app = typer.Typer(no_args_is_help=True)


def _describe(session: Any) -> dict[str, Any]:
    from idtenant.redact import MASK

    return {
        "host": session.host,
        "user": session.user,
        "started_at": session.started_at.isoformat(),
        "last_validated_at": (
            session.last_validated_at.isoformat() if session.last_validated_at else None
        ),
        "auth_headers": {key: MASK for key in session.auth_headers},
    }


@sessions_app.command("list")
def sessions_list() -> None:
    """List cached sessions.

    Example::

        idtenant sessions list
    """
    from idtenant.auth import SessionCache

    sessions = SessionCache().load_all()
    if not sessions:
        info("No cached sessions.")
        suggest("Connect first: idtenant connect <host> --user <name>")
        return

    rows = [
        [
            s.host,
            s.user or "",
            s.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            s.last_validated_at.strftime("%Y-%m-%d %H:%M:%S") if s.last_validated_at else "never",
        ]
        for s in sessions
    ]
    get_output().print_table(
        ["Host", "User", "Started", "Last validated"], rows, title="Sessions"
    )


@sessions_app.command("show")
def sessions_show(
    host: str = typer.Argument(help="Tenant hostname."),
) -> None:
    """Show one cached session with its credentials masked.

    Raises:
        AuthError: ``NO_SESSION`` if nothing is cached for *host*.
    """
    from idtenant.auth import SessionCache
    from idtenant.exceptions import AuthError, AuthFailure

    session = SessionCache().load(host)
    if session is None:
        raise AuthError(AuthFailure.NO_SESSION, f"No cached session for {host}")
    format_response(_describe(session))


@sessions_app.command("clear")
def sessions_clear(
    host: Optional[str] = typer.Argument(None, help="Host to clear; all when omitted."),
) -> None:
    """Delete cached sessions.

    Example::

        idtenant sessions clear acme.id.example.cloud
        idtenant sessions clear
    """
    from idtenant.auth import SessionCache

    removed = SessionCache().clear(host)
    if removed:
        success(f"Removed {removed} cached session(s).")
    else:
        info("No cached sessions to remove.")
