"""Connect commands -- log in to a tenant and encode client secrets.

``idtenant connect`` runs the interactive login for a tenant host and
registers the session; with session persistence enabled it is cached so
later ``invoke`` commands reuse it.

Typical workflow::

    idtenant profile add acme --host acme.id.example.cloud --user jane@acme.com
    idtenant --profile acme connect
    idtenant --profile acme invoke CDirectoryService/GetUsers --body '{}'
"""

from __future__ import annotations

from typing import Optional

import typer

from idtenant.output import format_response, success, suggest


def connect_command(
    ctx: typer.Context,
    host: Optional[str] = typer.Argument(
        None, help="Tenant hostname, e.g. acme.id.example.cloud."
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Login name."),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="OAuth2 client id (client-credentials mode)."
    ),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="OAuth2 scope (client-credentials mode)."
    ),
    secret_source: str = typer.Option(
        "prompt",
        "--secret-source",
        help="Client secret source: env:VAR, file:/path, prompt.",
    ),
) -> None:
    """Authenticate against a tenant and register the session.

    The host comes from the argument, ``--profile``, ``IDTENANT_HOST`` or the
    default profile, in that order. The login name comes from ``--user`` or
    the profile, and is prompted for otherwise.

    Raises:
        InvalidUsageError: If no host or login name can be resolved.
        AuthError: If the login fails.

    Example::

        idtenant connect acme.id.example.cloud --user jane@acme.com
    """
    from idtenant.auth import Authenticator, SessionCache, get_registry
    from idtenant.config import resolve_config, resolve_credential
    from idtenant.console import TerminalConsole
    from idtenant.exceptions import InvalidUsageError
    from idtenant.models import ClientCredentials, CredentialSpec, InteractiveCredentials

    obj = ctx.obj or {}
    config, profile = resolve_config(obj.get("profile"), host)
    if profile is None:
        raise InvalidUsageError(
            "No tenant host given. Pass HOST, use --profile, or set IDTENANT_HOST."
        )

    console = TerminalConsole(no_input=obj.get("no_input", False))
    credentials: CredentialSpec
    if client_id:
        if not scope:
            raise InvalidUsageError("--scope is required with --client-id")
        secret = resolve_credential(secret_source, prompt_text="Client secret: ")
        credentials = ClientCredentials(client_id=client_id, scope=scope, secret=secret)
    else:
        login = (user or profile.user or console.prompt_text("User")).strip()
        if not login:
            raise InvalidUsageError("A login name is required; pass --user or set it on the profile")
        credentials = InteractiveCredentials(user=login)

    authenticator = Authenticator(get_registry(), console=console, request=profile.request)
    session = authenticator.connect(profile.host, credentials)

    if config.sessions.persist:
        SessionCache().save(session)

    success(f"Connected to {session.host} as {session.user}.")
    format_response(
        {
            "host": session.host,
            "user": session.user,
            "started_at": session.started_at.isoformat(),
        }
    )
    suggest(f"Call an API: idtenant invoke <call> --host {session.host}")


def encode_command(
    client: str = typer.Argument(help="OAuth2 client id."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        "-s",
        help="Client password source: env:VAR, file:/path, prompt.",
    ),
) -> None:
    """Print base64("CLIENT:PASSWORD") for a Basic authorization header.

    Example::

        idtenant encode my-client --password-source env:CLIENT_SECRET
    """
    from idtenant.auth import encode_client_secret
    from idtenant.config import resolve_credential
    from idtenant.output import get_output

    password = resolve_credential(password_source, prompt_text="Client password: ")
    get_output().print_data(encode_client_secret(client, password))
