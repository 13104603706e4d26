"""Invoke commands -- call tenant APIs with a cached session.

``idtenant invoke`` re-hydrates the session for the target host from the
session cache, validates it (at most once per five minutes) and POSTs the
given JSON body. The call's ``Result`` goes to stdout.

A failed call is kept and can be shown again with ``idtenant last-error``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from idtenant.output import format_response, info


def _read_body(body: Optional[str], body_file: Optional[Path]) -> Optional[str]:
    from idtenant.exceptions import InvalidUsageError

    if body is not None and body_file is not None:
        raise InvalidUsageError("Use either --body or --body-file, not both")
    if body_file is None:
        return body
    if str(body_file) == "-":
        return typer.get_text_stream("stdin").read()
    try:
        return body_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidUsageError(f"Cannot read body file {body_file}: {exc}") from None


def invoke_command(
    ctx: typer.Context,
    call: str = typer.Argument(help="API path, e.g. CDirectoryService/GetUsers."),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Raw JSON body."),
    body_file: Optional[Path] = typer.Option(
        None, "--body-file", help="Read the JSON body from a file ('-' for stdin)."
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Tenant host; defaults to the profile or current session."
    ),
) -> None:
    """Call a tenant API and print its result.

    Raises:
        AuthError: If there is no usable session for the host.
        ApiError: If the call fails or the tenant rejects it.

    Example::

        idtenant invoke Redrock/query --body '{"Script": "select ID from User"}'
    """
    from idtenant.auth import SessionCache, get_registry
    from idtenant.client import ApiInvoker
    from idtenant.config import resolve_config
    from idtenant.exceptions import ApiError
    from idtenant.models import RequestConfig

    payload = _read_body(body, body_file)

    obj = ctx.obj or {}
    config, profile = resolve_config(obj.get("profile"), host)
    request = profile.request if profile is not None else RequestConfig()
    target = profile.host if profile is not None else None

    registry = get_registry()
    cache = SessionCache()
    if config.sessions.persist:
        session = cache.hydrate(registry, target)
    else:
        session = registry.get(target) if target else registry.current

    invoker = ApiInvoker(registry, request=request)
    try:
        result = invoker.invoke(session, call, payload)
    except ApiError as err:
        cache.save_last_error(err)
        raise
    finally:
        if session is not None and config.sessions.persist:
            cache.save(session)

    format_response(result)


def last_error_command() -> None:
    """Show the most recent failed API call.

    Example::

        idtenant last-error --json
    """
    from idtenant.auth import SessionCache

    record = SessionCache().load_last_error()
    if record is None:
        info("No failed API calls recorded.")
        return
    format_response(record)
