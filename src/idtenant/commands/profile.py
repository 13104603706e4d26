"""Profile commands -- manage named tenant targets.

A profile pins a tenant host, a default login name and request settings
(timeout, TLS verification, liveness retries), and is selected with
``--profile`` or ``IDTENANT_PROFILE``.
"""

from __future__ import annotations

from typing import Optional

import typer

from idtenant.output import format_response, get_output, info, success, suggest

profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    host: str = typer.Option(..., "--host", help="Tenant hostname."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Default login name."),
    timeout: float = typer.Option(30, "--timeout", help="Request timeout in seconds."),
    no_verify_ssl: bool = typer.Option(
        False, "--no-verify-ssl", help="Skip TLS certificate verification."
    ),
    max_retries: int = typer.Option(
        1, "--max-retries", help="Retries for the session liveness check."
    ),
    default: bool = typer.Option(False, "--default", help="Make this the default profile."),
) -> None:
    """Create or replace a tenant profile.

    Raises:
        InvalidUsageError: If *host* is not a usable hostname.

    Example::

        idtenant profile add acme --host acme.id.example.cloud --user jane@acme.com --default
    """
    from idtenant.config import load_global_config, save_global_config, save_profile
    from idtenant.exceptions import InvalidUsageError
    from idtenant.models import RequestConfig, TenantProfile, canonical_host

    if not canonical_host(host):
        raise InvalidUsageError(f"Not a tenant hostname: {host!r}")

    profile = TenantProfile(
        name=name,
        host=host,
        user=user,
        request=RequestConfig(
            timeout=timeout, verify_ssl=not no_verify_ssl, max_retries=max_retries
        ),
    )
    save_profile(profile)
    if default:
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)

    success(f'Profile "{name}" saved ({profile.host}).')
    suggest(f"Connect: idtenant --profile {name} connect")


@profile_app.command("list")
def profile_list() -> None:
    """List tenant profiles."""
    from idtenant.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: idtenant profile add <name> --host <host>")
        return

    default = load_global_config().default_profile
    rows = []
    for name in names:
        profile = load_profile(name)
        rows.append(
            [name, profile.host, profile.user or "", "*" if name == default else ""]
        )
    get_output().print_table(["Name", "Host", "User", "Default"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Show a profile."""
    from idtenant.config import load_profile

    format_response(load_profile(name).model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(name: str = typer.Argument(help="Profile name.")) -> None:
    """Delete a profile, clearing the default if it pointed at it."""
    from idtenant.config import delete_profile, load_global_config, save_global_config

    delete_profile(name)
    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" removed.')
