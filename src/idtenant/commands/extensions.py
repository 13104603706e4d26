"""Extension commands."""

from __future__ import annotations

import typer

from idtenant.output import get_output, info

extensions_app = typer.Typer(no_args_is_help=True)


@extensions_app.command("list")
def extensions_list() -> None:
    """List the extensions loaded from the ``idtenant.extensions`` entry points."""
    from idtenant.config import load_global_config
    from idtenant.extensions import ExtensionManager

    manager = ExtensionManager()
    manager.discover(load_global_config())
    extensions = manager.list_extensions()
    if not extensions:
        info("No extensions installed.")
        return
    rows = [[e["name"], e["kind"], e["version"], e["description"]] for e in extensions]
    get_output().print_table(["Name", "Kind", "Version", "Description"], rows, title="Extensions")
