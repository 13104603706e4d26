"""Abstract base class for idtenant extensions.

An extension adds to the ``idtenant`` CLI without touching the core. It is
either a ``command`` extension, which attaches new sub-commands to the root
:class:`typer.Typer` app, or a ``function`` extension, which contributes
helpers built on :class:`~idtenant.client.ApiInvoker` and registers nothing
on the CLI.

Extensions are registered as entry points in the ``idtenant.extensions``
group and discovered at runtime by
:class:`~idtenant.extensions.manager.ExtensionManager`.

Example:
    Minimal command extension::

        class RolesExtension(Extension):
            @property
            def name(self) -> str:
                return "roles"

            def register(self, app):
                @app.command("roles")
                def roles() -> None:
                    ...
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod

import typer

from idtenant.models import GlobalConfig


class ExtensionKind(str, enum.Enum):
    """What an extension contributes."""

    COMMAND = "command"
    FUNCTION = "function"


class Extension(ABC):
    """Base class for all idtenant extensions.

    Subclasses must implement :attr:`name`. :meth:`register` is only
    called for ``command`` extensions; its default does nothing.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique extension name used for discovery and logging."""
        ...

    @property
    def kind(self) -> ExtensionKind:
        return ExtensionKind.COMMAND

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: GlobalConfig) -> None:
        """Called once when the extension is loaded.

        Args:
            config: The global idtenant configuration.
        """

    def register(self, app: typer.Typer) -> None:
        """Attach commands to the root *app*."""
