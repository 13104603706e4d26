"""Extension manager -- discovery, loading and registration.

:class:`ExtensionManager` discovers extensions registered as Python entry
points, applies the enabled/disabled lists from
:class:`~idtenant.models.ExtensionsConfig`, and attaches ``command``
extensions to the CLI.

Third-party packages register an extension in their ``pyproject.toml``::

    [project.entry-points."idtenant.extensions"]
    roles = "idtenant_roles.extension:RolesExtension"
"""

from __future__ import annotations

import importlib.metadata
import logging

import typer

from idtenant.exceptions import ExtensionError
from idtenant.extensions.base import Extension, ExtensionKind
from idtenant.models import GlobalConfig

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "idtenant.extensions"


class ExtensionManager:
    """Discovers, loads and registers idtenant extensions.

    When ``extensions.enabled`` is non-empty only those extensions are
    loaded; otherwise every discovered extension not in
    ``extensions.disabled`` is.

    Example::

        manager = ExtensionManager()
        manager.discover(global_config)
        manager.register_commands(app)
    """

    def __init__(self) -> None:
        self._extensions: dict[str, Extension] = {}

    def discover(self, config: GlobalConfig) -> list[str]:
        """Load every qualifying entry point and return the loaded names.

        Extensions that fail to import or initialise are logged and skipped.
        """
        loaded: list[str] = []
        enabled = set(config.extensions.enabled)
        disabled = set(config.extensions.disabled)

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            if enabled and ep.name not in enabled:
                logger.debug("Extension '%s' not in enabled list, skipping", ep.name)
                continue
            if ep.name in disabled:
                logger.debug("Extension '%s' is disabled, skipping", ep.name)
                continue
            try:
                extension: Extension = ep.load()()
                self.load_extension(ep.name, extension, config)
                loaded.append(ep.name)
            except Exception as exc:
                logger.warning("Failed to load extension '%s': %s", ep.name, exc)

        return loaded

    def load_extension(self, name: str, extension: Extension, config: GlobalConfig) -> None:
        """Initialise *extension* and keep it under *name*.

        Raises:
            ExtensionError: If *name* is already loaded.
        """
        if name in self._extensions:
            raise ExtensionError(f"Extension '{name}' is already loaded")
        extension.on_init(config)
        self._extensions[name] = extension
        logger.info("Loaded extension '%s' v%s", name, extension.version)

    def get_extension(self, name: str) -> Extension:
        try:
            return self._extensions[name]
        except KeyError:
            raise ExtensionError(f"Extension '{name}' is not loaded") from None

    def register_commands(self, app: typer.Typer) -> None:
        """Call :meth:`~Extension.register` on every ``command`` extension."""
        for name, extension in self._extensions.items():
            if extension.kind is not ExtensionKind.COMMAND:
                continue
            try:
                extension.register(app)
            except Exception as exc:
                logger.warning("Extension '%s' failed to register: %s", name, exc)

    def list_extensions(self) -> list[dict[str, str]]:
        return [
            {
                "name": ext.name,
                "kind": ext.kind.value,
                "version": ext.version,
                "description": ext.description,
            }
            for ext in self._extensions.values()
        ]
