"""Tests for extension discovery, loading and command registration."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from idtenant.exceptions import ExtensionError
from idtenant.extensions import ENTRY_POINT_GROUP, Extension, ExtensionKind, ExtensionManager
from idtenant.models import ExtensionsConfig, GlobalConfig

ENTRY_POINTS = "idtenant.extensions.manager.importlib.metadata.entry_points"


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


class MinimalExtension(Extension):
    @property
    def name(self) -> str:
        return "minimal"


class RolesExtension(Extension):
    """Adds a ``roles`` command."""

    def __init__(self) -> None:
        self.config: GlobalConfig | None = None

    @property
    def name(self) -> str:
        return "roles"

    @property
    def version(self) -> str:
        return "1.2.0"

    @property
    def description(self) -> str:
        return "List tenant roles"

    def on_init(self, config: GlobalConfig) -> None:
        self.config = config

    def register(self, app: typer.Typer) -> None:
        @app.command("roles")
        def roles() -> None:
            typer.echo("admin")


class HelperExtension(Extension):
    @property
    def name(self) -> str:
        return "helpers"

    @property
    def kind(self) -> ExtensionKind:
        return ExtensionKind.FUNCTION

    def register(self, app: typer.Typer) -> None:
        raise AssertionError("function extensions are never registered")


class ExplodingExtension(MinimalExtension):
    def register(self, app: typer.Typer) -> None:
        raise RuntimeError("boom")


class MockEP:
    def __init__(self, name: str, cls: type) -> None:
        self.name = name
        self._cls = cls

    def load(self) -> type:
        return self._cls


def _discover(config: GlobalConfig, *eps: Any) -> tuple[ExtensionManager, list[str]]:
    manager = ExtensionManager()
    with patch(ENTRY_POINTS, return_value=list(eps)) as mocked:
        loaded = manager.discover(config)
    mocked.assert_called_once_with(group=ENTRY_POINT_GROUP)
    return manager, loaded


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestDiscovery:
    def test_loads_every_entry_point(self) -> None:
        manager, loaded = _discover(
            GlobalConfig(), MockEP("minimal", MinimalExtension), MockEP("roles", RolesExtension)
        )
        assert loaded == ["minimal", "roles"]
        assert manager.get_extension("roles").name == "roles"

    def test_on_init_receives_config(self) -> None:
        config = GlobalConfig()
        manager, _ = _discover(config, MockEP("roles", RolesExtension))
        assert manager.get_extension("roles").config is config

    def test_respects_disabled(self) -> None:
        config = GlobalConfig(extensions=ExtensionsConfig(disabled=["minimal"]))
        manager, loaded = _discover(config, MockEP("minimal", MinimalExtension))
        assert loaded == []
        with pytest.raises(ExtensionError):
            manager.get_extension("minimal")

    def test_enabled_list_is_an_allowlist(self) -> None:
        config = GlobalConfig(extensions=ExtensionsConfig(enabled=["roles"]))
        _, loaded = _discover(
            config, MockEP("minimal", MinimalExtension), MockEP("roles", RolesExtension)
        )
        assert loaded == ["roles"]

    def test_broken_entry_point_is_skipped(self) -> None:
        class BrokenEP:
            name = "broken"

            def load(self) -> type:
                raise ImportError("missing dependency")

        _, loaded = _discover(GlobalConfig(), BrokenEP(), MockEP("minimal", MinimalExtension))
        assert loaded == ["minimal"]

    def test_no_entry_points(self) -> None:
        _, loaded = _discover(GlobalConfig())
        assert loaded == []


# ---------------------------------------------------------------------------
# Loading and registration
# ---------------------------------------------------------------------------


class TestLoading:
    def test_duplicate_name_rejected(self) -> None:
        manager = ExtensionManager()
        manager.load_extension("minimal", MinimalExtension(), GlobalConfig())
        with pytest.raises(ExtensionError, match="already loaded"):
            manager.load_extension("minimal", MinimalExtension(), GlobalConfig())

    def test_list_extensions(self) -> None:
        manager = ExtensionManager()
        manager.load_extension("roles", RolesExtension(), GlobalConfig())
        manager.load_extension("helpers", HelperExtension(), GlobalConfig())
        assert manager.list_extensions() == [
            {
                "name": "roles",
                "kind": "command",
                "version": "1.2.0",
                "description": "List tenant roles",
            },
            {"name": "helpers", "kind": "function", "version": "0.1.0", "description": ""},
        ]

    def test_cannot_instantiate_without_name(self) -> None:
        with pytest.raises(TypeError):
            Extension()  # type: ignore[abstract]


class TestRegisterCommands:
    def _app(self) -> typer.Typer:
        app = typer.Typer()

        @app.command("noop")
        def noop() -> None:
            pass

        return app

    def test_command_extension_adds_subcommand(self) -> None:
        app = self._app()
        manager = ExtensionManager()
        manager.load_extension("roles", RolesExtension(), GlobalConfig())
        manager.register_commands(app)

        result = CliRunner().invoke(app, ["roles"])
        assert result.exit_code == 0
        assert "admin" in result.output

    def test_function_extensions_are_not_registered(self) -> None:
        manager = ExtensionManager()
        manager.load_extension("helpers", HelperExtension(), GlobalConfig())
        manager.register_commands(self._app())

    def test_registration_failure_is_logged(self) -> None:
        manager = ExtensionManager()
        manager.load_extension("minimal", ExplodingExtension(), GlobalConfig())
        with patch("idtenant.extensions.manager.logger") as log:
            manager.register_commands(self._app())
        log.warning.assert_called_once()
        assert "failed to register" in log.warning.call_args.args[0]
