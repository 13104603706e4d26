"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON, plain and rich rendering of call results and tables
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from idtenant import output as output_module
from idtenant.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("idtenant.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("idtenant.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("a message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "a message" in captured.err

    def test_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"key": "value"})
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"key": "value"}
        assert captured.err == ""


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_suggest(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        mgr.suggest("hidden")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors_and_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.error("broken")
        mgr.print_data("payload")
        captured = capfd.readouterr()
        assert "Error: broken" in captured.err
        assert "payload" in captured.out

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("nope")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("yes")
        err = capfd.readouterr().err
        assert "nope" not in err
        assert "[debug] yes" in err

    def test_progress_needs_tty(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).progress("working")
        assert capfd.readouterr().err == ""


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_list(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response([{"Name": "jane"}])
        assert json.loads(capfd.readouterr().out) == [{"Name": "jane"}]

    def test_json_null_result(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response(None)
        assert capfd.readouterr().out.strip() == "null"

    def test_plain_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"a": 1, "b": "x"})
        assert capfd.readouterr().out.splitlines() == ["a\t1", "b\tx"]

    def test_plain_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response([{"a": 1, "b": 2}, "raw"])
        assert capfd.readouterr().out.splitlines() == ["1\t2", "raw"]

    def test_plain_none_prints_nothing(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(None)
        assert capfd.readouterr().out == ""

    def test_rich_dict_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH).format_response({"key": "value"})
        assert "key" in capfd.readouterr().out

    def test_unicode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"name": "Zoë"})
        assert "Zoë" in capfd.readouterr().out


class TestPrintTable:
    def test_json_records(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["Host", "User"], [["a", "b"]])
        assert json.loads(capfd.readouterr().out) == [{"Host": "a", "User": "b"}]

    def test_plain_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(["Host", "User"], [["a", "b"]])
        assert capfd.readouterr().out.splitlines() == ["Host\tUser", "a\tb"]

    def test_rich_table(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH).print_table(
            ["Host"], [["acme.id.example.cloud"]], title="Sessions"
        )
        out = capfd.readouterr().out
        assert "Sessions" in out
        assert "acme.id.example.cloud" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self):
        custom = OutputManager(format=OutputFormat.JSON)
        set_output(custom)
        assert get_output() is custom
        reset_output()
        assert get_output() is not custom

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("hello")
        output_module.warning("careful")
        output_module.format_response({"k": "v"})
        captured = capfd.readouterr()
        assert "hello" in captured.err
        assert "Warning: careful" in captured.err
        assert "k\tv" in captured.out
