"""Tests for the session registry."""

from __future__ import annotations

import threading

from fakes import HOST, make_session

from idtenant.auth.registry import SessionRegistry, get_registry, reset_registry, set_registry
from idtenant.exceptions import ApiError, ApiFailure


class TestRegister:
    def test_first_session_is_stored(self) -> None:
        registry = SessionRegistry()
        session = make_session()

        assert registry.register(session) is True
        assert registry.get(HOST) is session
        assert registry.current is session

    def test_first_wins_but_current_moves(self) -> None:
        registry = SessionRegistry()
        first, second = make_session(token="a"), make_session(token="b")

        registry.register(first)
        assert registry.register(second) is False

        assert registry.get(HOST) is first
        assert registry.current is second
        assert registry.sessions() == [first]

    def test_lookup_is_canonical(self) -> None:
        registry = SessionRegistry()
        registry.register(make_session())

        assert registry.get("https://ACME.id.example.cloud/") is not None
        assert "ACME.ID.EXAMPLE.CLOUD" in registry
        assert 42 not in registry

    def test_several_hosts(self) -> None:
        registry = SessionRegistry()
        registry.register(make_session())
        registry.register(make_session(host="beta.id.example.cloud"))

        assert len(registry) == 2
        assert [s.host for s in registry.sessions()] == [HOST, "beta.id.example.cloud"]

    def test_concurrent_registration_keeps_one(self) -> None:
        registry = SessionRegistry()
        sessions = [make_session(token=str(i)) for i in range(20)]
        threads = [threading.Thread(target=registry.register, args=(s,)) for s in sessions]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 1
        assert registry.get(HOST) in sessions


class TestLastError:
    def test_records_most_recent(self) -> None:
        registry = SessionRegistry()
        assert registry.last_error is None

        first = ApiError("a", ApiFailure.TRANSPORT_FAILURE)
        second = ApiError("b", ApiFailure.ENVELOPE_FAILURE)
        registry.record_error(first)
        registry.record_error(second)

        assert registry.last_error is second


class TestGlobalRegistry:
    def test_default_is_created_lazily(self) -> None:
        reset_registry()
        assert get_registry() is get_registry()

    def test_set_and_reset(self) -> None:
        custom = SessionRegistry()
        set_registry(custom)
        assert get_registry() is custom
        reset_registry()
        assert get_registry() is not custom
