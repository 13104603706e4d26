"""Session registry -- the in-process store of tenant sessions.

A :class:`SessionRegistry` holds at most one
:class:`~idtenant.models.Session` per host, a pointer to the current
default session, and the most recent
:class:`~idtenant.exceptions.ApiError`. It is passed explicitly to the
authenticator, validator and invoker; :func:`get_registry` returns a
process default for callers that do not manage their own.

Registration is first-wins: connecting again to a host that already has a
session leaves the stored session in place.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from idtenant.exceptions import ApiError
from idtenant.models import Session, canonical_host

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Thread-safe store of sessions keyed by canonical host."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._current: Optional[Session] = None
        self._last_error: Optional[ApiError] = None

    def register(self, session: Session) -> bool:
        """Store *session* unless its host already has one; make it current.

        Returns:
            ``True`` if the session was stored, ``False`` if an existing
            session for the host was kept.
        """
        with self._lock:
            self._current = session
            if session.host in self._sessions:
                logger.debug("Session for %s already registered; keeping it", session.host)
                return False
            self._sessions[session.host] = session
            return True

    def get(self, host: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(canonical_host(host))

    def sessions(self) -> list[Session]:
        """All registered sessions in registration order."""
        with self._lock:
            return list(self._sessions.values())

    @property
    def current(self) -> Optional[Session]:
        """The session produced by the most recent successful connect."""
        with self._lock:
            return self._current

    @property
    def last_error(self) -> Optional[ApiError]:
        with self._lock:
            return self._last_error

    def record_error(self, err: ApiError) -> None:
        with self._lock:
            self._last_error = err

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, host: object) -> bool:
        if not isinstance(host, str):
            return False
        with self._lock:
            return canonical_host(host) in self._sessions


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    """Return the process default registry, creating it lazily."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry


def set_registry(registry: SessionRegistry) -> None:
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Drop the process default registry. Used by tests."""
    global _registry
    _registry = None
