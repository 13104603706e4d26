"""On-disk cache of tenant sessions, one file per host.

Each CLI command runs in its own process, so the in-memory
:class:`~idtenant.auth.registry.SessionRegistry` starts empty every time.
:class:`SessionCache` keeps sessions in
``~/.local/share/idtenant/sessions/<host>.json`` (XDG) so ``invoke`` can
pick up what ``connect`` established, and write back the refreshed
``last_validated_at`` so the validation window spans invocations.

The most recent failed call is kept next to them in ``last_error.json``.

Files are written atomically with ``0o600`` permissions; they hold bearer
tokens.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from idtenant.auth.registry import SessionRegistry
from idtenant.config import atomic_write, get_data_dir
from idtenant.exceptions import ApiError
from idtenant.models import Session, canonical_host

logger = logging.getLogger(__name__)

_LAST_ERROR_FILENAME = "last_error.json"


def _sessions_dir() -> Path:
    path = get_data_dir() / "sessions"
    path.mkdir(parents=True, exist_ok=True)
    return path


class SessionCache:
    """Read/write cached sessions.

    Example::

        cache = SessionCache()
        cache.save(session)
        assert cache.load("acme.id.example.cloud") == session
    """

    def __init__(self) -> None:
        self._dir = _sessions_dir()

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, host: str) -> Path:
        return self._dir / f"{canonical_host(host)}.json"

    def save(self, session: Session) -> None:
        text = json.dumps(session.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self.path_for(session.host), text, mode=0o600)

    def load(self, host: str) -> Optional[Session]:
        """Return the cached session for *host*, or ``None`` if absent or unreadable."""
        path = self.path_for(host)
        if not path.is_file():
            return None
        try:
            return Session.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            logger.warning("Ignoring unreadable session cache %s: %s", path, exc)
            return None

    def hosts(self) -> list[str]:
        return sorted(p.stem for p in self._dir.glob("*.json") if p.is_file())

    def load_all(self) -> list[Session]:
        sessions = (self.load(host) for host in self.hosts())
        return [s for s in sessions if s is not None]

    def clear(self, host: Optional[str] = None) -> int:
        """Delete the cached session for *host*, or all of them. Returns the count removed."""
        paths = [self.path_for(host)] if host else list(self._dir.glob("*.json"))
        removed = 0
        for path in paths:
            if path.is_file():
                path.unlink()
                removed += 1
        return removed

    def hydrate(self, registry: SessionRegistry, host: Optional[str] = None) -> Optional[Session]:
        """Register cached sessions (one host, or all) and return the one for *host*.

        Without *host* the sessions are registered oldest first, so the most
        recently connected one ends up as the registry's current session.
        """
        if host:
            session = self.load(host)
            if session is not None:
                registry.register(session)
            return registry.get(host)
        for session in sorted(self.load_all(), key=lambda s: s.started_at):
            registry.register(session)
        return registry.current

    # ------------------------------------------------------------------ #
    # Last error
    # ------------------------------------------------------------------ #

    def save_last_error(self, err: ApiError) -> None:
        text = json.dumps(err.to_dict(), indent=2, default=str) + "\n"
        atomic_write(get_data_dir() / _LAST_ERROR_FILENAME, text, mode=0o600)

    def load_last_error(self) -> Optional[dict[str, Any]]:
        path = get_data_dir() / _LAST_ERROR_FILENAME
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return None
