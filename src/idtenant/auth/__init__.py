"""Tenant login, session registry and session validation.

The main entry points are:

- :class:`Authenticator` -- runs the login state machine for one host and
  registers the resulting :class:`~idtenant.models.Session`.
- :class:`SessionRegistry` -- sessions keyed by host, the current session
  and the last API error; :func:`get_registry` returns the process default.
- :class:`SessionValidator` -- the five-minute debounced liveness gate.
- :class:`SessionCache` -- sessions persisted between CLI invocations.

Typical usage::

    from idtenant.auth import Authenticator, get_registry
    from idtenant.models import InteractiveCredentials

    session = Authenticator(get_registry()).connect(
        "acme.id.example.cloud", InteractiveCredentials(user="jane@acme.com")
    )
"""

from idtenant.auth.authenticator import AuthState, Authenticator, LoginContext, encode_client_secret
from idtenant.auth.registry import SessionRegistry, get_registry, reset_registry, set_registry
from idtenant.auth.session_cache import SessionCache
from idtenant.auth.validator import VALIDATION_WINDOW, SessionValidator

__all__ = [
    "AuthState",
    "Authenticator",
    "LoginContext",
    "SessionCache",
    "SessionRegistry",
    "SessionValidator",
    "VALIDATION_WINDOW",
    "encode_client_secret",
    "get_registry",
    "reset_registry",
    "set_registry",
]
