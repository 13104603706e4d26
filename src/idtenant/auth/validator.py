"""Time-boxed session liveness check.

:class:`SessionValidator` is the gate every API call passes through. A
session validated within the last :data:`VALIDATION_WINDOW` is trusted
without a request; otherwise a lightweight "who am I" call is made with the
session's headers. Failure means the caller must connect again: the
validator never logs in on its own.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx

from idtenant.client.transport import TenantClient, TransportError
from idtenant.exceptions import AuthError, AuthFailure
from idtenant.models import RequestConfig, Session, utcnow

logger = logging.getLogger(__name__)

VALIDATION_WINDOW = timedelta(minutes=5)
"""How long a successful validation is trusted. Fixed, not configurable."""

WHOAMI_PATH = "/identity/UserMgmt/GetUserInfo"


class SessionValidator:
    """Confirms that a session is still accepted by its tenant.

    Args:
        request: Timeout, TLS and retry settings; ``max_retries`` applies to
            network failures of the liveness call.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._request = request or RequestConfig()
        self._transport = transport
        self._clock = clock

    def needs_check(self, session: Session) -> bool:
        """Whether *session* is outside the validation window."""
        if session.last_validated_at is None:
            return True
        return self._clock() - session.last_validated_at >= VALIDATION_WINDOW

    def ensure_valid(self, session: Optional[Session]) -> None:
        """Return if *session* is usable, updating ``last_validated_at`` after a check.

        Raises:
            AuthError: ``NO_SESSION`` when *session* is ``None`` or carries no
                bearer credential; ``EXPIRED`` when the tenant rejects it.
        """
        if session is None:
            raise AuthError(AuthFailure.NO_SESSION, "No session; run 'idtenant connect' first")
        if not session.has_bearer():
            raise AuthError(
                AuthFailure.NO_SESSION,
                f"Session for {session.host} has no bearer credential; run 'idtenant connect' again",
            )
        if not self.needs_check(session):
            return

        logger.debug("Validating session for %s", session.host)
        try:
            with TenantClient(
                session.host,
                self._request,
                headers=session.auth_headers,
                transport=self._transport,
            ) as client:
                envelope = client.post_envelope(WHOAMI_PATH, retries=self._request.max_retries)
        except TransportError as exc:
            raise self._expired(session, str(exc)) from exc
        if not envelope.success:
            raise self._expired(session, envelope.message or "rejected by tenant")

        session.last_validated_at = self._clock()

    @staticmethod
    def _expired(session: Session, detail: str) -> AuthError:
        return AuthError(
            AuthFailure.EXPIRED,
            f"Session for {session.host} is no longer valid ({detail}); "
            f"run 'idtenant connect {session.host}' again",
        )
