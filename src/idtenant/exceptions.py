"""Exception hierarchy for idtenant.

All exceptions inherit from :class:`IdTenantError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`idtenant.exit_codes`.
The top-level handler in :func:`idtenant.app.main` catches ``IdTenantError``
and exits with that code, while unexpected exceptions produce a crash log.

Subclass hierarchy::

    IdTenantError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- ApiError            (exit 5)
    +-- ConfigError         (exit 1)
    +-- ExtensionError      (exit 10)
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from idtenant.exit_codes import (
    EXIT_API_FAILURE,
    EXIT_AUTH_FAILURE,
    EXIT_EXTENSION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class IdTenantError(Exception):
    """Base exception for all idtenant errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(IdTenantError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthFailure(str, enum.Enum):
    """Why a login or session check failed."""

    START_FAILED = "start_failed"
    FEDERATION_FAILED = "federation_failed"
    INVALID_SELECTION = "invalid_selection"
    CHALLENGE_FAILED = "challenge_failed"
    NO_SESSION = "no_session"
    EXPIRED = "expired"
    UNSUPPORTED_CREDENTIAL_MODE = "unsupported_credential_mode"


class AuthError(IdTenantError):
    """Raised when a login step fails or no usable session exists.

    Every failure inside the login flow is terminal for that
    :meth:`~idtenant.auth.authenticator.Authenticator.connect` call; the
    ``reason`` tells callers (and tests) which branch gave up.

    Args:
        reason: The :class:`AuthFailure` category.
        message: Human-readable description, including the tenant's own
            message text when one was returned.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, reason: AuthFailure, message: str):
        super().__init__(message)
        self.reason = reason


class ApiFailure(str, enum.Enum):
    """Whether an API call failed on the wire or in the envelope."""

    TRANSPORT_FAILURE = "transport_failure"
    ENVELOPE_FAILURE = "envelope_failure"


class ApiError(IdTenantError):
    """Structured record of a failed tenant API call.

    Raised by :class:`~idtenant.client.invoker.ApiInvoker` after it has been
    stored as the registry's ``last_error``. All context is passed in at
    construction and the instance is not modified afterwards.

    Args:
        message: Human-readable summary.
        kind: :class:`ApiFailure` category.
        call: The logical call name (URL path) that failed.
        payload: The raw JSON payload that was sent. Callers should pass
            it unmodified; :meth:`to_dict` masks secrets before display.
        raw_response: Whatever the tenant answered, if anything.
        cause: The underlying exception, if any.
        occurred_at: When the failure happened (defaults to now, UTC).
    """

    exit_code = EXIT_API_FAILURE

    def __init__(
        self,
        message: str,
        kind: ApiFailure,
        call: Optional[str] = None,
        payload: Optional[str] = None,
        raw_response: Any = None,
        cause: Optional[BaseException] = None,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.call = call
        self.payload = payload
        self.raw_response = raw_response
        self.cause = cause
        self.occurred_at = occurred_at or datetime.now(timezone.utc)

    @property
    def cause_detail(self) -> Optional[str]:
        """Describe the wrapped exception as ``Type: message``."""
        if self.cause is None:
            return None
        return f"{type(self.cause).__name__}: {self.cause}"

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable view with secrets masked."""
        from idtenant.redact import excerpt

        return {
            "message": self.message,
            "kind": self.kind.value,
            "occurred_at": self.occurred_at.isoformat(),
            "call": self.call,
            "payload": excerpt(self.payload) if self.payload else self.payload,
            "raw_response": self.raw_response,
            "cause": self.cause_detail,
        }


class ConfigError(IdTenantError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class ExtensionError(IdTenantError):
    """Raised when an extension fails to load or register its commands."""

    exit_code = EXIT_EXTENSION_ERROR
