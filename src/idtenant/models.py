"""Canonical Pydantic models shared across all idtenant modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`SessionsConfig`,
    :class:`ExtensionsConfig`, :class:`GlobalConfig`, and
    :class:`TenantProfile`.

**Session models** -- the authenticated relationship to a tenant and the
credential modes accepted by the login flow:
    :class:`Session`, :class:`InteractiveCredentials`, and
    :class:`ClientCredentials`.

**Wire models** -- the tenant's response shapes:
    :class:`Envelope`, :class:`Mechanism`, :class:`Challenge`,
    :class:`StartAuthResult`, and :class:`AdvanceAuthResult`.

Wire models keep the tenant's PascalCase keys as aliases and allow extra
fields, since the tenant adds keys freely and the core must not drop them.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


def canonical_host(value: str) -> str:
    """Normalise a tenant address to a bare lower-case hostname.

    Accepts ``acme.id.example.cloud``, ``https://ACME.id.example.cloud/``
    or ``acme.id.example.cloud/identity`` and returns
    ``acme.id.example.cloud`` for each.
    """
    value = value.strip()
    if "://" not in value:
        value = f"https://{value}"
    host = urlparse(value).hostname or ""
    return host.lower()


def tenant_id(host: str) -> str:
    """Return the tenant identifier: the first DNS label of *host*."""
    return canonical_host(host).split(".", 1)[0]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Config ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call made against a tenant."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=1,
        description="Retries for the idempotent session liveness check only",
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(default="auto", description="Output format: auto, json, plain, rich")


class SessionsConfig(BaseModel):
    """Whether sessions survive between CLI invocations."""

    persist: bool = Field(
        default=True, description="Cache sessions on disk so later commands reuse them"
    )


class ExtensionsConfig(BaseModel):
    """Explicit extension allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/idtenant/config.json``."""

    default_profile: Optional[str] = None
    output: OutputConfig = Field(default_factory=OutputConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    extensions: ExtensionsConfig = Field(default_factory=ExtensionsConfig)


class TenantProfile(BaseModel):
    """A named tenant target stored under the ``profiles/`` config directory."""

    model_config = ConfigDict(extra="allow")

    name: str
    host: str = Field(description="Tenant hostname, e.g. acme.id.example.cloud")
    user: Optional[str] = Field(default=None, description="Default login name")
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Sessions ---


class Session(BaseModel):
    """One authenticated relationship to a tenant host.

    ``host`` is the identity key. ``auth_headers`` carries the bearer
    credential; it is opaque to everything except the HTTP layer.
    ``last_validated_at`` is only ever moved forward by
    :class:`~idtenant.auth.validator.SessionValidator`.
    """

    host: str
    user: Optional[str] = None
    auth_headers: dict[str, str] = Field(default_factory=dict)
    started_at: datetime
    last_validated_at: Optional[datetime] = None

    @field_validator("started_at", "last_validated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    def has_bearer(self) -> bool:
        value = self.auth_headers.get("Authorization", "")
        return value.startswith("Bearer ") and len(value) > len("Bearer ")


class InteractiveCredentials(BaseModel):
    """Sign in as *user*, answering whatever challenges the tenant issues."""

    user: str


class ClientCredentials(BaseModel):
    """OAuth2 client-credentials login. Not supported by the tenant flow."""

    client_id: str
    scope: str
    secret: str = Field(repr=False)


CredentialSpec = Union[InteractiveCredentials, ClientCredentials]


# --- Wire ---


class Envelope(BaseModel):
    """The ``{Success, Result, Message}`` wrapper of every tenant response."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    success: bool = Field(default=False, alias="Success")
    result: Any = Field(default=None, alias="Result")
    message: Optional[str] = Field(default=None, alias="Message")
    error_code: Any = Field(default=None, alias="ErrorCode")
    error_id: Any = Field(default=None, alias="ErrorID")


class AnswerType(str, enum.Enum):
    """Known answer types. Unrecognised values are kept as plain strings."""

    TEXT = "Text"
    START_OOB = "StartOob"
    START_TEXT_OOB = "StartTextOob"

    @property
    def is_out_of_band(self) -> bool:
        return self is not AnswerType.TEXT


class Mechanism(BaseModel):
    """One way to satisfy a challenge (password prompt, push, email link...)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    mechanism_id: str = Field(alias="MechanismId")
    name: Optional[str] = Field(default=None, alias="Name")
    answer_type: Union[AnswerType, str] = Field(
        default=AnswerType.TEXT, alias="AnswerType", union_mode="left_to_right"
    )
    prompt_select: Optional[str] = Field(default=None, alias="PromptSelectMech")
    prompt_chosen: Optional[str] = Field(default=None, alias="PromptMechChosen")

    @property
    def label(self) -> str:
        return self.prompt_select or self.name or self.mechanism_id

    @property
    def is_out_of_band(self) -> bool:
        """Anything but ``Text``, including answer types added by the tenant later."""
        return self.answer_type != AnswerType.TEXT


class Challenge(BaseModel):
    """A required authentication factor: pick one of its mechanisms."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    mechanisms: list[Mechanism] = Field(default_factory=list, alias="Mechanisms")


class StartAuthResult(BaseModel):
    """``Result`` of ``Security/StartAuthentication``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="SessionId")
    challenges: list[Challenge] = Field(default_factory=list, alias="Challenges")
    idp_redirect_url: Optional[str] = Field(default=None, alias="IdpRedirectUrl")


class AuthSummary(str, enum.Enum):
    """``Summary`` values of ``Security/AdvanceAuthentication``."""

    LOGIN_SUCCESS = "LoginSuccess"
    OOB_PENDING = "OobPending"
    START_NEXT_CHALLENGE = "StartNextChallenge"


class AdvanceAuthResult(BaseModel):
    """``Result`` of ``Security/AdvanceAuthentication``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: Optional[str] = Field(default=None, alias="Summary")
    token: Optional[str] = Field(default=None, alias="Token")
    oauth_tokens: Optional[dict[str, Any]] = Field(default=None, alias="OAuthTokens")
    user: Optional[str] = Field(default=None, alias="User")

    def bearer_token(self) -> Optional[str]:
        """Return the access token, preferring the OAuth token payload."""
        if self.oauth_tokens and self.oauth_tokens.get("access_token"):
            return self.oauth_tokens["access_token"]
        return self.token or None
