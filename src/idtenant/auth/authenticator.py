"""Tenant login as an explicit state machine.

:class:`Authenticator` turns a host plus credentials into a
:class:`~idtenant.models.Session`. The interactive login is a sequence of
:class:`AuthState` values; each state has one handler that performs its
request or prompt, stores what it learned on the :class:`LoginContext`
and returns the next state::

    START --(IdpRedirectUrl)--> FEDERATED ----------------------> AUTHENTICATED
      |
      +--(Challenges)--> CHALLENGE_SELECTION --> ANSWER --> ADVANCE
                              ^                               |
                              +------(StartNextChallenge)-----+
                                                              |
                                   POLLING <--(OobPending)----+
                                      |                       |
                                      +----(LoginSuccess)-----+--> AUTHENTICATED

Any failure raises :class:`~idtenant.exceptions.AuthError` and ends the
connect; nothing is registered. The first ``LoginSuccess`` ends the flow
even when the tenant listed further challenges. After a poll anything but
``LoginSuccess`` fails the connect.

No step is retried; the tenant tracks challenge progress per ``SessionId``.

Example::

    authenticator = Authenticator(registry, console=TerminalConsole())
    session = authenticator.connect(
        "acme.id.example.cloud", InteractiveCredentials(user="jane@acme.com")
    )
"""

from __future__ import annotations

import base64
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from idtenant.auth.federation import AssertionProvider, BrowserAssertionProvider, FederatedLogin
from idtenant.auth.registry import SessionRegistry
from idtenant.client.transport import TenantClient, TransportError
from idtenant.console import Console, TerminalConsole
from idtenant.exceptions import AuthError, AuthFailure, InvalidUsageError
from idtenant.models import (
    AdvanceAuthResult,
    AuthSummary,
    Challenge,
    ClientCredentials,
    CredentialSpec,
    InteractiveCredentials,
    Mechanism,
    RequestConfig,
    Session,
    StartAuthResult,
    canonical_host,
    tenant_id,
    utcnow,
)

logger = logging.getLogger(__name__)

START_PATH = "/identity/Security/StartAuthentication"
ADVANCE_PATH = "/identity/Security/AdvanceAuthentication"
PROTOCOL_VERSION = "1.0"


def encode_client_secret(client: str, password: str) -> str:
    """Return ``base64("client:password")`` for use as a Basic credential.

    Pure utility: no network call and no session.
    """
    return base64.b64encode(f"{client}:{password}".encode("utf-8")).decode("ascii")


class AuthState(str, enum.Enum):
    """States of the interactive login."""

    START = "start"
    FEDERATED = "federated"
    CHALLENGE_SELECTION = "challenge_selection"
    ANSWER = "answer"
    ADVANCE = "advance"
    POLLING = "polling"
    AUTHENTICATED = "authenticated"


@dataclass
class LoginContext:
    """Everything one login run has learned so far."""

    host: str
    user: str
    client: TenantClient
    session_id: Optional[str] = None
    challenges: list[Challenge] = field(default_factory=list)
    challenge_index: int = 0
    mechanism: Optional[Mechanism] = None
    pending: Optional[dict[str, Any]] = None
    idp_redirect_url: Optional[str] = None
    result: Optional[AdvanceAuthResult] = None
    message: Optional[str] = None

    @property
    def tenant_id(self) -> str:
        return tenant_id(self.host)

    @property
    def challenge(self) -> Challenge:
        return self.challenges[self.challenge_index]

    def base_body(self) -> dict[str, Any]:
        assert self.mechanism is not None
        return {
            "TenantId": self.tenant_id,
            "SessionId": self.session_id,
            "MechanismId": self.mechanism.mechanism_id,
        }


class Authenticator:
    """Runs the tenant login and registers the resulting session.

    Args:
        registry: Where successful sessions are registered.
        console: Prompt collaborator; a :class:`~idtenant.console.TerminalConsole`
            by default.
        request: Timeout and TLS settings for the login requests.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        assertion_provider: IdP login for federated users; defaults to
            :class:`~idtenant.auth.federation.BrowserAssertionProvider`.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        console: Optional[Console] = None,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        assertion_provider: Optional[AssertionProvider] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._console = console or TerminalConsole()
        self._request = request or RequestConfig()
        self._transport = transport
        self._assertion_provider = assertion_provider or BrowserAssertionProvider(self._console)
        self._clock = clock
        self._handlers: dict[AuthState, Callable[[LoginContext], AuthState]] = {
            AuthState.START: self._start,
            AuthState.FEDERATED: self._federated,
            AuthState.CHALLENGE_SELECTION: self._select_mechanism,
            AuthState.ANSWER: self._answer,
            AuthState.ADVANCE: self._advance,
            AuthState.POLLING: self._poll,
        }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def connect(self, host: str, credentials: CredentialSpec) -> Session:
        """Authenticate against *host* and return the new session.

        The session is registered under its host unless the registry
        already holds one for that host, and becomes the registry's current
        session either way.

        Raises:
            AuthError: On any login failure, or
                ``UNSUPPORTED_CREDENTIAL_MODE`` for client credentials.
            InvalidUsageError: If *host* is not a usable hostname.
        """
        if isinstance(credentials, ClientCredentials):
            raise AuthError(
                AuthFailure.UNSUPPORTED_CREDENTIAL_MODE,
                "OAuth2 client-credentials login is not supported; "
                "connect interactively with --user",
            )
        if not isinstance(credentials, InteractiveCredentials):
            raise InvalidUsageError(f"Unknown credential mode: {type(credentials).__name__}")

        canonical = canonical_host(host)
        if not canonical:
            raise InvalidUsageError(f"Not a tenant hostname: {host!r}")

        with TenantClient(canonical, self._request, transport=self._transport) as client:
            ctx = LoginContext(host=canonical, user=credentials.user, client=client)
            result = self.run(ctx)

        token = result.bearer_token()
        if not token:
            reason = (
                AuthFailure.FEDERATION_FAILED
                if ctx.idp_redirect_url
                else AuthFailure.CHALLENGE_FAILED
            )
            raise AuthError(reason, "Login succeeded but no bearer token was returned")

        session = Session(
            host=canonical,
            user=result.user or credentials.user,
            auth_headers={"Authorization": f"Bearer {token}"},
            started_at=self._clock(),
        )
        self._registry.register(session)
        logger.info("Authenticated %s on %s", session.user, canonical)
        return session

    def run(self, ctx: LoginContext, state: AuthState = AuthState.START) -> AdvanceAuthResult:
        """Drive *ctx* from *state* until it is authenticated."""
        while state is not AuthState.AUTHENTICATED:
            state = self.step(state, ctx)
        assert ctx.result is not None
        return ctx.result

    def step(self, state: AuthState, ctx: LoginContext) -> AuthState:
        """Run the handler for *state* and return the next state."""
        logger.debug("Login state: %s", state.value)
        return self._handlers[state](ctx)

    # ------------------------------------------------------------------ #
    # State handlers
    # ------------------------------------------------------------------ #

    def _start(self, ctx: LoginContext) -> AuthState:
        body = {"TenantId": ctx.tenant_id, "User": ctx.user, "Version": PROTOCOL_VERSION}
        try:
            envelope = ctx.client.post_envelope(START_PATH, json_body=body)
        except TransportError as exc:
            raise AuthError(AuthFailure.START_FAILED, f"Could not start authentication: {exc}") from exc
        if not envelope.success:
            raise AuthError(
                AuthFailure.START_FAILED,
                f"Authentication could not start: {envelope.message or 'no message'}",
            )
        try:
            started = StartAuthResult.model_validate(envelope.result or {})
        except ValidationError as exc:
            raise AuthError(AuthFailure.START_FAILED, f"Unexpected start result: {exc}") from exc

        if started.idp_redirect_url:
            ctx.idp_redirect_url = started.idp_redirect_url
            return AuthState.FEDERATED
        if not started.challenges:
            raise AuthError(AuthFailure.START_FAILED, "Tenant returned neither challenges nor a redirect")
        ctx.session_id = started.session_id
        ctx.challenges = started.challenges
        ctx.challenge_index = 0
        return AuthState.CHALLENGE_SELECTION

    def _federated(self, ctx: LoginContext) -> AuthState:
        assert ctx.idp_redirect_url is not None
        ctx.result = FederatedLogin(ctx.client, self._assertion_provider).run(ctx.idp_redirect_url)
        return AuthState.AUTHENTICATED

    def _select_mechanism(self, ctx: LoginContext) -> AuthState:
        position = ctx.challenge_index + 1
        mechanisms = ctx.challenge.mechanisms
        if not mechanisms:
            raise AuthError(
                AuthFailure.INVALID_SELECTION,
                f"Challenge {position} offers no authentication mechanisms",
            )
        if len(mechanisms) == 1:
            ctx.mechanism = mechanisms[0]
            return AuthState.ANSWER

        raw = self._console.choose(
            f"Select an authentication mechanism [1-{len(mechanisms)}]",
            [m.label for m in mechanisms],
        ).strip()
        if not raw:
            index = 1
        else:
            try:
                index = int(raw)
            except ValueError:
                raise AuthError(
                    AuthFailure.INVALID_SELECTION, f"Not a mechanism number: {raw!r}"
                ) from None
        if index < 1 or index > len(mechanisms):
            raise AuthError(
                AuthFailure.INVALID_SELECTION,
                f"Selection must be between 1 and {len(mechanisms)}",
            )
        ctx.mechanism = mechanisms[index - 1]
        return AuthState.ANSWER

    def _answer(self, ctx: LoginContext) -> AuthState:
        mechanism = ctx.mechanism
        assert mechanism is not None
        body = ctx.base_body()
        if mechanism.is_out_of_band:
            self._console.notify(
                mechanism.prompt_chosen or f"Approve the {mechanism.label} request to continue"
            )
            body["Action"] = "StartOOB"
        else:
            body["Action"] = "Answer"
            body["Answer"] = self._console.prompt_secret(
                mechanism.prompt_chosen or mechanism.label
            )
        ctx.pending = body
        return AuthState.ADVANCE

    def _advance(self, ctx: LoginContext) -> AuthState:
        assert ctx.pending is not None
        body, ctx.pending = ctx.pending, None
        return self._route(ctx, self._submit(ctx, body), polling=False)

    def _poll(self, ctx: LoginContext) -> AuthState:
        code = self._console.prompt_text(
            "Enter the code you received, or press Enter once approved", default=""
        ).strip()
        body = ctx.base_body()
        if code:
            body.update(Action="Answer", Answer=code)
        else:
            body["Action"] = "Poll"
        return self._route(ctx, self._submit(ctx, body), polling=True)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _submit(self, ctx: LoginContext, body: dict[str, Any]) -> AdvanceAuthResult:
        logger.debug("AdvanceAuthentication action=%s", body.get("Action"))
        try:
            envelope = ctx.client.post_envelope(ADVANCE_PATH, json_body=body)
        except TransportError as exc:
            raise AuthError(AuthFailure.CHALLENGE_FAILED, f"Challenge request failed: {exc}") from exc
        if not envelope.success:
            raise AuthError(
                AuthFailure.CHALLENGE_FAILED,
                f"Challenge failed: {envelope.message or 'no message'}",
            )
        ctx.message = envelope.message
        try:
            return AdvanceAuthResult.model_validate(envelope.result or {})
        except ValidationError as exc:
            raise AuthError(AuthFailure.CHALLENGE_FAILED, f"Unexpected challenge result: {exc}") from exc

    def _route(self, ctx: LoginContext, result: AdvanceAuthResult, polling: bool) -> AuthState:
        summary = result.summary
        if summary == AuthSummary.LOGIN_SUCCESS.value:
            ctx.result = result
            return AuthState.AUTHENTICATED
        if polling:
            raise AuthError(
                AuthFailure.CHALLENGE_FAILED,
                _incomplete(summary, ctx.message, "out-of-band approval"),
            )
        if summary == AuthSummary.OOB_PENDING.value:
            return AuthState.POLLING
        if (
            summary == AuthSummary.START_NEXT_CHALLENGE.value
            and ctx.challenge_index + 1 < len(ctx.challenges)
        ):
            ctx.challenge_index += 1
            ctx.mechanism = None
            return AuthState.CHALLENGE_SELECTION
        raise AuthError(AuthFailure.CHALLENGE_FAILED, _incomplete(summary, ctx.message))


def _incomplete(
    summary: Optional[str], message: Optional[str], step: str = "authentication"
) -> str:
    text = f"The {step} did not complete (status: {summary or 'none'})"
    if message:
        text += f": {message}"
    return text
