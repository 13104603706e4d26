"""Federated (SAML) login sub-flow.

When ``StartAuthentication`` answers with an ``IdpRedirectUrl`` the user
belongs to an external identity provider. The flow is:

1. GET the redirect URL (at most 10 redirects). The final URL is the IdP
   login page; its ``RelayState`` query parameter is kept.
2. An :class:`AssertionProvider` runs the interactive IdP login and hands
   back the base64 SAML assertion (``SAMLResponse``).
3. POST ``SAMLResponse`` + ``RelayState`` to the tenant's
   assertion-consumer endpoint and scrape ``code``, ``state`` and ``iss``
   from the hidden inputs of the returned form.
4. POST those three fields to ``signin-oidc``.
5. POST ``Security/BrowserIdentity`` and read the access token.

Every step must succeed; any miss raises
``AuthError(FEDERATION_FAILED)``. All steps share one
:class:`~idtenant.client.transport.TenantClient` so cookies set along the
way are replayed.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Optional, Protocol
from urllib.parse import parse_qs, urlparse

import httpx
from pydantic import ValidationError

from idtenant.auth.html_fields import extract_hidden_fields
from idtenant.client.transport import TenantClient, TransportError
from idtenant.console import Console
from idtenant.exceptions import AuthError, AuthFailure
from idtenant.models import AdvanceAuthResult

logger = logging.getLogger(__name__)

ASSERTION_CONSUMER_PATH = "/identity-federation/saml/assertion-consumer"
SIGNIN_OIDC_PATH = "/identity/signin-oidc"
BROWSER_IDENTITY_PATH = "/identity/Security/BrowserIdentity"

OIDC_FIELDS = ("code", "state", "iss")


class AssertionProvider(Protocol):
    """Runs the IdP's interactive login and returns the SAML assertion."""

    def get_assertion(self, login_url: str) -> str: ...


class BrowserAssertionProvider:
    """Open the IdP login page in the system browser and collect the assertion.

    The IdP posts the assertion to the tenant from the user's browser, so
    the user copies the ``SAMLResponse`` form value (browser developer
    tools, or a SAML tracer extension) and pastes it at the masked prompt.

    Args:
        console: Prompt collaborator.
        open_browser: Callable used to open the URL, ``webbrowser.open`` by
            default.
    """

    def __init__(
        self,
        console: Console,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._console = console
        self._open_browser = open_browser

    def get_assertion(self, login_url: str) -> str:
        self._console.notify("Complete the sign-in with your identity provider in the browser.")
        if not self._open_browser(login_url):
            self._console.notify(f"Open this URL to sign in: {login_url}")
        value = self._console.prompt_secret("Paste the SAMLResponse value").strip()
        if not value:
            raise AuthError(AuthFailure.FEDERATION_FAILED, "No SAML assertion was provided")
        return value


def scrape_oidc_fields(html: str) -> dict[str, str]:
    """Return ``{code, state, iss}`` from the assertion-consumer response.

    Raises:
        AuthError: ``FEDERATION_FAILED`` if any of the three is missing.
    """
    hidden = extract_hidden_fields(html)
    missing = [name for name in OIDC_FIELDS if not hidden.get(name)]
    if missing:
        raise AuthError(
            AuthFailure.FEDERATION_FAILED,
            f"Federated sign-in response is missing {', '.join(missing)}",
        )
    return {name: hidden[name] for name in OIDC_FIELDS}


def relay_state_from(url: str) -> Optional[str]:
    values = parse_qs(urlparse(url).query).get("RelayState")
    return values[0] if values else None


class FederatedLogin:
    """Drive the SAML federation steps against one tenant.

    Args:
        client: Open client for the tenant; its cookie jar is shared by all
            steps.
        assertion_provider: Interactive IdP login.
    """

    def __init__(self, client: TenantClient, assertion_provider: AssertionProvider) -> None:
        self._client = client
        self._assertion_provider = assertion_provider

    def run(self, redirect_url: str) -> AdvanceAuthResult:
        """Complete the federated login and return the browser identity result.

        Raises:
            AuthError: ``FEDERATION_FAILED`` on any failed or incomplete step.
        """
        redirect = self._expect_ok(lambda: self._client.get(redirect_url), "IdP redirect")
        login_url = str(redirect.url)
        relay_state = relay_state_from(login_url)
        if not relay_state:
            raise AuthError(
                AuthFailure.FEDERATION_FAILED,
                "IdP login URL carries no RelayState",
            )
        logger.debug("Federated login via %s", urlparse(login_url).netloc)

        assertion = self._assertion_provider.get_assertion(login_url)

        consumer = self._expect_ok(
            lambda: self._client.post_form(
                ASSERTION_CONSUMER_PATH,
                {"SAMLResponse": assertion, "RelayState": relay_state},
            ),
            "assertion consumer",
        )
        fields = scrape_oidc_fields(consumer.text)

        self._expect_ok(lambda: self._client.post_form(SIGNIN_OIDC_PATH, fields), "OIDC sign-in")

        try:
            envelope = self._client.post_envelope(BROWSER_IDENTITY_PATH, json_body={})
        except TransportError as exc:
            raise AuthError(
                AuthFailure.FEDERATION_FAILED, f"Browser identity request failed: {exc}"
            ) from exc
        if not envelope.success:
            raise AuthError(
                AuthFailure.FEDERATION_FAILED,
                f"Browser identity was refused: {envelope.message or 'no message'}",
            )
        try:
            result = AdvanceAuthResult.model_validate(envelope.result or {})
        except ValidationError as exc:
            raise AuthError(
                AuthFailure.FEDERATION_FAILED, f"Unexpected browser identity result: {exc}"
            ) from exc
        if not result.bearer_token():
            raise AuthError(
                AuthFailure.FEDERATION_FAILED, "Browser identity returned no access token"
            )
        return result

    @staticmethod
    def _expect_ok(send: Callable[[], httpx.Response], step: str) -> httpx.Response:
        try:
            response = send()
        except TransportError as exc:
            raise AuthError(AuthFailure.FEDERATION_FAILED, f"{step} failed: {exc}") from exc
        if response.status_code != 200:
            raise AuthError(
                AuthFailure.FEDERATION_FAILED,
                f"{step} returned HTTP {response.status_code}",
            )
        return response
