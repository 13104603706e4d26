"""Blocking HTTP transport for one tenant host.

:class:`TenantClient` wraps :class:`httpx.Client` and adds what every tenant
call needs:

- **Base URL and headers** -- ``https://<host>`` plus the native-client
  header the identity endpoints expect, merged with per-call headers.
- **Explicit timeouts** -- every request is bounded by
  :attr:`~idtenant.models.RequestConfig.timeout`.
- **Envelope decoding** -- :meth:`post_envelope` turns a response into an
  :class:`~idtenant.models.Envelope` or raises :class:`TransportError`.
- **Bounded retry** -- opt-in per call, only for network-level failures.
  Callers use it for idempotent reads; the login flow never does.

The client keeps one cookie jar for its lifetime, which the federated
login relies on between its redirect, assertion and sign-in steps.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from idtenant.models import Envelope, RequestConfig

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10
"""Upper bound on redirects followed for any single request."""

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "X-IDAP-NATIVE-CLIENT": "true",
}


class TransportError(Exception):
    """A request could not produce a decodable tenant envelope.

    Args:
        message: What went wrong.
        response: The HTTP response, when one was received.
        raw: The decoded body (JSON value or text), when one was received.
    """

    def __init__(
        self,
        message: str,
        response: Optional[httpx.Response] = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message)
        self.response = response
        self.raw = raw


class TenantClient:
    """Synchronous HTTP client bound to one tenant host.

    Must be used as a context manager so the underlying connection pool is
    opened and closed.

    Args:
        host: Canonical tenant hostname.
        request: Timeout, TLS verification and retry settings.
        headers: Headers sent with every request (e.g. the bearer token).
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.

    Example::

        with TenantClient("acme.id.example.cloud", RequestConfig()) as client:
            envelope = client.post_envelope("/identity/Security/StartAuthentication", json_body={...})
    """

    def __init__(
        self,
        host: str,
        request: RequestConfig,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._host = host
        self._request = request
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def base_url(self) -> str:
        return f"https://{self._host}"

    def __enter__(self) -> TenantClient:
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self._request.timeout,
            verify=self._request.verify_ssl,
            max_redirects=MAX_REDIRECTS,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def post_envelope(
        self,
        path: str,
        json_body: Any = None,
        content: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        retries: int = 0,
    ) -> Envelope:
        """POST JSON to *path* and decode the tenant envelope.

        Either *json_body* (serialised by httpx) or *content* (a raw JSON
        string, sent as-is) is used as the body.

        Args:
            path: Path relative to the host, or an absolute URL.
            json_body: JSON-serialisable body.
            content: Raw JSON string body; may be empty.
            headers: Extra headers for this call only.
            retries: Extra attempts allowed on network-level failures.

        Raises:
            TransportError: On network failure, an HTTP error status without
                an envelope body, or a body that is not an envelope.
        """
        merged = {"Content-Type": "application/json", **(headers or {})}
        kwargs: dict[str, Any] = {"headers": merged}
        if json_body is not None:
            kwargs["json"] = json_body
        else:
            kwargs["content"] = content or ""

        response = self._send("POST", path, retries=retries, **kwargs)
        return self._decode_envelope(response)

    def post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        """POST a form body to *url*, following redirects."""
        return self._send("POST", url, data=data, follow_redirects=True)

    def get(self, url: str) -> httpx.Response:
        """GET *url*, following up to :data:`MAX_REDIRECTS` redirects."""
        return self._send("GET", url, follow_redirects=True)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, method: str, url: str, retries: int = 0, **kwargs: Any) -> httpx.Response:
        assert self._client is not None, "Client not initialised -- use as context manager"

        for attempt in range(retries + 1):
            try:
                return self._client.request(method, url, **kwargs)
            except httpx.TooManyRedirects as exc:
                raise TransportError(f"{method} {url}: more than {MAX_REDIRECTS} redirects") from exc
            except httpx.TransportError as exc:
                if attempt < retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "%s %s failed (%s), retrying in %ss (attempt %d/%d)",
                        method, url, exc, delay, attempt + 1, retries,
                    )
                    time.sleep(delay)
                    continue
                raise TransportError(f"{method} {url} failed: {exc}") from exc
            except httpx.RequestError as exc:
                raise TransportError(f"{method} {url} failed: {exc}") from exc
        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _decode_envelope(response: httpx.Response) -> Envelope:
        try:
            raw: Any = response.json()
        except ValueError:
            raw = response.text
        if not isinstance(raw, dict):
            raise TransportError(
                f"HTTP {response.status_code}: expected a JSON envelope",
                response=response,
                raw=raw,
            )
        try:
            return Envelope.model_validate(raw)
        except ValidationError as exc:
            raise TransportError(
                f"HTTP {response.status_code}: malformed envelope: {exc}",
                response=response,
                raw=raw,
            ) from exc
