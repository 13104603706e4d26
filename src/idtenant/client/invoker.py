"""Authenticated tenant API calls.

:class:`ApiInvoker` is the only way business calls reach a tenant. Each
call passes :class:`~idtenant.auth.validator.SessionValidator` first, then
POSTs the caller's raw JSON to ``https://<host>/<call>`` with the session's
headers. The envelope's ``Result`` is returned untouched; failures become
an :class:`~idtenant.exceptions.ApiError` that is recorded as the
registry's ``last_error`` before it is raised.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from idtenant.auth.registry import SessionRegistry
from idtenant.auth.validator import SessionValidator
from idtenant.client.transport import TenantClient, TransportError
from idtenant.exceptions import ApiError, ApiFailure
from idtenant.models import RequestConfig, Session
from idtenant.redact import excerpt

logger = logging.getLogger(__name__)


class ApiInvoker:
    """Posts JSON calls on behalf of a validated session.

    Args:
        registry: Receives the most recent :class:`ApiError`.
        validator: The session gate; built from *request* and *transport*
            when omitted.
        request: Timeout and TLS settings for the call itself.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).

    Example::

        invoker = ApiInvoker(registry)
        users = invoker.invoke(session, "CDirectoryService/GetUsers", "{}")
    """

    def __init__(
        self,
        registry: SessionRegistry,
        validator: Optional[SessionValidator] = None,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._registry = registry
        self._request = request or RequestConfig()
        self._transport = transport
        self._validator = validator or SessionValidator(self._request, transport=transport)

    def invoke(self, session: Optional[Session], call: str, payload: Optional[str] = None) -> Any:
        """POST *payload* to *call* and return the envelope's ``Result``.

        Args:
            session: The session to call with.
            call: Path relative to the tenant root, e.g. ``Redrock/query``.
            payload: Raw JSON string body; ``None`` or empty sends no body.

        Raises:
            AuthError: From the validator, unchanged.
            ApiError: On transport failure or an unsuccessful envelope.
        """
        self._validator.ensure_valid(session)
        assert session is not None

        path = "/" + call.lstrip("/")
        logger.debug("POST %s%s body=%s", session.base_url, path, excerpt(payload))
        try:
            with TenantClient(
                session.host,
                self._request,
                headers=session.auth_headers,
                transport=self._transport,
            ) as client:
                envelope = client.post_envelope(path, content=payload or "")
        except TransportError as exc:
            raise self._fail(
                ApiError(
                    f"{call} failed: {exc}",
                    ApiFailure.TRANSPORT_FAILURE,
                    call=call,
                    payload=payload,
                    raw_response=exc.raw,
                    cause=exc,
                )
            ) from exc

        if not envelope.success:
            raise self._fail(
                ApiError(
                    f"{call} was rejected: {envelope.message or 'no message'}",
                    ApiFailure.ENVELOPE_FAILURE,
                    call=call,
                    payload=payload,
                    raw_response=envelope.model_dump(by_alias=True),
                )
            )
        return envelope.result

    def _fail(self, err: ApiError) -> ApiError:
        self._registry.record_error(err)
        logger.debug("%s (payload: %s)", err.message, excerpt(err.payload))
        return err
