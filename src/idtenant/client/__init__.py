"""HTTP layer for talking to a tenant.

- :class:`TenantClient` -- a thin :class:`httpx.Client` wrapper that posts
  JSON and decodes the ``{Success, Result, Message}`` envelope.
- :class:`ApiInvoker` -- validated, authenticated calls on behalf of a
  :class:`~idtenant.models.Session`.
"""

from idtenant.client.invoker import ApiInvoker
from idtenant.client.transport import TenantClient, TransportError

__all__ = ["ApiInvoker", "TenantClient", "TransportError"]
