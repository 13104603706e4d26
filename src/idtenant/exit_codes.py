"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant is referenced by the matching
:class:`~idtenant.exceptions.IdTenantError` subclass so that shell wrappers
can tell a rejected login from a failed API call without parsing stderr.

Example::

    $ idtenant invoke Redrock/query --body '{}'
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the session expired, connect again
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Login failed, or no usable session exists for the tenant."""

EXIT_API_FAILURE = 5
"""The tenant rejected the call or could not be reached."""

EXIT_EXTENSION_ERROR = 10
"""An extension failed to load or register."""

EXIT_CANCELLED = 130
"""The user interrupted the command (Ctrl-C)."""
