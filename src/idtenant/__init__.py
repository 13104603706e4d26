"""idtenant -- sessions and authenticated API calls for identity tenants.

The package signs a user in to a cloud identity tenant (interactive
multi-factor login or SAML federation), keeps the resulting sessions in a
registry keyed by host, re-validates them on a five-minute time box, and
posts arbitrary JSON calls to the tenant's REST endpoints.

Typical workflow::

    idtenant connect acme.id.example.cloud --user jane@acme.com
    idtenant invoke UserMgmt/GetUserInfo

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and tenant profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    console: Interactive prompt collaborator used by the login flow.
"""

__version__ = "0.1.0"
