"""Built-in CLI sub-commands for idtenant.

* :mod:`~idtenant.commands.connect` -- ``connect`` and ``encode``.
* :mod:`~idtenant.commands.invoke` -- ``invoke`` and ``last-error``.
* :mod:`~idtenant.commands.sessions` -- inspect and clear cached sessions.
* :mod:`~idtenant.commands.profile` -- manage named tenant profiles.
* :mod:`~idtenant.commands.extensions` -- list installed extensions.

Groups export a :class:`typer.Typer` sub-application; single commands are
plain callbacks registered on the root app in :func:`idtenant.app.main`.
"""
