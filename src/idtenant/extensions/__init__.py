"""Extension system for idtenant.

Third-party packages add commands or helper functions by declaring an
entry point in the ``idtenant.extensions`` group.

* :class:`Extension` -- abstract base class every extension extends.
* :class:`ExtensionKind` -- ``command`` or ``function``.
* :class:`ExtensionManager` -- discovery, filtering and registration.
"""

from idtenant.extensions.base import Extension, ExtensionKind
from idtenant.extensions.manager import ENTRY_POINT_GROUP, ExtensionManager

__all__ = ["ENTRY_POINT_GROUP", "Extension", "ExtensionKind", "ExtensionManager"]
