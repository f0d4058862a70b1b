"""Router import resolution — resolves ``"module:attribute"`` strings.

Shared by ``chainmux routes`` and ``chainmux run``.
"""

import importlib

from chainmux.router import Router
from chainmux.routing.mux import ServeMux


def resolve_router(import_string: str) -> Router:
    """Resolve an import string to a Router.

    Accepts ``"module:attribute"`` format. When the attribute portion is
    omitted, defaults to ``"router"`` (e.g. ``"myapp"`` resolves to
    ``myapp.router``).

    A bare ``ServeMux`` is wrapped in a Router with no middleware. Any
    other callable is treated as a factory and called with no arguments.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a Router or ServeMux.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "router"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, (Router, ServeMux)):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, ServeMux):
        return Router(obj)
    if not isinstance(obj, Router):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a chainmux.Router"
        raise TypeError(msg)
    return obj
