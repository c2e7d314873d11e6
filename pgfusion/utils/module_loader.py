"""Dotted-path import helpers used by the CLI."""

import importlib
from typing import Any

__all__ = ("import_string",)


def import_string(dotted_path: str) -> "Any":
    """Import the object designated by a dotted path.

    The longest importable module prefix of ``dotted_path`` is imported and the
    remaining segments are resolved as attributes.

    Args:
        dotted_path: The path of the object to import, e.g. ``"myapp.db.config"``.

    Raises:
        ImportError: Could not import the module or resolve an attribute.

    Returns:
        The imported object.
    """
    parts = dotted_path.split(".")
    for i in range(len(parts), 0, -1):
        module_path = ".".join(parts[:i])
        try:
            module = importlib.import_module(module_path)
            break
        except ModuleNotFoundError:
            continue
    else:
        msg = f"{dotted_path} doesn't look like a module path"
        raise ImportError(msg)

    obj: Any = module
    for attr in parts[i:]:
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"Module '{module.__name__}' has no attribute '{attr}' in '{dotted_path}'"
            raise ImportError(msg) from e
    return obj
