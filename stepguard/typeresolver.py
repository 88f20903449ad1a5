from __future__ import annotations
import builtins
import importlib
from typing import Dict, Optional, Type

from .errors import TypeResolutionError


def resolve_exception_type(name: str, registry: Optional[Dict[str, type]] = None) -> Type[BaseException]:
    """Resolve ``name`` to an exception class.

    Lookup order: the given registry, builtins, then a dotted import path
    such as ``package.module.ClassName``.
    """
    candidate = None
    if registry and name in registry:
        candidate = registry[name]
    elif hasattr(builtins, name):
        candidate = getattr(builtins, name)
    elif "." in name:
        module_name, _, attr = name.rpartition(".")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise TypeResolutionError(f"Cannot import module '{module_name}' for type '{name}'") from e
        candidate = getattr(module, attr, None)

    if candidate is None:
        raise TypeResolutionError(f"Unknown exception type '{name}'")
    if not (isinstance(candidate, type) and issubclass(candidate, BaseException)):
        raise TypeResolutionError(f"'{name}' is not an exception type")
    return candidate
