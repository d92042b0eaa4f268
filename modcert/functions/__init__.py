"""Callable functions exposed by the backend.

Importing this package registers every callable with the registry.
"""

from modcert.functions import catalog, notes, users  # noqa: F401
from modcert.functions.registry import Services, callable_function, invoke, list_functions

__all__ = ["Services", "callable_function", "invoke", "list_functions"]
