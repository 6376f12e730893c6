"""
portalstack.core.stack — Thread-local composition context.

Each `with Resource(...)` block pushes onto the stack and pops on
exit. Leaf calls (Port, EnvVar, ...) find their parent via _current();
namespaced resources find their enclosing Namespace via _find().
"""

from __future__ import annotations

import threading
from typing import Any

_local = threading.local()


def _current_stack() -> list[Any]:
    """Return the active context stack."""
    if not hasattr(_local, "stack"):
        _local.stack = []
    return _local.stack


def _current() -> Any | None:
    """Return the innermost open context (the parent)."""
    stack = _current_stack()
    return stack[-1] if stack else None


def _find(cls: type) -> Any | None:
    """Return the innermost open context that is an instance of cls."""
    for entry in reversed(_current_stack()):
        if isinstance(entry, cls):
            return entry
    return None


def _push(entry: Any) -> None:
    _current_stack().append(entry)


def _pop() -> Any:
    return _current_stack().pop()


def _collected() -> list[Any]:
    """Resources collected by the active graph() block."""
    if not hasattr(_local, "collected"):
        _local.collected = []
    return _local.collected


def _set_collected(lst: list[Any]) -> None:
    """Replace the collected list (graph context switch)."""
    _local.collected = lst


def _reset() -> None:
    """Reset stack and collected. For testing."""
    _local.stack = []
    _local.collected = []
