"""Execution of unit source text against a shared scope."""

from __future__ import annotations

import builtins
import logging
from collections.abc import Mapping
from typing import Any
from typing import Protocol

logger = logging.getLogger(__name__)


class UnitExecutor(Protocol):
    """Protocol for running unit source text synchronously."""

    def execute(self, source: str, location: str, bindings: Mapping[str, Any]) -> None:
        """Run ``source`` in the shared scope with ``bindings`` visible while it runs."""
        ...


class ScopeExecutor:
    """Run every unit with ``exec`` directly in one live shared scope.

    Load-specific bindings (define, exports, module, require, __name__,
    __file__) are installed just before ``exec`` and the previous values are
    restored right after. Execution is synchronous, so no other load can
    observe another unit's bindings. Everything else a unit binds at top level
    stays in the scope, and functions defined by units look up free names in
    that scope when they are called.
    """

    def __init__(self, scope: dict[str, Any] | None = None) -> None:
        self.scope: dict[str, Any] = scope if scope is not None else {}
        self.scope.setdefault("__builtins__", builtins)

    def execute(self, source: str, location: str, bindings: Mapping[str, Any]) -> None:
        code = compile(source, location, "exec")
        previous = {key: self.scope.get(key, _MISSING) for key in bindings}
        self.scope.update(bindings)
        try:
            exec(code, self.scope)  # noqa: S102
        finally:
            for key, value in previous.items():
                if value is _MISSING:
                    self.scope.pop(key, None)
                else:
                    self.scope[key] = value


_MISSING = object()
