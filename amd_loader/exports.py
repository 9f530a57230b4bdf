"""Classification of units that did not call define()."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

from .registry import ExportKind


def new_exports() -> SimpleNamespace:
    """Create an empty exports container."""
    return SimpleNamespace()


def classify_exports(exports: Any, module_exports: Any) -> tuple[ExportKind, Any]:
    """Decide what a non-registering unit exported.

    Args:
        exports: The container handed to the unit as ``exports``
        module_exports: ``module.exports`` after execution (may have been rebound)

    Returns:
        Tuple of (kind, value). ``EXPORTS`` when ``module.exports`` was rebound
        or the container has at least one attribute, otherwise ``NONE`` with
        a ``None`` value.
    """
    if module_exports is not exports:
        return ExportKind.EXPORTS, module_exports
    if vars(exports):
        return ExportKind.EXPORTS, exports
    return ExportKind.NONE, None
