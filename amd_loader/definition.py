"""Definition protocol - how loaded units register themselves.

A unit calls ``define`` with one of these shapes:
- define(value_or_factory)
- define(dependencies, value_or_factory)
- define(name, value_or_factory)
- define(name, dependencies, value_or_factory)

The call is decoded into a Registration at the boundary and completed
uniformly: dependencies are resolved through the loader, then the factory
runs and the record settles.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any

from .errors import UnknownRegistrationMode
from .exports import new_exports
from .locations import strip_parent_prefix
from .registry import ExportKind
from .watchdog import watch

if TYPE_CHECKING:
    from .loader import Loader

logger = logging.getLogger(__name__)

EXPORTS_TOKEN = "exports"
REQUIRE_TOKEN = "require"


class RegistrationMode(str, Enum):
    """Closed set of define() shapes."""

    VALUE = "value"
    FACTORY = "factory"
    NAMED_VALUE = "named_value"
    NAMED_FACTORY = "named_factory"


def is_factory(candidate: Any) -> bool:
    """Callables are invoked as factories; classes are exported as values."""
    return callable(candidate) and not isinstance(candidate, type)


@dataclass
class Registration:
    """Decoded define() call.

    Attributes:
        name: Explicit name asserted by the unit, None to inherit the requested name
        dependencies: Declared dependency names (in factory argument order)
        factory: Callable receiving the resolved dependencies, None for literal values
        value: Literal value when there is no factory
    """

    name: str | None = None
    dependencies: list[str] = field(default_factory=list)
    factory: Callable[..., Any] | None = None
    value: Any = None

    @property
    def mode(self) -> RegistrationMode:
        if self.name is None:
            return RegistrationMode.VALUE if self.factory is None else RegistrationMode.FACTORY
        return RegistrationMode.NAMED_VALUE if self.factory is None else RegistrationMode.NAMED_FACTORY

    def build(self, resolved: list[Any]) -> Any:
        if self.factory is None:
            return self.value
        return self.factory(*resolved)


def parse_registration(args: tuple[Any, ...]) -> Registration:
    """Decode positional define() arguments.

    Raises:
        UnknownRegistrationMode: Unsupported argument count or types
    """
    remaining = list(args)
    if not remaining or len(remaining) > 3:
        logger.error(f"Unknown define mode: {len(remaining)} arguments")
        raise UnknownRegistrationMode(f"Unknown define mode! ({len(remaining)} arguments)")

    registration = Registration()
    if len(remaining) > 1 and isinstance(remaining[0], str):
        registration.name = remaining.pop(0)

    # Three arguments are only valid with a fixed name first
    if len(remaining) > 2:
        logger.error("Unknown define mode: three arguments without a leading name")
        raise UnknownRegistrationMode("Unknown define mode! (three arguments require a leading name)")

    if len(remaining) == 2:
        dependencies = remaining.pop(0)
        if not isinstance(dependencies, list | tuple):
            logger.error(f"Unknown define mode: dependencies given as {type(dependencies).__name__}")
            raise UnknownRegistrationMode(
                f"Unknown define mode! (dependencies must be a list, got {type(dependencies).__name__})"
            )
        for dependency in dependencies:
            if not isinstance(dependency, str):
                logger.error(f"Unknown define mode: dependency given as {type(dependency).__name__}")
                raise UnknownRegistrationMode(
                    f"Unknown define mode! (dependency names must be strings, got {type(dependency).__name__})"
                )
        registration.dependencies = list(dependencies)

    body = remaining[0]
    if is_factory(body):
        registration.factory = body
    else:
        registration.value = body
    return registration


async def complete_registration(loader: Loader, name: str, registration: Registration) -> Any:
    """Resolve a registration's dependencies, build its value and settle ``name``.

    Args:
        loader: Owning loader
        name: Name the registration settles (explicit name if one was given)
        registration: Decoded define() call

    Returns:
        The settled value

    Raises:
        AlreadySettled: ``name`` was already settled
        CyclicDependency: A dependency waits on ``name``
    """
    logger.debug(f"define() for {name} called")
    exports = new_exports()
    uses_exports = False

    async def resolve_dependency(dependency: str) -> Any:
        nonlocal uses_exports
        if dependency == EXPORTS_TOKEN:
            uses_exports = True
            return exports
        if dependency == REQUIRE_TOKEN:
            return loader.require

        dependency = loader.resolver.rewrite_relative(strip_parent_prefix(dependency), name)
        future = loader.resolve(dependency, parent=name)
        if future.done():
            return future.result()
        loader.registry.begin_wait(name, dependency)
        try:
            return await watch(
                future,
                f"require of dependency {dependency} for define of {name}",
                loader.settings.watchdog_interval,
            )
        finally:
            loader.registry.end_wait(name, dependency)

    if registration.dependencies:
        logger.debug(f"{name} requested {registration.dependencies}")
    resolved = await asyncio.gather(*(resolve_dependency(d) for d in registration.dependencies))

    value = registration.build(list(resolved))
    if value is None and uses_exports:
        value = exports

    loader.registry.settle(name, value, ExportKind.DEFINITION)
    return value


class RegistrationSlot:
    """The ``define`` callable handed to one unit during its load.

    Bound to the inferred name (the name the unit was requested under). Each
    call is decoded synchronously; completion runs as a task the load awaits.
    """

    amd = True

    def __init__(self, loader: Loader, inferred_name: str, parent: str | None = None) -> None:
        self.loader = loader
        self.inferred_name = inferred_name
        self.parent = parent
        self.called = False
        self.tasks: list[asyncio.Task] = []

    def __call__(self, *args: Any) -> asyncio.Task:
        self.called = True
        registration = parse_registration(args)

        name = self.inferred_name
        if registration.name is not None and registration.name != name:
            logger.debug(f"Instantiating {name} with an explicit name {registration.name}")
            record = self.loader.registry.alias(registration.name, name)
            if self.loader.registry.get(registration.name) is record:
                name = registration.name
        if registration.mode is RegistrationMode.VALUE:
            logger.debug(f"Instantiating {name} via simple initialization")

        task = asyncio.ensure_future(complete_registration(self.loader, name, registration))
        self.tasks.append(task)
        return task

    async def wait(self) -> list[Any]:
        """Wait for every registration made through this slot."""
        return await asyncio.gather(*self.tasks)

    def cancel(self) -> None:
        """Cancel registrations that have not completed (the unit failed mid-exec)."""
        for task in self.tasks:
            if not task.done():
                task.cancel()

    def __repr__(self) -> str:
        return f"RegistrationSlot({self.inferred_name})"
