"""Loader facade - resolves logical names to loaded, memoized units.

Usage:
    loader = Loader({"foo": "/s/foo.py"}, fetcher=HttpxFetcher(root="static"))
    foo = await loader.load("foo")

Every name is fetched and executed at most once per loader; all concurrent
requesters share the same future and therefore the same value object.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from typing import Any

from .definition import RegistrationSlot
from .definition import complete_registration
from .definition import parse_registration
from .embedding import AuxiliaryEmbedder
from .embedding import FetchingEmbedder
from .errors import AlreadySettled
from .errors import StillUnresolved
from .errors import UnknownRegistrationMode
from .errors import UnmappedName
from .execution import ScopeExecutor
from .execution import UnitExecutor
from .exports import classify_exports
from .exports import new_exports
from .fetch import HttpxFetcher
from .fetch import ResourceFetcher
from .locations import LocationTable
from .locations import NameResolver
from .locations import Target
from .registry import DependencyRecord
from .registry import ExportKind
from .registry import Registry
from .settings import LoaderSettings
from .watchdog import watch

logger = logging.getLogger(__name__)


class Require:
    """The ``require`` capability handed to units.

    - ``require("name")`` returns an already-settled value synchronously
    - ``require(["a", "b"], callback)`` schedules a bulk resolve and returns the task
    """

    def __init__(self, loader: Loader, parent: str | None = None) -> None:
        self.loader = loader
        self.parent = parent

    def __call__(self, names: str | list[str] | tuple[str, ...], callback: Callable[..., Any] | None = None) -> Any:
        if isinstance(names, str):
            if callback is not None:
                raise TypeError("Unsupported require call: callbacks need a list of names")
            return self.loader.lookup(names)
        return self.loader._spawn(self._resolve_all(list(names), callback))

    async def _resolve_all(self, names: list[str], callback: Callable[..., Any] | None) -> Any:
        try:
            return await self.loader.resolve_all(names, callback, parent=self.parent)
        except Exception as e:
            logger.error(f"require({names}) from {self.parent or 'top level'} failed: {e}")
            raise


class Loader:
    """Resolve, load and cache units by logical name."""

    def __init__(
        self,
        table: LocationTable | Mapping[str, str | list[str]] | None = None,
        *,
        settings: LoaderSettings | None = None,
        fetcher: ResourceFetcher | None = None,
        executor: UnitExecutor | None = None,
        embedder: AuxiliaryEmbedder | None = None,
        scope: dict[str, Any] | None = None,
    ):
        """Initialize loader.

        Args:
            table: Location table (or a plain mapping to build one from)
            settings: Loader settings (default: LoaderSettings())
            fetcher: Resource fetcher (default: HttpxFetcher from settings)
            executor: Unit executor (default: ScopeExecutor over ``scope``)
            embedder: Auxiliary embedder (default: FetchingEmbedder over the fetcher)
            scope: Shared scope for the default executor
        """
        self.settings = settings or LoaderSettings()
        if isinstance(table, LocationTable):
            self.table = table
        else:
            self.table = LocationTable(self.settings.imports)
            if table:
                self.table.extend(table)
        self.resolver = NameResolver(
            self.table,
            default_suffix=self.settings.default_suffix,
            transpiled_suffixes=self.settings.transpiled_suffixes,
        )
        self.registry = Registry(detect_cycles=self.settings.detect_cycles)
        # Only a fetcher built here is closed by aclose()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpxFetcher(
            root=self.settings.root,
            base_url=self.settings.base_url,
            timeout=self.settings.fetch_timeout,
        )
        self.executor = executor or ScopeExecutor(scope)
        self.embedder = embedder or FetchingEmbedder(self.fetcher)
        self.require = Require(self)
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: LoaderSettings, **kwargs: Any) -> Loader:
        """Create a loader whose location table comes from ``settings.imports``."""
        return cls(settings=settings, **kwargs)

    async def aclose(self) -> None:
        """Close the fetcher if this loader created it."""
        if self._owns_fetcher and isinstance(self.fetcher, HttpxFetcher):
            await self.fetcher.aclose()

    async def __aenter__(self) -> Loader:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def resolve(self, name: str, parent: str | None = None) -> asyncio.Future:
        """Return the shared future for ``name``, starting its load if needed.

        There is no suspension point between the registry check and the insert,
        so concurrent callers can never start two loads for one name.

        A bare name missing from the location table yields a future already
        failed with ``UnmappedName``; no record is created, so the name can be
        mapped and resolved later.
        """
        record = self.registry.get(name)
        if record is not None:
            logger.debug(f"Fast-loading {name} from cache for {parent}")
            return record.future

        try:
            target = self.resolver.locate(name)
        except UnmappedName as e:
            logger.error(f"Cannot resolve {name} for {parent}: {e}")
            future = asyncio.get_running_loop().create_future()
            future.set_exception(e)
            return future
        record = self.registry.create(name)
        if parent:
            logger.debug(f"{parent} is loading {name}")
        else:
            logger.debug(f"loading {name}")
        if target.auxiliary:
            # Auxiliary resources load alongside the primary one
            record.auxiliary = asyncio.gather(
                *(self._embed(name, location) for location in target.auxiliary),
                return_exceptions=True,
            )
        self._spawn(self._load(record, target, parent))
        return record.future

    async def load(self, name: str, parent: str | None = None) -> Any:
        """Resolve a single name under the stall watchdog."""
        return await watch(
            self.resolve(name, parent),
            f"load of {name} for {parent}",
            self.settings.watchdog_interval,
        )

    async def resolve_all(
        self,
        names: Iterable[str],
        callback: Callable[..., Any] | None = None,
        parent: str | None = None,
    ) -> Any:
        """Resolve several names concurrently.

        Args:
            names: Logical names to resolve
            callback: Optional callable receiving the values positionally
            parent: Requesting unit, for diagnostics

        Returns:
            The callback's result when a callback is given, else the list of values
        """
        values = await asyncio.gather(*(self.load(name, parent) for name in names))
        if callback is not None:
            return callback(*values)
        return list(values)

    def lookup(self, name: str) -> Any:
        """Return an already-settled value synchronously.

        Raises:
            StillUnresolved: The name was never resolved or is still loading
        """
        logger.debug(f"require looking up loadedDependency {name}")
        try:
            return self.registry.lookup(name)
        except StillUnresolved:
            logger.warning(f"{name} has not been previously loaded asynchronously!")
            raise

    def record(self, name: str) -> DependencyRecord:
        """Return the record for a requested name.

        Raises:
            StillUnresolved: The name was never requested
        """
        record = self.registry.get(name)
        if record is None:
            raise StillUnresolved(name)
        return record

    def define(self, *args: Any) -> asyncio.Task:
        """Define a unit directly, outside of any load.

        Accepts ``define(name, value_or_factory)`` and
        ``define(name, dependencies, value_or_factory)``.

        Returns:
            Task resolving to the defined value

        Raises:
            UnknownRegistrationMode: Malformed call or missing explicit name
            AlreadySettled: The name has already settled
        """
        registration = parse_registration(args)
        if registration.name is None:
            raise UnknownRegistrationMode("Top-level define requires an explicit name")

        record, _created = self.registry.get_or_create(registration.name)
        if not record.pending:
            raise AlreadySettled(registration.name)

        async def run() -> Any:
            try:
                return await complete_registration(self, registration.name, registration)
            except Exception as e:
                self.registry.fail(record, e)
                raise

        return self._spawn(run())

    async def fully_loaded(self, name: str) -> Any:
        """Wait until a unit and all of its auxiliary resources have loaded.

        Returns:
            The unit's value

        Raises:
            StillUnresolved: The name was never requested
            TransportFailure: An auxiliary resource failed to embed
        """
        record = self.record(name)
        value = await watch(record.future, f"load of {name}", self.settings.watchdog_interval)
        if record.auxiliary is not None:
            results = await watch(
                record.auxiliary,
                f"auxiliary resources of {name}",
                self.settings.watchdog_interval,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
        return value

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load(self, record: DependencyRecord, target: Target, parent: str | None) -> None:
        name = record.name
        try:
            logger.debug(f"Loading {target.primary} as {name}")
            source = await watch(
                self.fetcher.fetch(target.primary),
                f"fetch of {target.primary} for {name}",
                self.settings.watchdog_interval,
            )
            await self._execute(record, source, target.primary, parent)
        except Exception as e:
            logger.error(f"Failed to load {name}: {e}")
            self.registry.fail(record, e)

    async def _execute(self, record: DependencyRecord, source: str, location: str, parent: str | None) -> None:
        name = record.name
        slot = RegistrationSlot(self, name, parent)
        exports = new_exports()
        module = new_exports()
        module.exports = exports
        bindings = {
            "define": slot,
            "exports": exports,
            "module": module,
            "require": Require(self, parent=name),
            "__name__": name,
            "__file__": location,
        }

        logger.debug(f"importing {name} via exec")
        try:
            self.executor.execute(source, location, bindings)
        except BaseException:
            # Registrations made before the failure must not outlive the load
            slot.cancel()
            raise
        logger.debug(f"finished exec of {name}")

        if slot.called:
            await watch(
                slot.wait(),
                f"define for {name} after exec by {parent}",
                self.settings.watchdog_interval,
            )
            logger.debug(f"loaded {name} as {record.kind.value if record.kind else None}")
            return

        kind, value = classify_exports(exports, module.exports)
        if kind is ExportKind.NONE:
            logger.debug(f"{name} is not a module; executed for side effects")
        self.registry.settle(name, value, kind)

    async def _embed(self, name: str, location: str) -> None:
        try:
            await self.embedder.embed(location)
        except Exception as e:
            logger.error(f"Error loading {location} for {name}: {e}")
            raise
