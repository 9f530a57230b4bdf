"""Dependency registry - the single source of truth for loaded units.

Each logical name maps to exactly one DependencyRecord for the lifetime of
the registry. Records are created synchronously on first request so that
concurrent requesters observe the same shared future.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any

from .errors import AlreadySettled
from .errors import CyclicDependency
from .errors import StillUnresolved

logger = logging.getLogger(__name__)


class RecordState(str, Enum):
    """Lifecycle of a dependency record."""

    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"


class ExportKind(str, Enum):
    """How a unit produced its value.

    Kinds:
    - DEFINITION: the unit called define()
    - EXPORTS: the unit populated (or replaced) its exports container
    - NONE: legacy script, executed for its side effects only
    """

    DEFINITION = "definition"
    EXPORTS = "exports"
    NONE = "none"


@dataclass(eq=False)
class DependencyRecord:
    """Permanent cache entry for one loaded unit.

    Attributes:
        name: Name the record was created under (aliases share the record)
        future: Shared future every requester awaits
        state: PENDING until settled or failed, then never changes again
        kind: How the value was produced (set on settle)
        value: Settled value
        error: Failure stored on a FAILED record
        auxiliary: Future over auxiliary embeddings, None when there are none
    """

    name: str
    future: asyncio.Future
    state: RecordState = RecordState.PENDING
    kind: ExportKind | None = None
    value: Any = None
    error: BaseException | None = None
    auxiliary: asyncio.Future | None = None
    aliases: list[str] = field(default_factory=list)

    @property
    def pending(self) -> bool:
        return self.state is RecordState.PENDING


class Registry:
    """Arena of dependency records owned by one loader instance."""

    def __init__(self, detect_cycles: bool = True) -> None:
        self.detect_cycles = detect_cycles
        self._records: dict[str, DependencyRecord] = {}
        # waiter record -> records it is currently awaiting
        self._waits: dict[DependencyRecord, list[DependencyRecord]] = {}

    def get(self, name: str) -> DependencyRecord | None:
        return self._records.get(name)

    def create(self, name: str) -> DependencyRecord:
        """Create and insert a pending record.

        Must be called from within a running event loop.

        Raises:
            ValueError: A record already exists for the name
        """
        if name in self._records:
            raise ValueError(f"Record for {name} already exists")
        record = DependencyRecord(name=name, future=asyncio.get_running_loop().create_future())
        self._records[name] = record
        return record

    def get_or_create(self, name: str) -> tuple[DependencyRecord, bool]:
        """Return the record for a name, creating it if needed.

        Returns:
            Tuple of (record, created)
        """
        record = self._records.get(name)
        if record is not None:
            return record, False
        return self.create(name), True

    def alias(self, alias: str, name: str) -> DependencyRecord:
        """Make ``alias`` share the record registered under ``name``.

        An alias that already points at a different record is left untouched;
        that record keeps its own load.

        Raises:
            StillUnresolved: No record exists for ``name``
        """
        record = self._records.get(name)
        if record is None:
            raise StillUnresolved(name)
        existing = self._records.get(alias)
        if existing is None:
            self._records[alias] = record
            record.aliases.append(alias)
            logger.debug(f"[loader:alias] {alias} -> {name}")
        elif existing is not record:
            logger.warning(f"Cannot alias {alias} to {name}: {alias} is already registered separately")
        return record

    def settle(self, name: str, value: Any, kind: ExportKind = ExportKind.DEFINITION) -> DependencyRecord:
        """Transition a record from PENDING to SETTLED.

        Raises:
            StillUnresolved: No record exists for the name
            AlreadySettled: The record is no longer pending
        """
        record = self._records.get(name)
        if record is None:
            raise StillUnresolved(name)
        if not record.pending:
            raise AlreadySettled(name)

        record.state = RecordState.SETTLED
        record.kind = kind
        record.value = value
        record.future.set_result(value)
        logger.debug(f"[loader:settle] {name} ({kind.value})", extra={"event": "loader:settle", "unit": name})
        return record

    def fail(self, record: DependencyRecord, error: BaseException) -> None:
        """Transition a record from PENDING to FAILED and reject its future.

        The first outcome of a record wins: an error reported after the record
        settled is logged instead.
        """
        if not record.pending:
            logger.error(f"Error after {record.name} already {record.state.value}: {error}")
            return

        record.state = RecordState.FAILED
        record.error = error
        record.future.set_exception(error)
        # The error is kept on the record; mark it retrieved so asyncio does not warn
        record.future.exception()
        logger.debug(f"[loader:fail] {record.name}: {error}", extra={"event": "loader:fail", "unit": record.name})

    def lookup(self, name: str) -> Any:
        """Synchronously return the settled value of a name.

        Raises:
            StillUnresolved: Name never requested or still pending
            BaseException: The stored error of a failed record
        """
        record = self._records.get(name)
        if record is None or record.pending:
            raise StillUnresolved(name)
        if record.error is not None:
            raise record.error
        return record.value

    def begin_wait(self, waiter: str, dependency: str) -> None:
        """Record that ``waiter`` awaits ``dependency``.

        Raises:
            CyclicDependency: The dependency (transitively) waits on the waiter
        """
        waiter_record = self._records[waiter]
        dependency_record = self._records[dependency]
        if self.detect_cycles:
            chain = self._find_path(dependency_record, waiter_record)
            if chain is not None:
                names = [waiter_record.name] + [r.name for r in chain]
                raise CyclicDependency(names)
        self._waits.setdefault(waiter_record, []).append(dependency_record)

    def end_wait(self, waiter: str, dependency: str) -> None:
        waiter_record = self._records[waiter]
        dependency_record = self._records[dependency]
        waiting = self._waits.get(waiter_record)
        if waiting and dependency_record in waiting:
            waiting.remove(dependency_record)
            if not waiting:
                del self._waits[waiter_record]

    def waiting_on(self, record: DependencyRecord) -> list[DependencyRecord]:
        return list(self._waits.get(record, []))

    def _find_path(self, start: DependencyRecord, goal: DependencyRecord) -> list[DependencyRecord] | None:
        """Depth-first search along current waits; returns start..goal or None."""
        stack: list[tuple[DependencyRecord, list[DependencyRecord]]] = [(start, [start])]
        seen: set[int] = set()
        while stack:
            record, path = stack.pop()
            if record is goal:
                return path
            if id(record) in seen:
                continue
            seen.add(id(record))
            for nxt in self._waits.get(record, []):
                stack.append((nxt, path + [nxt]))
        return None

    def records(self) -> list[DependencyRecord]:
        """Unique records in creation order (aliases collapsed)."""
        unique: dict[int, DependencyRecord] = {}
        for record in self._records.values():
            unique.setdefault(id(record), record)
        return list(unique.values())

    def names(self) -> list[str]:
        return list(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)
