"""Name-to-location resolution.

LocationTable maps bare logical names to resource locations (primary first,
auxiliary resources after it). NameResolver turns a requested name into the
locations to fetch and rewrites relative dependency names declared by units.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

from .errors import UnmappedName

logger = logging.getLogger(__name__)

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_DIRECT_PREFIXES = ("./", "../", "/")


class LocationTable:
    """Mutable mapping of logical name -> ordered resource locations."""

    def __init__(self, entries: Mapping[str, str | list[str]] | None = None):
        self._entries: dict[str, list[str]] = {}
        if entries:
            self.extend(entries)

    def add(self, name: str, locations: str | list[str], replace: bool = False) -> None:
        """Add an entry to the table.

        Args:
            name: Logical name
            locations: A single location or a list (primary first)
            replace: Allow overwriting an existing, different entry

        Raises:
            ValueError: Entry exists with different locations and replace is False
        """
        normalized = [locations] if isinstance(locations, str) else list(locations)
        existing = self._entries.get(name)
        if existing is not None and existing != normalized and not replace:
            raise ValueError(f"Location table already maps {name} to {existing}")
        self._entries[name] = normalized

    def extend(self, entries: Mapping[str, str | list[str]], replace: bool = False) -> None:
        for name, locations in entries.items():
            self.add(name, locations, replace=replace)

    def get(self, name: str) -> list[str] | None:
        return self._entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(locations) for name, locations in self._entries.items()}


@dataclass
class Target:
    """Resolved locations for one logical name."""

    name: str
    primary: str
    auxiliary: list[str] = field(default_factory=list)


def strip_parent_prefix(dependency: str) -> str:
    """Strip leading ``../`` markers from a declared dependency.

    This is a literal prefix strip: ``../cldr`` becomes ``cldr``, no directory
    level is ascended.
    """
    while dependency.startswith("../"):
        dependency = dependency[3:]
    return dependency


class NameResolver:
    """Resolve logical names to resource locations."""

    def __init__(
        self,
        table: LocationTable,
        default_suffix: str = ".py",
        transpiled_suffixes: Mapping[str, str] | None = None,
    ):
        """Initialize resolver.

        Args:
            table: Location table consulted for bare names
            default_suffix: Suffix appended to locations without an extension
            transpiled_suffixes: Source suffix -> executable suffix replacements
        """
        self.table = table
        self.default_suffix = default_suffix
        self.transpiled_suffixes = dict(transpiled_suffixes if transpiled_suffixes is not None else {".coco": ".py"})

    @staticmethod
    def is_direct(name: str) -> bool:
        """Check whether a name is a location used as-is (scheme or path marker)."""
        return bool(_SCHEME.match(name)) or name.startswith(_DIRECT_PREFIXES)

    def locate(self, name: str) -> Target:
        """Resolve a name to its primary and auxiliary locations.

        Args:
            name: Logical name requested by a caller or a unit

        Returns:
            Target with the normalized primary location

        Raises:
            UnmappedName: Bare name missing from the table or with an empty primary entry
        """
        if self.is_direct(name):
            primary, auxiliary = name, []
        else:
            locations = self.table.get(name)
            if not locations or not locations[0]:
                raise UnmappedName(name)
            primary, auxiliary = locations[0], locations[1:]

        primary = self.normalize_extension(primary)
        logger.debug(f"[loader:locate] {name} -> {primary}")
        return Target(name=name, primary=primary, auxiliary=list(auxiliary))

    def normalize_extension(self, location: str) -> str:
        """Map transpiled-source suffixes and add a default suffix when missing."""
        for source_suffix, executable_suffix in self.transpiled_suffixes.items():
            if location.endswith(source_suffix):
                return location[: -len(source_suffix)] + executable_suffix

        last_segment = location.rsplit("/", 1)[-1]
        if "." not in last_segment:
            return location + self.default_suffix
        return location

    def rewrite_relative(self, dependency: str, parent: str) -> str:
        """Rewrite a ``./`` dependency against the directory of its parent unit.

        ``./sibling`` declared by ``group/leaf`` becomes ``group/sibling``. A
        parent without a ``/`` in its name uses its primary table location as
        the base instead.

        Args:
            dependency: Dependency text as declared by the unit
            parent: Resolved name of the declaring unit

        Returns:
            Rewritten dependency (unchanged if it is not ``./``-relative)
        """
        if not dependency.startswith("./"):
            return dependency

        base = parent
        if "/" not in base:
            locations = self.table.get(parent)
            if locations and "/" in locations[0]:
                base = locations[0]

        if "/" not in base:
            return dependency[2:]
        return base.rsplit("/", 1)[0] + "/" + dependency[2:]
