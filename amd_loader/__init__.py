"""Asynchronous module loader.

Loads units by logical name, resolves their declared dependencies and caches
every unit exactly once per loader instance.
"""

from .definition import Registration
from .definition import RegistrationMode
from .definition import RegistrationSlot
from .definition import parse_registration
from .embedding import FetchingEmbedder
from .errors import AlreadySettled
from .errors import CyclicDependency
from .errors import LoaderError
from .errors import StillUnresolved
from .errors import TransportFailure
from .errors import UnknownRegistrationMode
from .errors import UnmappedName
from .execution import ScopeExecutor
from .fetch import HttpxFetcher
from .loader import Loader
from .loader import Require
from .locations import LocationTable
from .locations import NameResolver
from .registry import DependencyRecord
from .registry import ExportKind
from .registry import RecordState
from .registry import Registry
from .settings import LoaderSettings
from .settings import load_settings
from .watchdog import watch

__all__ = [
    "Loader",
    "Require",
    "LoaderSettings",
    "load_settings",
    "LocationTable",
    "NameResolver",
    "Registry",
    "DependencyRecord",
    "RecordState",
    "ExportKind",
    "Registration",
    "RegistrationMode",
    "RegistrationSlot",
    "parse_registration",
    "HttpxFetcher",
    "FetchingEmbedder",
    "ScopeExecutor",
    "watch",
    "LoaderError",
    "UnmappedName",
    "AlreadySettled",
    "UnknownRegistrationMode",
    "TransportFailure",
    "StillUnresolved",
    "CyclicDependency",
]
