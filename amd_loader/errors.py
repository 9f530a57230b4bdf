"""Loader exception taxonomy.

Every failure the loader reports derives from LoaderError so callers can
catch the whole family at once:
- UnmappedName: bare name missing from the location table
- AlreadySettled: a dependency was loaded/defined more than once
- UnknownRegistrationMode: malformed define() call
- TransportFailure: a fetch or auxiliary embedding failed
- StillUnresolved: synchronous lookup of a name that has not settled
- CyclicDependency: a definition waits on itself through its dependencies
"""


class LoaderError(Exception):
    """Base class for all loader errors."""

    pass


class UnmappedName(LoaderError):
    """Raised when a bare name has no (usable) entry in the location table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} missing from location table")


class AlreadySettled(LoaderError):
    """Raised when a record that already settled is settled again."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Dependency {name} loaded/defined more than once")


class UnknownRegistrationMode(LoaderError):
    """Raised when define() is called with an unsupported argument shape."""

    pass


class TransportFailure(LoaderError):
    """Raised when a resource cannot be retrieved or embedded."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to load {location}: {reason}")


class StillUnresolved(LoaderError):
    """Raised by synchronous lookups for names that have not settled yet."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"{name} has not been previously loaded asynchronously! "
            f"Use `await loader.load(name)` or `require([name], callback)` instead."
        )


class CyclicDependency(LoaderError):
    """Raised when resolving a dependency would wait on the requester itself."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__(f"Cyclic dependency: {' -> '.join(chain)}")
