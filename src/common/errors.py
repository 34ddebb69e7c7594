"""Exception hierarchy shared by the registry client and the resolver."""


class PeerfixError(Exception):
    """Base class for all errors raised by peerfix."""


class RegistryError(PeerfixError):
    """The registry could not be reached or returned an unusable payload."""

    def __init__(self, message: str, url: str = "", status_code: int = 0):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PackageNotFoundError(RegistryError):
    """The registry has no such package or no such version of it."""

    def __init__(self, name: str, version: str = "", url: str = "", status_code: int = 404):
        target = f"{name}@{version}" if version else name
        super().__init__(f"Package not found: {target}", url=url, status_code=status_code)
        self.name = name
        self.version = version


class ConfigError(PeerfixError):
    """A configuration file could not be read or has the wrong shape."""
