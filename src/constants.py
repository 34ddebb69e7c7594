"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    CONFLICT = 3


class DefaultResolution(Enum):
    """Default tunables for the resolution engine.

    Args:
        Enum (int): Default window sizes for candidate generation.
    """

    MAJOR_VERSIONS = 2
    MINOR_AND_PATCH_VERSIONS = 10


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    PACKAGE_JSON_FILE = "package.json"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "PEERFIX_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "peerfix"

    # Metadata cache layout
    CACHE_DIR = ".peerfix"
    CACHE_VERSIONS_FILE = "versions.json"
    CACHE_DETAILS_FILE = "details.json"

    # Packages whose members always share one resolved version
    PACKAGE_BUNDLES = ["@nx/", "@angular/"]

    ALLOW_PRE_RELEASES = False
    RECURSION_LIMIT = 10000
