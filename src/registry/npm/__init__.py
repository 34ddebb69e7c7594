"""NPM registry package.

This package provides npm support for the resolver:
- client.py: HTTP interactions with the registry (packuments, version manifests)
- package_json.py: reading package.json and writing resolved versions back
"""

# Public API re-exports
from .client import NpmRegistryClient  # noqa: F401
from .package_json import (  # noqa: F401
    apply_resolved_versions,
    load_package_json,
    update_package_json,
)

__all__ = [
    "NpmRegistryClient",
    "apply_resolved_versions",
    "load_package_json",
    "update_package_json",
]
