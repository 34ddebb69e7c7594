"""Token and manifest parsing utilities for dependency resolution."""

import re
from typing import Iterable, List, Mapping, Optional, Tuple

from .models import Requirement

_SCOPE = r"(@[a-z0-9-~][a-z0-9-._~]*\/)"
_ONE = r"[a-z0-9-~][a-z0-9-._~]*$"
_MANY = r"\*$"


def tokenize_install_token(token: str) -> Tuple[str, Optional[str]]:
    """Return (name, range or None) using the rightmost-'@' rule.

    A leading '@' belongs to a scoped package name, so ``@nx/workspace@16``
    splits into ``("@nx/workspace", "16")``.
    """
    s = token.strip()
    idx = s.rfind("@")
    if idx <= 0:
        return s, None
    name = s[:idx].strip()
    spec = s[idx + 1:].strip()
    return name, spec or None


def package_regex(pattern: str) -> str:
    """Turn a package name or ``@scope/*`` pattern into a regular expression.

    Anything that is neither is assumed to be a regular expression already
    and returned unchanged.
    """
    if re.match(f"^{_SCOPE}?{_ONE}", pattern):
        return f"^{re.escape(pattern)}$"
    if re.match(f"^{_SCOPE}?{_MANY}", pattern):
        prefix_match = re.match(_SCOPE, pattern)
        prefix = re.escape(prefix_match.group(0)) if prefix_match else ""
        return f"^{prefix}{_ONE}"
    return pattern


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """True if ``name`` matches one of the package patterns."""
    return any(re.search(package_regex(p), name) for p in patterns)


def requirements_from_manifest(manifest: Mapping) -> List[Requirement]:
    """Collect a package.json's peer dependencies, then its dependencies.

    Ranges are deliberately left off: the search looks for the newest
    consistent versions, and only pins constrain it.
    """
    peers = manifest.get("peerDependencies") or {}
    deps = manifest.get("dependencies") or {}
    return (
        [Requirement(name=name, peer=True) for name in peers]
        + [Requirement(name=name, peer=False) for name in deps]
    )


def declared_ranges(manifest: Mapping, names: Iterable[str]) -> dict:
    """Declared range per name, peer dependencies taking precedence."""
    peers = manifest.get("peerDependencies") or {}
    deps = manifest.get("dependencies") or {}
    result = {}
    for name in names:
        declared = peers.get(name, deps.get(name))
        if declared is not None:
            result[name] = declared
    return result
