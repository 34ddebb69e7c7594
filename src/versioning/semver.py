"""Semantic version helpers built on ``semantic_version``.

Versions are strict three-component semver strings; ranges use npm syntax
(``^``, ``~``, x-ranges, hyphen ranges, ``||``) and are parsed with
``semantic_version.NpmSpec``, with ``SimpleSpec`` as a fallback. Anything that
fails to parse is treated as invalid rather than raising.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Iterable, List, Optional

import semantic_version

from .models import ReleaseType, VersionRange

logger = logging.getLogger(__name__)

_WILDCARDS = {"*", "x", "X"}
_COMPARATOR_GAP = re.compile(r"(<=|>=|<|>|=|\^|~)\s+")


@functools.lru_cache(maxsize=4096)
def parse_version(version: str) -> Optional[semantic_version.Version]:
    """Parse ``version`` or return None if it is not valid semver."""
    if not version:
        return None
    try:
        return semantic_version.Version(version)
    except ValueError:
        return None


def _normalize_range(spec: str) -> str:
    # Some published manifests carry a mis-encoded caret
    normalized = spec.replace("Ë†", "^").strip()
    return _COMPARATOR_GAP.sub(r"\1", normalized)


@functools.lru_cache(maxsize=4096)
def _parse_spec(spec: str) -> Optional[semantic_version.base.BaseSpec]:
    """Parse an npm range, falling back to the simple comparator syntax."""
    spec = _normalize_range(spec)
    try:
        return semantic_version.NpmSpec(spec)
    except ValueError:
        pass
    try:
        return semantic_version.SimpleSpec(spec)
    except ValueError:
        return None


def valid_range(spec: Optional[str]) -> Optional[str]:
    """Return the normalized npm range, or None if ``spec`` is empty or invalid.

    Whitespace between a comparator and its version is dropped, so
    ``>= 1.0.0 < 2`` becomes ``>=1.0.0 <2``. Non-registry specifiers
    (``npm:``, ``file:``, git URLs, dist-tags such as ``latest``) are not
    ranges and come back as None.
    """
    if spec is None:
        return None
    normalized = _normalize_range(spec)
    if not normalized:
        return None
    if _parse_spec(normalized) is None:
        logger.debug("Invalid version range discarded: %r", spec)
        return None
    return normalized


def is_wildcard(spec: Optional[str]) -> bool:
    """True for ranges that accept any release."""
    return spec is not None and spec.strip() in _WILDCARDS


def satisfies(version: str, spec: str) -> bool:
    """True if ``version`` is valid and matches the npm range ``spec``."""
    parsed = parse_version(version)
    npm_spec = _parse_spec(spec)
    if parsed is None or npm_spec is None:
        return False
    return npm_spec.match(parsed)


def major(version: str) -> int:
    """Major component of a valid version."""
    return parse_version(version).major


def is_prerelease(version: str) -> bool:
    """True if ``version`` carries a pre-release segment."""
    parsed = parse_version(version)
    return bool(parsed and parsed.prerelease)


def sort_descending(versions: Iterable[str]) -> List[str]:
    """Valid versions ordered newest first; invalid entries are dropped."""
    valid = []
    for version in versions:
        if parse_version(version) is None:
            logger.debug("Invalid version discarded: %r", version)
            continue
        valid.append(version)
    return sorted(valid, key=parse_version, reverse=True)


def version_reference(versions: List[str]) -> Optional[str]:
    """Newest version that is at most one major above its predecessor.

    ``versions`` must be sorted newest first. Orphaned majors released far
    ahead of the rest of the line are skipped this way. A single version is
    its own reference; when no version qualifies the newest one is used.
    """
    if not versions:
        return None
    if len(versions) == 1:
        return versions[0]
    for idx, version in enumerate(versions):
        following = major(versions[idx + 1]) if idx + 1 < len(versions) else 0
        if major(version) - following <= 1:
            return version
    return versions[0]


def in_major_window(version: str, reference: str, allowed_major_versions: int) -> bool:
    """True if ``version`` is at or below the reference's major and at most
    ``allowed_major_versions`` majors below it."""
    ref_major = major(reference)
    lower_bound = parse_version(f"{max(ref_major - allowed_major_versions, 0)}.0.0")
    return major(version) <= ref_major and parse_version(version) >= lower_bound


def limit_minor_and_patch(versions: List[str], allowed: int) -> List[str]:
    """Keep the first ``allowed`` entries of every major line, in input order."""
    by_major = {}
    for version in versions:
        by_major.setdefault(major(version), []).append(version)
    result: List[str] = []
    for line in by_major.values():
        result.extend(line[:allowed])
    return result


def range_between(versions: List[str]) -> VersionRange:
    """Spread between the reference version and the oldest version.

    ``versions`` must be sorted newest first. Pre-major and pre-minor
    differences count as major and minor, so ``2.0.0`` against
    ``2.0.0-rc.1`` is a major spread of 0.
    """
    reference = version_reference(versions)
    if reference is None:
        return VersionRange()
    newest = parse_version(reference)
    oldest = parse_version(versions[-1])
    if newest.major != oldest.major:
        return VersionRange(ReleaseType.MAJOR, abs(newest.major - oldest.major))
    if newest.minor != oldest.minor:
        return VersionRange(ReleaseType.MINOR, abs(newest.minor - oldest.minor))
    if newest.patch == oldest.patch and newest.prerelease != oldest.prerelease:
        if oldest.minor == 0 and oldest.patch == 0:
            return VersionRange(ReleaseType.MAJOR, 0)
        if oldest.patch == 0:
            return VersionRange(ReleaseType.MINOR, 0)
    return VersionRange(ReleaseType.PATCH, abs(newest.patch - oldest.patch))
