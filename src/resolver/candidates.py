"""Candidate version generation for a single requirement."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from versioning import semver
from versioning.models import Requirement, ResolvedPackage

from .cache import MetadataCache
from .heuristics import HeuristicStore

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """Produces the versions worth exploring for a requirement, newest first."""

    def __init__(self, cache: MetadataCache, heuristics: HeuristicStore, bundles: Sequence[str]):
        self._cache = cache
        self._heuristics = heuristics
        self._bundles = list(bundles)

    def bundle_of(self, name: str) -> Optional[str]:
        """Bundle prefix ``name`` belongs to, if any."""
        return next((b for b in self._bundles if name.startswith(b)), None)

    def same_bundle(self, first: str, second: str) -> bool:
        bundle = self.bundle_of(first)
        return bundle is not None and second.startswith(bundle)

    def forced_version(self, requirement: Requirement,
                       resolved: Sequence[ResolvedPackage]) -> Optional[str]:
        """Version the requirement is bound to by earlier choices in this branch.

        A peer that was already resolved must keep its version, and members of
        a bundle must match an already resolved sibling.
        """
        if requirement.peer:
            for rp in resolved:
                if rp.name == requirement.name:
                    return rp.version
        for rp in resolved:
            if self.same_bundle(requirement.name, rp.name):
                return rp.version
        return None

    def candidates(self, requirement: Requirement,
                   resolved: Sequence[ResolvedPackage]) -> List[str]:
        """Ordered candidate versions for ``requirement``.

        The requirement's range, if valid and not a wildcard, selects the
        candidates. Without one, the major/pre-release window around the
        reference version applies. Either way the per-major minor/patch cap
        bounds the result.
        """
        forced = self.forced_version(requirement, resolved)
        if forced is not None:
            available = [forced]
        else:
            available = semver.sort_descending(self._cache.versions(requirement.name).versions)

        heuristic = self._heuristics.create(requirement.name)
        pinned = semver.valid_range(heuristic.pinned_version)
        if pinned:
            available = [v for v in available if semver.satisfies(v, pinned)]

        version_range = semver.valid_range(requirement.version_requirement)
        if version_range and not semver.is_wildcard(version_range):
            compatible = [v for v in available if semver.satisfies(v, version_range)]
            return semver.limit_minor_and_patch(compatible, self._heuristics.allowed_minor_and_patch_versions)
        return self._heuristics.window(available, heuristic.is_direct_dependency)
