"""Backtracking resolution of peer-dependency version conflicts."""

from __future__ import annotations

import logging
import sys
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from constants import Constants, DefaultResolution
from common.logging_utils import extra_context, is_debug_enabled, Timer
from versioning import semver
from versioning.models import (
    ConflictSet,
    ConflictState,
    DependencyEdge,
    EvaluationResult,
    Manifest,
    Metrics,
    Requirement,
    ResolvedPackage,
    names,
)
from versioning.parser import (
    declared_ranges,
    matches_any,
    requirements_from_manifest,
    tokenize_install_token,
)

from .cache import MetadataCache
from .candidates import CandidateGenerator
from .heuristics import HeuristicStore

logger = logging.getLogger(__name__)

Requirements = Tuple[Requirement, ...]
Resolved = Tuple[ResolvedPackage, ...]
Edges = Tuple[DependencyEdge, ...]


class Evaluator:
    """Finds one consistent set of peer dependency versions.

    An evaluator owns the heuristics, conflict sets and metrics of a single
    run; build a new one for every ``prepare``/``evaluate`` pair.
    """

    def __init__(
        self,
        cache: MetadataCache,
        allowed_major_versions: int = DefaultResolution.MAJOR_VERSIONS.value,
        allowed_minor_and_patch_versions: int = DefaultResolution.MINOR_AND_PATCH_VERSIONS.value,
        allow_pre_releases: bool = Constants.ALLOW_PRE_RELEASES,
        pin_versions: bool = False,
        force: bool = False,
        bundles: Optional[Sequence[str]] = None,
    ):
        """Initialize the evaluator.

        Args:
            cache: Metadata cache backed by a registry client.
            allowed_major_versions: Majors below the reference version to explore.
            allowed_minor_and_patch_versions: Releases to explore per major line.
            allow_pre_releases: Explore pre-releases of transitive packages.
            pin_versions: Treat ranges declared in the manifest as pins.
            force: Disable conflict-set pruning and early backtracking.
            bundles: Name prefixes whose packages must share one version.
        """
        self._cache = cache
        self._allow_pre_releases = allow_pre_releases
        self._pin_versions = pin_versions
        self._force = force
        self._heuristics = HeuristicStore(
            cache,
            allowed_major_versions,
            allowed_minor_and_patch_versions,
            allow_pre_releases,
        )
        self._candidates = CandidateGenerator(
            cache,
            self._heuristics,
            Constants.PACKAGE_BUNDLES if bundles is None else bundles,
        )
        self._conflict_sets: List[ConflictSet] = []
        self.metrics = Metrics()

    @property
    def heuristics(self) -> HeuristicStore:
        return self._heuristics

    @property
    def conflict_sets(self) -> List[ConflictSet]:
        return self._conflict_sets

    def prepare(
        self,
        manifest: Mapping,
        excluded: Iterable[str] = (),
        included: Iterable[str] = (),
        install_tokens: Iterable[str] = (),
    ) -> List[Requirement]:
        """Build the ordered initial open requirements from a parsed package.json.

        Args:
            manifest: Parsed package.json with dependencies/peerDependencies.
            excluded: Package patterns to leave out.
            included: If given, only packages matching one of these patterns are kept.
            install_tokens: ``name`` or ``name@range`` tokens of packages being installed;
                they become pinned versions.
        """
        excluded = list(excluded)
        included = list(included)
        requirements = [r for r in requirements_from_manifest(manifest)
                        if not matches_any(r.name, excluded)]
        if included:
            requirements = [r for r in requirements if matches_any(r.name, included)]

        self._cache.load()

        pinned = self._pinned_versions(
            list(install_tokens),
            declared_ranges(manifest, [r.name for r in requirements]),
        )

        for requirement in requirements:
            self._heuristics.create(requirement.name, pinned.get(requirement.name), True)
        for name, pinned_version in pinned.items():
            self._heuristics.create(name, pinned_version)
            if not any(r.name == name for r in requirements):
                requirements.append(Requirement(name=name, version_requirement=pinned_version))
            # the pinned package and its bundle siblings share the pinned range
            requirements = [
                Requirement(r.name, pinned_version, r.peer)
                if r.name == name or self._candidates.same_bundle(name, r.name) else r
                for r in requirements
            ]

        ordered = self._heuristics.order(requirements)
        self._cache.save()
        logger.info("Prepared %d open requirements (%d pinned).", len(ordered), len(pinned))
        return ordered

    def _pinned_versions(self, install_tokens: List[str], declared: Mapping[str, str]) -> dict:
        """Pins from install tokens, else from the manifest when pin_versions is on."""
        pinned = {}
        for token in install_tokens:
            name, spec = tokenize_install_token(token)
            if not name:
                continue
            if spec is None:
                versions = semver.sort_descending(self._cache.versions(name).versions)
                stable = [v for v in versions if not semver.is_prerelease(v)]
                spec = (stable or versions or [None])[0]
                if spec is None:
                    logger.warning("No published versions for %s; not pinned.", name)
                    continue
            pinned[name] = spec
        if not pinned and self._pin_versions:
            pinned.update(declared)
        return pinned

    def evaluate(self, open_requirements: Sequence[Requirement]) -> EvaluationResult:
        """Search for versions satisfying every open requirement.

        Registry lookup failures propagate; an unsatisfiable search comes back
        as a CONFLICT result. The cache is saved either way.
        """
        self._cache.load()
        for requirement in open_requirements:
            self._heuristics.create(requirement.name)

        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(limit, Constants.RECURSION_LIMIT))
        try:
            with Timer() as timer:
                conflict_state = self._step((), (), tuple(open_requirements), ())
        finally:
            sys.setrecursionlimit(limit)
            self._cache.save()

        logger.info(
            "Evaluation finished: %s",
            conflict_state.state.value,
            extra=extra_context(
                event="evaluation",
                component="evaluator",
                outcome=conflict_state.state.value,
                duration_ms=timer.duration_ms(),
                **self.metrics.to_dict()
            )
        )
        return EvaluationResult(conflict_state, self.metrics)

    def _step(self, resolved: Resolved, closed: Requirements,
              open_requirements: Requirements, edges: Edges) -> ConflictState:
        if not open_requirements:
            self.metrics.resolved_packages = len(closed)
            self.metrics.resolved_peers = len(resolved)
            return ConflictState.ok(resolved)

        requirement, remaining = open_requirements[0], open_requirements[1:]
        if requirement.version_requirement is not None and semver.valid_range(requirement.version_requirement) is None:
            requirement = requirement.without_range()

        candidates = self._candidates.candidates(requirement, resolved)

        if not self._force:
            self._prune_conflict_sets(resolved)

        self.metrics.checked_dependencies += 1
        if requirement.peer:
            self.metrics.checked_peers += 1

        if is_debug_enabled(logger):
            logger.debug(
                "Evaluating requirement",
                extra=extra_context(
                    event="evaluation_step",
                    component="evaluator",
                    package=requirement.name,
                    range=requirement.version_requirement,
                    peer=requirement.peer,
                    candidates=len(candidates),
                    depth=len(closed)
                )
            )

        conflict_state = ConflictState.conflict()
        backtracking = False

        for version in candidates:
            if self._skips_pre_release(requirement.name, version):
                continue
            self.metrics.checked_versions += 1

            manifest = self._cache.manifest(requirement.name, version)
            self._heuristics.record_peers(requirement.name, list(manifest.peer_dependencies))

            next_open, next_edges = self._merge(requirement.name, manifest, closed, remaining, edges)
            next_resolved = resolved
            if requirement.peer and not any(rp.name == requirement.name and rp.version == version
                                            for rp in resolved):
                next_resolved = resolved + (ResolvedPackage(requirement.name, version),)

            conflict_state = self._step(next_resolved, closed + (requirement,), next_open, next_edges)
            if conflict_state.is_ok:
                return conflict_state

            # commit to backtracking unless this package is part of a known conflict
            if (
                not self._force
                and (self._conflict_sets or not requirement.peer)
                and not self._mentioned_in_conflict_set(requirement.name)
            ):
                backtracking = True
                break

        if not backtracking:
            self._heuristics.increment_conflict_potential(requirement.name)
            if not self._force and requirement.peer:
                self._record_conflict(requirement, edges)
            logger.debug("No version of %s fits this branch.", requirement.name)

        return conflict_state

    def _skips_pre_release(self, name: str, version: str) -> bool:
        heuristic = self._heuristics.get(name)
        is_direct = bool(heuristic and heuristic.is_direct_dependency)
        return not is_direct and not self._allow_pre_releases and semver.is_prerelease(version)

    def _merge(self, parent: str, manifest: Manifest, closed: Requirements,
               open_requirements: Requirements, edges: Edges) -> Tuple[Requirements, Edges]:
        """Add a manifest's (peer) dependencies to copies of the open set and edges."""
        next_open = list(open_requirements)
        next_edges = list(edges)
        declared = (
            [Requirement(n, r, True) for n, r in manifest.peer_dependencies.items()]
            + [Requirement(n, r, False) for n, r in manifest.dependencies.items()]
        )

        for new in declared:
            if any(r.name == new.name and r.version_requirement == new.version_requirement
                   for r in (*next_open, *closed)):
                continue
            next_open.append(new)
            for idx, edge in enumerate(next_edges):
                if edge.parent == parent and edge.child == new.name:
                    next_edges[idx] = DependencyEdge(parent, new.name, new.peer)
                    break
            else:
                next_edges.append(DependencyEdge(parent, new.name, new.peer))
            self._heuristics.create(new.name)

        return tuple(self._heuristics.order(next_open)), tuple(next_edges)

    def _prune_conflict_sets(self, resolved: Resolved) -> None:
        """Drop conflict sets whose peer members are not all resolved anymore."""
        resolved_names = names(resolved)
        self._conflict_sets = [
            conflict_set for conflict_set in self._conflict_sets
            if all(name in resolved_names for name, peer in conflict_set if peer)
        ]

    def _mentioned_in_conflict_set(self, name: str) -> bool:
        return any(entry[0] == name for cs in self._conflict_sets for entry in cs)

    def _record_conflict(self, requirement: Requirement, edges: Edges) -> None:
        """Remember the failed peer together with its parents and grandparents."""
        parent = next((e.parent for e in edges if e.child == requirement.name), None)
        conflict_set = next(
            (cs for cs in self._conflict_sets if any(entry[0] == parent for entry in cs)),
            None,
        )
        if conflict_set is None:
            conflict_set = []
            self._conflict_sets.append(conflict_set)

        entry = (requirement.name, requirement.peer)
        if entry not in conflict_set:
            conflict_set.append(entry)

        for edge in edges:
            if edge.child != requirement.name or any(e[0] == edge.parent for e in conflict_set):
                continue
            parent_edges = [pe for pe in edges if pe.child == edge.parent]
            has_peer_parent = any(pe.peer for pe in parent_edges)
            if (edge.parent, has_peer_parent) not in conflict_set:
                conflict_set.append((edge.parent, has_peer_parent))
            for parent_edge in parent_edges:
                if (parent_edge.parent, False) not in conflict_set:
                    conflict_set.append((parent_edge.parent, False))

        if is_debug_enabled(logger):
            logger.debug(
                "Conflict set updated",
                extra=extra_context(
                    event="conflict_set",
                    component="evaluator",
                    package=requirement.name,
                    members=len(conflict_set),
                    sets=len(self._conflict_sets)
                )
            )
