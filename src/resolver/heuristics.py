"""Per-package heuristics and the ordering of open requirements."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from common.logging_utils import extra_context, is_debug_enabled
from versioning import semver
from versioning.models import Heuristic, ReleaseType, Requirement

from .cache import MetadataCache

logger = logging.getLogger(__name__)

_RELEASE_TYPE_RANK = {
    ReleaseType.PATCH: 0,
    ReleaseType.MINOR: 1,
    ReleaseType.MAJOR: 2,
}


class HeuristicStore:
    """Heuristic records keyed by package name.

    Records are created on first encounter and live as long as the store; the
    resolver owns one store per top-level run.
    """

    def __init__(
        self,
        cache: MetadataCache,
        allowed_major_versions: int,
        allowed_minor_and_patch_versions: int,
        allow_pre_releases: bool,
    ):
        self._cache = cache
        self._allowed_major_versions = allowed_major_versions
        self._allowed_minor_and_patch_versions = allowed_minor_and_patch_versions
        self._allow_pre_releases = allow_pre_releases
        self._heuristics: Dict[str, Heuristic] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._heuristics

    def __getitem__(self, name: str) -> Heuristic:
        return self._heuristics[name]

    def get(self, name: str) -> Optional[Heuristic]:
        return self._heuristics.get(name)

    @property
    def allowed_minor_and_patch_versions(self) -> int:
        return self._allowed_minor_and_patch_versions

    def window(self, versions: Sequence[str], is_direct_dependency: bool,
               pinned_range: Optional[str] = None) -> List[str]:
        """Filter newest-first ``versions`` to the explorable window.

        Keeps versions at or below the reference version and within the
        allowed number of majors beneath it, drops pre-releases unless they
        are allowed, applies ``pinned_range`` if given and finally caps every
        major line at the allowed number of minor and patch releases.
        """
        reference = semver.version_reference(list(versions))
        if reference is None:
            return []
        pre_release_ok = not is_direct_dependency and self._allow_pre_releases
        filtered = [
            v for v in versions
            if semver.in_major_window(v, reference, self._allowed_major_versions)
            and (pre_release_ok or not semver.is_prerelease(v))
            and (pinned_range is None or semver.satisfies(v, pinned_range))
        ]
        return semver.limit_minor_and_patch(filtered, self._allowed_minor_and_patch_versions)

    def create(self, name: str, pinned_version: Optional[str] = None,
               is_direct_dependency: bool = False) -> Heuristic:
        """Create the heuristic record for ``name`` unless it already exists."""
        existing = self._heuristics.get(name)
        if existing is not None:
            return existing

        catalog = self._cache.versions(name)
        versions = semver.sort_descending(catalog.versions)

        # Sample the peers declared across every version the search may pick
        peers: List[str] = []
        for version in self.window(versions, is_direct_dependency, semver.valid_range(pinned_version)):
            for peer in self._cache.manifest(name, version).peer_dependencies:
                if peer not in peers and peer != name:
                    peers.append(peer)

        heuristic = Heuristic(
            version_range=semver.range_between(versions),
            is_direct_dependency=is_direct_dependency,
            mean_size=catalog.mean_size,
            peers=peers,
            pinned_version=pinned_version,
        )
        self._heuristics[name] = heuristic
        if is_debug_enabled(logger):
            logger.debug(
                "Heuristic created",
                extra=extra_context(
                    event="heuristic_created",
                    component="heuristics",
                    package=name,
                    peers=len(peers),
                    direct=is_direct_dependency,
                    pinned=pinned_version
                )
            )
        return heuristic

    def record_peers(self, name: str, peers: Sequence[str]) -> None:
        """Replace the sampled peer set of ``name`` with the peers just observed."""
        if peers:
            self.create(name).peers = [p for p in peers if p != name]

    def increment_conflict_potential(self, name: str) -> None:
        self.create(name).conflict_potential += 1

    def _peer_graph(self, requirements: Sequence[Requirement]) -> Tuple[List[str], List[Tuple[str, str]]]:
        nodes: List[str] = []
        edges: List[Tuple[str, str]] = []
        indirect_edges = set()

        def add_node(node: str) -> None:
            if node not in nodes:
                nodes.append(node)

        for requirement in requirements:
            if requirement.peer:
                add_node(requirement.name)
            for peer in self.create(requirement.name).peers:
                add_node(requirement.name)
                add_node(peer)
                # skip edges that would point back at an ancestor
                if (peer, requirement.name) not in indirect_edges:
                    edges.append((requirement.name, peer))
                    indirect_edges.add((requirement.name, peer))
                for parent, child in list(edges):
                    if child == requirement.name:
                        indirect_edges.add((parent, peer))
        return nodes, edges

    def order(self, requirements: Sequence[Requirement]) -> List[Requirement]:
        """Order requirements so peer-connected packages come first.

        Packages taking part in peer relations are sorted topologically along
        their peer edges (ties keep insertion order). The remaining packages
        follow: transitive before direct, then by ascending conflict
        potential, version spread and mean size.
        """
        nodes, edges = self._peer_graph(requirements)

        graph = nx.DiGraph()
        graph.add_nodes_from(nodes)
        graph.add_edges_from(edges)
        position = {node: idx for idx, node in enumerate(nodes)}
        try:
            topological = list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
        except nx.NetworkXUnfeasible:
            logger.warning("Peer dependency cycle detected; keeping insertion order for %d packages",
                           len(nodes))
            topological = nodes
        rank = {node: idx for idx, node in enumerate(topological)}

        upper = sorted((r for r in requirements if r.name in rank), key=lambda r: rank[r.name])
        lower = sorted((r for r in requirements if r.name not in rank), key=self._sort_key)
        return upper + lower

    def _sort_key(self, requirement: Requirement):
        heuristic = self._heuristics[requirement.name]
        return (
            heuristic.is_direct_dependency,
            heuristic.conflict_potential,
            _RELEASE_TYPE_RANK[heuristic.version_range.type],
            heuristic.version_range.value,
            heuristic.mean_size,
        )
