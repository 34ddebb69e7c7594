"""Data models for dependency resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple


class State(Enum):
    """Terminal state of an evaluation."""
    OK = "OK"
    CONFLICT = "CONFLICT"


class ReleaseType(Enum):
    """Coarsest differing component between two versions."""
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass(frozen=True)
class Requirement:
    """An open or closed need for a package, optionally constrained by an npm range."""
    name: str
    version_requirement: Optional[str] = None
    peer: bool = False

    def without_range(self) -> "Requirement":
        """Return the same requirement with its version range dropped."""
        return Requirement(name=self.name, version_requirement=None, peer=self.peer)


@dataclass(frozen=True)
class ResolvedPackage:
    """A committed version choice for a package reached through a peer edge."""
    name: str
    version: str


@dataclass(frozen=True)
class Manifest:
    """Dependency section of a published package version."""
    name: str
    version: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Manifest":
        """Build a manifest from registry/cache JSON (camelCase keys)."""
        return cls(
            name=data.get("name", ""),
            version=data.get("version", ""),
            dependencies=dict(data.get("dependencies") or {}),
            peer_dependencies=dict(data.get("peerDependencies") or {}),
        )

    def to_dict(self) -> dict:
        """Serialize to the registry/cache JSON shape."""
        return {
            "name": self.name,
            "version": self.version,
            "dependencies": dict(self.dependencies),
            "peerDependencies": dict(self.peer_dependencies),
        }


@dataclass(frozen=True)
class VersionCatalog:
    """All published versions of a package and their mean unpacked size."""
    versions: Tuple[str, ...] = ()
    mean_size: float = 0

    @classmethod
    def from_dict(cls, data: dict) -> "VersionCatalog":
        """Build a catalog from cache JSON."""
        return cls(versions=tuple(data.get("versions") or ()), mean_size=data.get("meanSize") or 0)

    def to_dict(self) -> dict:
        """Serialize to cache JSON."""
        return {"versions": list(self.versions), "meanSize": self.mean_size}


@dataclass(frozen=True)
class VersionRange:
    """Spread between a package's reference version and its oldest version."""
    type: ReleaseType = ReleaseType.PATCH
    value: int = 0


@dataclass
class Heuristic:
    """Per-package ordering signals, created once and updated during the search."""
    version_range: VersionRange
    conflict_potential: int = 0
    is_direct_dependency: bool = False
    mean_size: float = 0
    peers: List[str] = field(default_factory=list)
    pinned_version: Optional[str] = None


@dataclass(frozen=True)
class DependencyEdge:
    """``parent`` declared a (peer) dependency on ``child``."""
    parent: str
    child: str
    peer: bool


# Ordered (name, is_peer) pairs believed to jointly cause a dead end.
ConflictSet = List[Tuple[str, bool]]


@dataclass
class Metrics:
    """Counters collected during one evaluation."""
    checked_dependencies: int = 0
    checked_peers: int = 0
    checked_versions: int = 0
    resolved_packages: int = 0
    resolved_peers: int = 0

    def to_dict(self) -> Dict[str, int]:
        """camelCase mapping used in JSON output."""
        return {
            "checkedDependencies": self.checked_dependencies,
            "checkedPeers": self.checked_peers,
            "checkedVersions": self.checked_versions,
            "resolvedPackages": self.resolved_packages,
            "resolvedPeers": self.resolved_peers,
        }


@dataclass(frozen=True)
class ConflictState:
    """Outcome of one search branch: OK with the resolved peers, or CONFLICT."""
    state: State
    result: Tuple[ResolvedPackage, ...] = ()

    @classmethod
    def ok(cls, resolved: Tuple[ResolvedPackage, ...]) -> "ConflictState":
        return cls(State.OK, tuple(resolved))

    @classmethod
    def conflict(cls) -> "ConflictState":
        return cls(State.CONFLICT)

    @property
    def is_ok(self) -> bool:
        return self.state is State.OK


@dataclass
class EvaluationResult:
    """Resolution outcome to feed downstream output and manifest updates."""
    conflict_state: ConflictState
    metrics: Metrics

    @property
    def state(self) -> State:
        return self.conflict_state.state

    @property
    def result(self) -> Tuple[ResolvedPackage, ...]:
        return self.conflict_state.result

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        data: dict = {"state": self.state.value, "metrics": self.metrics.to_dict()}
        if self.conflict_state.is_ok:
            data["result"] = [{"name": rp.name, "version": rp.version} for rp in self.result]
        return data


def names(resolved) -> Set[str]:
    """Names of a collection of resolved packages."""
    return {rp.name for rp in resolved}
