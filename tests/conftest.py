"""Shared fixtures: an in-memory registry and evaluator factories."""

import pytest

from common.errors import PackageNotFoundError
from resolver.cache import MetadataCache
from resolver.evaluator import Evaluator


class FakeRegistry:
    """In-memory registry counting every lookup.

    ``packages`` maps name -> version -> optional entry with ``size``,
    ``dependencies`` and ``peerDependencies``.
    """

    def __init__(self, packages):
        self.packages = packages
        self.version_calls = 0
        self.manifest_calls = 0

    @property
    def calls(self):
        return self.version_calls + self.manifest_calls

    def fetch_versions(self, name):
        self.version_calls += 1
        if name not in self.packages:
            raise PackageNotFoundError(name)
        versions = list(self.packages[name])
        sizes = [(self.packages[name][v] or {}).get("size") for v in versions]
        return versions, sizes

    def fetch_manifest(self, name, version):
        self.manifest_calls += 1
        try:
            spec = self.packages[name][version] or {}
        except KeyError:
            raise PackageNotFoundError(name, version) from None
        return {
            "name": name,
            "version": version,
            "dependencies": dict(spec.get("dependencies", {})),
            "peerDependencies": dict(spec.get("peerDependencies", {})),
        }


@pytest.fixture
def registry_factory():
    """Create a FakeRegistry from a package mapping."""
    return FakeRegistry


@pytest.fixture
def make_evaluator():
    """Build an evaluator over a fresh FakeRegistry; returns (evaluator, registry)."""

    def _make(packages, cache_path=None, **kwargs):
        registry = FakeRegistry(packages)
        cache = MetadataCache(registry, cache_path)
        return Evaluator(cache, **kwargs), registry

    return _make


@pytest.fixture
def peer_packages():
    """foo has three majors; bar's newest release needs foo 3, its older one foo 2."""
    return {
        "foo": {
            "3.0.0": {"size": 420},
            "2.0.0": {"size": 380},
            "1.0.0": {"size": 200},
        },
        "bar": {
            "1.1.0": {"size": 500, "peerDependencies": {"foo": "3.0.0"}},
            "1.0.0": {"size": 450, "peerDependencies": {"foo": "2.0.0"}},
        },
    }
