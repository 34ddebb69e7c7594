"""Tests for candidate version generation."""

import pytest

from resolver.cache import MetadataCache
from resolver.candidates import CandidateGenerator
from resolver.heuristics import HeuristicStore
from versioning.models import Requirement, ResolvedPackage

PACKAGES = {
    "foo": {"3.0.0": {}, "2.1.0": {}, "2.0.0": {}, "1.0.0": {}},
    "lib": {"5.0.0": {}, "4.0.0": {}, "3.0.0": {}, "2.0.0": {}},
    "gap": {"10.0.0": {}, "2.1.0": {}, "2.0.0": {}, "1.0.0": {}},
    "pre": {"2.0.0-rc.1": {}, "1.1.0": {}, "1.0.0": {}},
    "many": {"1.3.0": {}, "1.2.0": {}, "1.1.0": {}, "1.0.0": {}, "0.9.0": {}},
    "@nx/a": {"1.3.0": {}, "1.2.0": {}, "1.1.0": {}},
    "@nx/b": {"2.0.0": {}, "1.3.0": {}, "1.2.0": {}},
}


@pytest.fixture
def build(registry_factory):
    """Create a generator and its heuristic store with the given tunables."""

    def _build(majors=2, minors=10, allow_pre_releases=False, bundles=("@nx/",)):
        cache = MetadataCache(registry_factory(PACKAGES))
        store = HeuristicStore(cache, majors, minors, allow_pre_releases)
        return CandidateGenerator(cache, store, bundles), store

    return _build


class TestRangeCandidates:
    """Requirements carrying a valid npm range."""

    def test_range_filters_newest_first(self, build):
        generator, _ = build()
        assert generator.candidates(Requirement("foo", "^2.0.0"), ()) == ["2.1.0", "2.0.0"]

    def test_range_ignores_major_window(self, build):
        """A valid range selects versions even outside the major window."""
        generator, _ = build(majors=0)
        assert generator.candidates(Requirement("foo", "^1.0.0"), ()) == ["1.0.0"]

    def test_range_is_capped_per_major(self, build):
        generator, _ = build(minors=2)
        assert generator.candidates(Requirement("many", ">=0.9.0"), ()) == ["1.3.0", "1.2.0", "0.9.0"]

    def test_invalid_range_uses_window(self, build):
        """An unparsable range is treated as no range."""
        generator, _ = build()
        assert generator.candidates(Requirement("lib", "workspace:*"), ()) == ["5.0.0", "4.0.0", "3.0.0"]

    def test_wildcard_uses_window(self, build):
        generator, _ = build(majors=1)
        assert generator.candidates(Requirement("lib", "*"), ()) == ["5.0.0", "4.0.0"]

    def test_unsatisfiable_range(self, build):
        generator, _ = build()
        assert generator.candidates(Requirement("foo", "^9.0.0"), ()) == []


class TestWindowCandidates:
    """Requirements without a range."""

    def test_major_window(self, build):
        generator, _ = build(majors=2)
        assert generator.candidates(Requirement("lib"), ()) == ["5.0.0", "4.0.0", "3.0.0"]

    def test_orphaned_major_is_skipped(self, build):
        generator, _ = build(majors=2)
        assert generator.candidates(Requirement("gap"), ()) == ["2.1.0", "2.0.0", "1.0.0"]

    def test_window_grows_with_allowed_majors(self, build):
        """More allowed majors never remove candidates."""
        previous = []
        for majors in range(0, 5):
            generator, _ = build(majors=majors)
            current = generator.candidates(Requirement("lib"), ())
            assert set(previous) <= set(current)
            previous = current
        assert previous == ["5.0.0", "4.0.0", "3.0.0", "2.0.0"]

    def test_minor_and_patch_cap(self, build):
        generator, _ = build(minors=2)
        assert generator.candidates(Requirement("many"), ()) == ["1.3.0", "1.2.0", "0.9.0"]

    def test_pre_release_for_transitive_package(self, build):
        generator, _ = build(allow_pre_releases=True)
        assert generator.candidates(Requirement("pre"), ()) == ["2.0.0-rc.1", "1.1.0", "1.0.0"]

    def test_pre_release_never_for_direct_package(self, build):
        generator, store = build(allow_pre_releases=True)
        store.create("pre", is_direct_dependency=True)
        assert generator.candidates(Requirement("pre"), ()) == ["1.1.0", "1.0.0"]

    def test_pre_release_disallowed(self, build):
        generator, _ = build()
        assert generator.candidates(Requirement("pre"), ()) == ["1.1.0", "1.0.0"]


class TestConsistency:
    """Constraints from earlier choices in the same branch."""

    def test_resolved_peer_keeps_version(self, build):
        generator, _ = build()
        resolved = (ResolvedPackage("foo", "2.0.0"),)
        assert generator.candidates(Requirement("foo", "^2.0.0", True), resolved) == ["2.0.0"]
        assert generator.candidates(Requirement("foo", "3.0.0", True), resolved) == []

    def test_resolved_version_only_binds_peers(self, build):
        """A regular dependency may pick another version than a resolved peer."""
        generator, _ = build()
        resolved = (ResolvedPackage("foo", "2.0.0"),)
        assert generator.candidates(Requirement("foo", "^3.0.0"), resolved) == ["3.0.0"]

    def test_bundle_members_share_version(self, build):
        """A bundle member is forced to the version of a resolved sibling."""
        generator, _ = build()
        resolved = (ResolvedPackage("@nx/a", "1.2.0"),)
        assert generator.candidates(Requirement("@nx/b"), resolved) == ["1.2.0"]

    def test_without_bundles(self, build):
        generator, _ = build(bundles=())
        resolved = (ResolvedPackage("@nx/a", "1.2.0"),)
        assert generator.candidates(Requirement("@nx/b"), resolved) == ["2.0.0", "1.3.0", "1.2.0"]

    def test_pinned_version_filters(self, build):
        generator, store = build()
        store.create("foo", pinned_version="~2.0.0", is_direct_dependency=True)
        assert generator.candidates(Requirement("foo"), ()) == ["2.0.0"]
        assert generator.candidates(Requirement("foo", "^2.0.0"), ()) == ["2.0.0"]

    def test_bundle_helpers(self, build):
        generator, _ = build()
        assert generator.bundle_of("@nx/js") == "@nx/"
        assert generator.bundle_of("react") is None
        assert generator.same_bundle("@nx/js", "@nx/jest") is True
        assert generator.same_bundle("@nx/js", "@angular/core") is False
