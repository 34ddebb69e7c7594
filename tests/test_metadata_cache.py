"""Tests for the memoized, disk-persisted registry metadata cache."""

import json
import os

import pytest

from common.errors import PackageNotFoundError
from constants import Constants
from resolver.cache import MetadataCache, mean_size

PACKAGES = {
    "foo": {
        "2.0.0": {"size": 300, "peerDependencies": {"react": "^18.0.0"}},
        "1.0.0": {"size": 100, "dependencies": {"tslib": "^2.0.0"}},
    },
}


class TestMeanSize:
    """Mean of the known unpacked sizes."""

    def test_ignores_unknown_sizes(self):
        """None entries do not count towards the mean."""
        assert mean_size([100, None, 300]) == 200

    def test_no_known_size(self):
        """An empty or unknown size list averages to 0."""
        assert mean_size([]) == 0
        assert mean_size([None, None]) == 0


class TestMemoization:
    """Each key reaches the registry only once."""

    def test_versions_fetched_once(self, registry_factory):
        """Repeated catalog lookups hit the registry once."""
        registry = registry_factory(PACKAGES)
        cache = MetadataCache(registry)

        first = cache.versions("foo")
        second = cache.versions("foo")

        assert first is second
        assert first.versions == ("2.0.0", "1.0.0")
        assert first.mean_size == 200
        assert registry.version_calls == 1

    def test_manifest_fetched_once(self, registry_factory):
        """Repeated manifest lookups hit the registry once."""
        registry = registry_factory(PACKAGES)
        cache = MetadataCache(registry)

        manifest = cache.manifest("foo", "2.0.0")
        cache.manifest("foo", "2.0.0")

        assert manifest.peer_dependencies == {"react": "^18.0.0"}
        assert manifest.dependencies == {}
        assert registry.manifest_calls == 1

    def test_lookup_failure_propagates(self, registry_factory):
        """A missing package surfaces as PackageNotFoundError."""
        cache = MetadataCache(registry_factory(PACKAGES))
        with pytest.raises(PackageNotFoundError):
            cache.versions("ghost")

    def test_no_path_disables_persistence(self, registry_factory):
        """load and save are no-ops without a cache directory."""
        cache = MetadataCache(registry_factory(PACKAGES))
        cache.load()
        cache.versions("foo")
        cache.save()


class TestPersistence:
    """versions.json and details.json round-trips."""

    def test_round_trip_skips_registry(self, registry_factory, tmp_path):
        """A saved cache answers every lookup of a later run."""
        cache_dir = str(tmp_path / "cache")
        writer = MetadataCache(registry_factory(PACKAGES), cache_dir)
        writer.load()
        writer.versions("foo")
        writer.manifest("foo", "1.0.0")
        writer.save()

        registry = registry_factory(PACKAGES)
        reader = MetadataCache(registry, cache_dir)
        reader.load()

        assert reader.versions("foo") == writer.versions("foo")
        assert reader.manifest("foo", "1.0.0") == writer.manifest("foo", "1.0.0")
        assert registry.calls == 0

    def test_file_layout(self, registry_factory, tmp_path):
        """Stores are keyed by name and name@version with camelCase fields."""
        cache = MetadataCache(registry_factory(PACKAGES), str(tmp_path))
        cache.versions("foo")
        cache.manifest("foo", "2.0.0")
        cache.save()

        with open(tmp_path / Constants.CACHE_VERSIONS_FILE, encoding="utf-8") as fh:
            versions = json.load(fh)
        with open(tmp_path / Constants.CACHE_DETAILS_FILE, encoding="utf-8") as fh:
            details = json.load(fh)

        assert versions == {"foo": {"versions": ["2.0.0", "1.0.0"], "meanSize": 200}}
        assert details["foo@2.0.0"]["peerDependencies"] == {"react": "^18.0.0"}

    def test_missing_files_yield_empty_cache(self, registry_factory, tmp_path):
        """Loading from an empty directory is not an error."""
        registry = registry_factory(PACKAGES)
        cache = MetadataCache(registry, str(tmp_path / "nowhere"))
        cache.load()
        cache.versions("foo")
        assert registry.version_calls == 1

    def test_corrupt_file_is_ignored(self, registry_factory, tmp_path):
        """A corrupt store is skipped and lookups fall back to the registry."""
        (tmp_path / Constants.CACHE_VERSIONS_FILE).write_text("{not json", encoding="utf-8")
        registry = registry_factory(PACKAGES)
        cache = MetadataCache(registry, str(tmp_path))

        cache.load()
        cache.versions("foo")

        assert registry.version_calls == 1

    def test_force_regeneration_ignores_disk(self, registry_factory, tmp_path):
        """With force_regeneration the persisted stores are not read."""
        writer = MetadataCache(registry_factory(PACKAGES), str(tmp_path))
        writer.versions("foo")
        writer.save()

        registry = registry_factory(PACKAGES)
        cache = MetadataCache(registry, str(tmp_path), force_regeneration=True)
        cache.load()
        cache.versions("foo")

        assert registry.version_calls == 1

    def test_save_creates_directory(self, registry_factory, tmp_path):
        """save creates the cache directory when needed."""
        cache_dir = tmp_path / "nested" / "cache"
        cache = MetadataCache(registry_factory(PACKAGES), str(cache_dir))
        cache.save()
        assert os.path.isfile(cache_dir / Constants.CACHE_VERSIONS_FILE)
        assert os.path.isfile(cache_dir / Constants.CACHE_DETAILS_FILE)

    def test_save_failure_is_logged(self, registry_factory, tmp_path, caplog):
        """A cache path that cannot hold the stores only produces a warning."""
        blocker = tmp_path / "cachefile"
        blocker.write_text("", encoding="utf-8")
        cache = MetadataCache(registry_factory(PACKAGES), str(blocker))
        cache.versions("foo")

        with caplog.at_level("WARNING", logger="resolver.cache"):
            cache.save()

        assert "Could not save metadata cache" in caplog.text
        assert cache.versions("foo").versions == ("2.0.0", "1.0.0")
