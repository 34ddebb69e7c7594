"""Memoized, disk-persisted registry metadata for the resolver."""

from __future__ import annotations

import json
import logging
import os
from typing import Dict, Optional, Protocol, Sequence, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import Manifest, VersionCatalog

logger = logging.getLogger(__name__)


class RegistryClient(Protocol):
    """Read operations the cache needs from a package registry."""

    def fetch_versions(self, name: str) -> Tuple[Sequence[str], Sequence[Optional[float]]]:
        ...

    def fetch_manifest(self, name: str, version: str) -> dict:
        ...


def mean_size(sizes: Sequence[Optional[float]]) -> float:
    """Arithmetic mean of the known sizes; 0 when none is known."""
    known = [s for s in sizes if isinstance(s, (int, float)) and not isinstance(s, bool)]
    if not known:
        return 0
    return sum(known) / len(known)


class MetadataCache:
    """Version catalogs and manifests, fetched once per key.

    Entries never expire within a process. ``load`` and ``save`` persist both
    stores as JSON files under ``path`` so that later runs can skip the
    registry entirely; a missing or corrupt file just yields an empty store.
    """

    def __init__(self, client: RegistryClient, path: Optional[str] = None,
                 force_regeneration: bool = False):
        """Initialize the metadata cache.

        Args:
            client: Registry collaborator used on cache misses.
            path: Directory for the persisted stores; None disables persistence.
            force_regeneration: Ignore persisted stores when loading.
        """
        self._client = client
        self._path = path
        self._force_regeneration = force_regeneration
        self._versions: Dict[str, VersionCatalog] = {}
        self._details: Dict[str, Manifest] = {}
        self._loaded = False

    @staticmethod
    def _key(name: str, version: str) -> str:
        return f"{name}@{version}"

    def versions(self, name: str) -> VersionCatalog:
        """Version catalog of ``name``."""
        catalog = self._versions.get(name)
        if catalog is None:
            versions, sizes = self._client.fetch_versions(name)
            catalog = VersionCatalog(
                versions=tuple(v for v in versions if v),
                mean_size=mean_size(sizes),
            )
            self._versions[name] = catalog
        return catalog

    def manifest(self, name: str, version: str) -> Manifest:
        """Manifest of ``name@version``."""
        key = self._key(name, version)
        manifest = self._details.get(key)
        if manifest is None:
            manifest = Manifest.from_dict(self._client.fetch_manifest(name, version))
            self._details[key] = manifest
        return manifest

    def _file(self, filename: str) -> str:
        return os.path.join(self._path, filename)

    def _read_store(self, filename: str) -> dict:
        path = self._file(filename)
        if not os.path.isfile(path):
            return {}
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed cache file %s", path)
            return {}
        return data

    def load(self) -> None:
        """Read persisted stores, unless persistence is off or regeneration is forced.

        Only the first call reads from disk.
        """
        if self._loaded or not self._path or self._force_regeneration:
            return
        self._loaded = True
        try:
            versions = {k: VersionCatalog.from_dict(v)
                        for k, v in self._read_store(Constants.CACHE_VERSIONS_FILE).items()}
            details = {k: Manifest.from_dict(v)
                       for k, v in self._read_store(Constants.CACHE_DETAILS_FILE).items()}
        except (AttributeError, TypeError) as exc:
            logger.warning("Ignoring malformed cache entries in %s: %s", self._path, exc)
            return
        self._versions.update(versions)
        self._details.update(details)
        if is_debug_enabled(logger):
            logger.debug(
                "Cache loaded",
                extra=extra_context(
                    event="cache_load",
                    component="metadata_cache",
                    outcome="success",
                    versions=len(versions),
                    details=len(details),
                    target=self._path
                )
            )

    def save(self) -> None:
        """Write both stores to disk.

        A write failure is logged and otherwise ignored; the in-memory stores
        stay usable.
        """
        if not self._path:
            return
        stores = (
            (Constants.CACHE_VERSIONS_FILE, {k: v.to_dict() for k, v in self._versions.items()}),
            (Constants.CACHE_DETAILS_FILE, {k: v.to_dict() for k, v in self._details.items()}),
        )
        try:
            os.makedirs(self._path, exist_ok=True)
            for filename, data in stores:
                with open(self._file(filename), "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
        except OSError as exc:
            logger.warning(
                "Could not save metadata cache to %s: %s",
                self._path,
                exc,
                extra=extra_context(
                    event="cache_save",
                    component="metadata_cache",
                    outcome="error",
                    target=self._path
                )
            )
            return
        if is_debug_enabled(logger):
            logger.debug(
                "Cache saved",
                extra=extra_context(
                    event="cache_save",
                    component="metadata_cache",
                    outcome="success",
                    versions=len(self._versions),
                    details=len(self._details),
                    target=self._path
                )
            )
