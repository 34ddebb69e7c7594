"""NPM registry client: packuments and per-version manifests."""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple

from constants import Constants
from common.errors import PackageNotFoundError, RegistryError
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, Timer, safe_url

logger = logging.getLogger(__name__)

_PACKUMENT_HEADERS = {
    "Accept": "application/json"
}


def _package_path(name: str) -> str:
    """Encode a package name for a registry URL; scoped names keep their leading '@'."""
    return urllib.parse.quote(name, safe="@")


class NpmRegistryClient:
    """Reads package metadata from an npm-compatible registry.

    Implements the two lookups the metadata cache needs: the list of published
    versions with their unpacked sizes, and the dependency manifest of a single
    version. Both raise ``PackageNotFoundError`` on a non-2xx answer and
    ``RegistryError`` when the registry cannot be reached.
    """

    def __init__(self, url: str = Constants.REGISTRY_URL_NPM):
        self.url = url if url.endswith("/") else url + "/"

    def _get(self, url: str, name: str, version: str = "") -> Dict[str, Any]:
        with Timer() as timer:
            status_code, _, data = get_json(url, headers=_PACKUMENT_HEADERS)

        if status_code == 0:
            logger.error(
                "Registry unreachable",
                extra=extra_context(
                    event="http_error",
                    outcome="exception",
                    target=safe_url(url),
                    package_manager="npm"
                )
            )
            raise RegistryError(f"Registry unreachable for {name}", url=safe_url(url))
        if status_code < 200 or status_code >= 300:
            logger.warning(
                "HTTP non-2xx received",
                extra=extra_context(
                    event="http_response",
                    outcome="not_found",
                    status_code=status_code,
                    target=safe_url(url),
                    package_manager="npm"
                )
            )
            raise PackageNotFoundError(name, version, url=safe_url(url), status_code=status_code)
        if not isinstance(data, dict):
            raise RegistryError(f"Couldn't decode registry response for {name}", url=safe_url(url),
                                status_code=status_code)

        if is_debug_enabled(logger):
            logger.debug(
                "Registry lookup ok",
                extra=extra_context(
                    event="registry_lookup",
                    outcome="success",
                    duration_ms=timer.duration_ms(),
                    package=name,
                    version=version or None,
                    package_manager="npm"
                )
            )
        return data

    def fetch_versions(self, name: str) -> Tuple[List[str], List[Optional[int]]]:
        """List every published version of ``name`` and its unpacked size.

        Returns:
            Tuple of (versions, sizes); ``sizes[i]`` is None when the registry
            does not report a size for ``versions[i]``.
        """
        logger.debug("Fetching versions: %s", name)
        packument = self._get(self.url + _package_path(name), name)
        versions: List[str] = []
        sizes: List[Optional[int]] = []
        for version, info in (packument.get("versions") or {}).items():
            if not version:
                continue
            versions.append(version)
            size = ((info or {}).get("dist") or {}).get("unpackedSize")
            sizes.append(size if isinstance(size, (int, float)) else None)
        return versions, sizes

    def fetch_manifest(self, name: str, version: str) -> Dict[str, Any]:
        """Fetch the manifest of ``name@version``."""
        logger.debug("Fetching manifest: %s@%s", name, version)
        manifest = self._get(
            self.url + _package_path(name) + "/" + urllib.parse.quote(version, safe=""),
            name,
            version,
        )
        return {
            "name": manifest.get("name", name),
            "version": manifest.get("version", version),
            "dependencies": manifest.get("dependencies") or {},
            "peerDependencies": manifest.get("peerDependencies") or {},
        }
