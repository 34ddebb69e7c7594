"""Reading and updating a project's package.json."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable

from constants import Constants
from versioning.models import ResolvedPackage

logger = logging.getLogger(__name__)


def package_json_path(path: str) -> str:
    """Return the package.json path for a directory or file path."""
    if os.path.isdir(path):
        return os.path.join(path, Constants.PACKAGE_JSON_FILE)
    return path


def load_package_json(path: str) -> Dict[str, Any]:
    """Load and parse package.json.

    Raises:
        OSError: the file cannot be read.
        ValueError: the file is not a JSON object.
    """
    file_path = package_json_path(path)
    with open(file_path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not contain a JSON object")
    logger.debug("Loaded %s", file_path)
    return data


def apply_resolved_versions(package_json: Dict[str, Any],
                            resolved: Iterable[ResolvedPackage]) -> int:
    """Set declared (peer) dependencies to their resolved versions in place.

    Peer dependency entries win over regular ones; packages the manifest does
    not declare are ignored.

    Returns:
        Number of entries changed.
    """
    changed = 0
    peers = package_json.get("peerDependencies") or {}
    deps = package_json.get("dependencies") or {}
    for rp in resolved:
        if rp.name in peers:
            target = peers
        elif rp.name in deps:
            target = deps
        else:
            continue
        if target[rp.name] != rp.version:
            target[rp.name] = rp.version
            changed += 1
    return changed


def update_package_json(path: str, resolved: Iterable[ResolvedPackage]) -> int:
    """Write resolved versions into package.json, keeping every other field."""
    file_path = package_json_path(path)
    package_json = load_package_json(file_path)
    changed = apply_resolved_versions(package_json, resolved)
    with open(file_path, "w", encoding="utf-8") as fh:
        fh.write(json.dumps(package_json, indent=2, ensure_ascii=False) + "\n")
    logger.info("Updated %d entries in %s", changed, file_path)
    return changed
