"""File-backed snapshot store.

Snapshots live as ``<directory>/<node>.json``.  Unknown nodes fall back to a
shared fixture file when one is configured.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ovnrecon.models import Snapshot

logger = logging.getLogger("ovnrecon.store")


class SnapshotStoreError(RuntimeError):
    """A snapshot file exists but cannot be loaded."""


class SnapshotNotFoundError(SnapshotStoreError):
    """No snapshot file (and no fallback) for the requested node."""


class FileStore:
    """Reads snapshot payloads from JSON files on disk."""

    def __init__(self, directory: str | Path, fallback_file: Optional[str] = "default.json") -> None:
        self.directory = Path(directory)
        self.fallback_file = fallback_file

    def get_by_node(self, node_name: str) -> Snapshot:
        """Load the node's snapshot, or the fallback snapshot.

        Raises:
            SnapshotNotFoundError: Neither file exists.
            SnapshotStoreError: A file exists but is not a valid snapshot.
        """
        primary = self.directory / f"{node_name}.json"
        if primary.is_file():
            payload = _load_snapshot(primary)
        elif self.fallback_file:
            fallback = self.directory / self.fallback_file
            if not fallback.is_file():
                raise SnapshotNotFoundError(f"snapshot not found for node {node_name}")
            logger.debug("serving fallback snapshot node=%s path=%s", node_name, fallback)
            payload = _load_snapshot(fallback)
        else:
            raise SnapshotNotFoundError(f"snapshot not found for node {node_name}")

        if not payload.metadata.node_name:
            payload.metadata.node_name = node_name
        return payload

    def save(self, snapshot: Snapshot, node_name: Optional[str] = None) -> Path:
        """Write *snapshot* as ``<directory>/<node>.json`` and return the path."""
        name = node_name or snapshot.metadata.node_name
        if not name:
            raise SnapshotStoreError("node name is required to save a snapshot")
        return write_snapshot(snapshot, self.directory / f"{name}.json")


def write_snapshot(snapshot: Snapshot, path: str | Path) -> Path:
    """Write the wire form of *snapshot* to *path*, creating parent directories."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(snapshot.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8")
    return p


def _load_snapshot(path: Path) -> Snapshot:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotStoreError(f"read snapshot {path}: {exc}") from exc
    try:
        return Snapshot.model_validate_json(raw)
    except ValidationError as exc:
        raise SnapshotStoreError(f"decode snapshot {path}: {exc}") from exc
