"""
Snapshot storage — Save, load and clear saved match progress.

A snapshot is ``{config, events, cursor}`` plus metadata. Stores only move
snapshots in and out; replaying them is the tracker's job.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol, Union

from matchtrack.config import settings
from matchtrack.models.events import MatchSnapshot

logger = logging.getLogger("matchtrack.engine.storage")

_MATCH_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


class SnapshotStore(Protocol):
    def save(self, snapshot: MatchSnapshot) -> None: ...

    def load(self, match_id: str) -> Optional[MatchSnapshot]: ...

    def clear(self, match_id: str) -> bool: ...


class JsonFileSnapshotStore:
    """One ``<match_id>.json`` file per saved match."""

    def __init__(self, directory: Union[str, Path, None] = None):
        self.directory = Path(directory or settings.SNAPSHOT_DIR)

    def save(self, snapshot: MatchSnapshot) -> None:
        path = self._path(snapshot.match_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
        logger.info(
            "Saved match %s (%d points, cursor %d)",
            snapshot.match_id, len(snapshot.events), snapshot.cursor,
        )

    def load(self, match_id: str) -> Optional[MatchSnapshot]:
        path = self._path(match_id)
        if not path.exists():
            return None
        snapshot = MatchSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
        _check_schema(snapshot)
        logger.info("Loaded match %s from %s", match_id, path)
        return snapshot

    def clear(self, match_id: str) -> bool:
        path = self._path(match_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Cleared saved match %s", match_id)
        return True

    def list_ids(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def _path(self, match_id: str) -> Path:
        if not _MATCH_ID.fullmatch(match_id):
            raise ValueError(f"Invalid match id: {match_id!r}")
        return self.directory / f"{match_id}.json"


class InMemorySnapshotStore:
    """Process-local store, handy for tests and single-session hosts."""

    def __init__(self):
        self._snapshots: dict[str, str] = {}

    def save(self, snapshot: MatchSnapshot) -> None:
        self._snapshots[snapshot.match_id] = snapshot.model_dump_json()

    def load(self, match_id: str) -> Optional[MatchSnapshot]:
        raw = self._snapshots.get(match_id)
        if raw is None:
            return None
        snapshot = MatchSnapshot.model_validate_json(raw)
        _check_schema(snapshot)
        return snapshot

    def clear(self, match_id: str) -> bool:
        return self._snapshots.pop(match_id, None) is not None


def _check_schema(snapshot: MatchSnapshot) -> None:
    if snapshot.schema_version != settings.SNAPSHOT_SCHEMA_VERSION:
        raise ValueError(
            f"Unsupported snapshot schema {snapshot.schema_version} "
            f"(expected {settings.SNAPSHOT_SCHEMA_VERSION})"
        )
