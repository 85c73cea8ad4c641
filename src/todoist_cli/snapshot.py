"""Last-known task snapshot kept on disk as a JSON array."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ReadStatus(str, enum.Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class SnapshotRead:
    status: ReadStatus
    tasks: list[dict[str, Any]] = field(default_factory=list)


class SnapshotStore:
    """Reads and replaces the snapshot file.

    Neither operation raises: a missing or broken snapshot reads as empty and
    a failed write is logged and reported through the return value.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> SnapshotRead:
        if not self.path.exists():
            return SnapshotRead(ReadStatus.NOT_FOUND)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, exc)
            return SnapshotRead(ReadStatus.UNREADABLE)
        if not isinstance(data, list) or not all(isinstance(task, dict) for task in data):
            logger.warning("Ignoring snapshot %s: expected a JSON array of task objects", self.path)
            return SnapshotRead(ReadStatus.UNREADABLE)
        return SnapshotRead(ReadStatus.LOADED, data)

    def write(self, tasks: list[dict[str, Any]]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(tasks, indent=2) + "\n", encoding="utf-8")
        except (OSError, TypeError) as exc:
            logger.warning("Could not write snapshot %s: %s", self.path, exc)
            return False
        return True
