"""Compare two snapshots of the task collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from todoist_cli.normalize import CanonicalTask, normalize


@dataclass(frozen=True)
class Modification:
    before: CanonicalTask
    after: CanonicalTask

    def to_dict(self) -> dict[str, Any]:
        return {"before": self.before.to_dict(), "after": self.after.to_dict()}


@dataclass
class DiffResult:
    added: list[CanonicalTask] = field(default_factory=list)
    removed: list[CanonicalTask] = field(default_factory=list)
    completed: list[CanonicalTask] = field(default_factory=list)
    reopened: list[CanonicalTask] = field(default_factory=list)
    modified: list[Modification] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any((self.added, self.removed, self.completed, self.reopened, self.modified))

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": [task.to_dict() for task in self.added],
            "removed": [task.to_dict() for task in self.removed],
            "completed": [task.to_dict() for task in self.completed],
            "reopened": [task.to_dict() for task in self.reopened],
            "modified": [item.to_dict() for item in self.modified],
        }


def _index(tasks: Iterable[Mapping[str, Any]]) -> dict[Any, CanonicalTask]:
    canonical = (normalize(task) for task in tasks)
    return {task.id: task for task in canonical}


def diff_snapshots(
    previous: Iterable[Mapping[str, Any]],
    current: Iterable[Mapping[str, Any]],
) -> DiffResult:
    """Categorize what changed between ``previous`` and ``current``.

    A task present on both sides can land in ``completed``/``reopened`` and in
    ``modified`` at once; ``modified`` entries keep the completion flag so the
    status change is visible next to the field changes.
    """
    before = _index(previous)
    after = _index(current)
    result = DiffResult()

    for task_id, task in after.items():
        if task_id not in before:
            result.added.append(task)

    for task_id, old in before.items():
        new = after.get(task_id)
        if new is None:
            result.removed.append(old)
            continue
        if not old.is_completed and new.is_completed:
            result.completed.append(new)
        elif old.is_completed and not new.is_completed:
            result.reopened.append(new)
        # is_completed is excluded from equality
        if old != new:
            result.modified.append(Modification(old, new))

    return result
