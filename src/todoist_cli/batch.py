"""Apply one mutation to many tasks.

Each target gets exactly one remote call. A failing target is recorded and
the batch moves on, so the result always holds one outcome per target in
the order the targets were given.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, fields
from typing import Any, Iterable

from todoist_cli.client import TodoistClient
from todoist_cli.errors import ErrorKind, NoUpdatesError, TodoistAPIError

logger = logging.getLogger(__name__)


class MutationKind(str, enum.Enum):
    CLOSE = "close"
    UPDATE = "update"


class Outcome(str, enum.Enum):
    MUTATED = "mutated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskUpdate:
    """Field changes for a task; ``None`` means "leave as is"."""

    content: str | None = None
    description: str | None = None
    project_id: str | None = None
    labels: list[str] | None = None
    priority: int | None = None
    due_string: str | None = None
    due_date: str | None = None
    due_datetime: str | None = None
    due_lang: str | None = None
    assignee: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.to_payload()

    def to_payload(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class TargetOutcome:
    id: Any
    outcome: Outcome
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "outcome": self.outcome.value}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class BatchResult:
    kind: MutationKind
    outcomes: tuple[TargetOutcome, ...]

    @property
    def has_failures(self) -> bool:
        return any(item.outcome is Outcome.FAILED for item in self.outcomes)

    def ids(self, outcome: Outcome) -> list[Any]:
        return [item.id for item in self.outcomes if item.outcome is outcome]

    def to_list(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.outcomes]


def is_already_closed_error(err: TodoistAPIError) -> bool:
    """Whether a close failure means the task was already completed.

    The API has no dedicated error code for this, so it is detected from the
    message. A not-found response never counts, whatever its wording.
    """
    if err.kind is ErrorKind.NOT_FOUND:
        return False
    return "already" in str(err).lower()


def execute_batch(
    client: TodoistClient,
    targets: Iterable[Any],
    kind: MutationKind,
    payload: TaskUpdate | None = None,
) -> BatchResult:
    """Run ``kind`` against every target and collect per-target outcomes.

    Raises :class:`NoUpdatesError` before any remote call when an update has
    nothing to change.
    """
    targets = list(targets)
    body: dict[str, Any] = {}
    if kind is MutationKind.UPDATE:
        body = payload.to_payload() if payload is not None else {}
        if not body:
            raise NoUpdatesError()

    outcomes = []
    for task_id in targets:
        try:
            if kind is MutationKind.CLOSE:
                client.close_task(task_id)
            else:
                client.update_task(task_id, body)
        except TodoistAPIError as exc:
            if kind is MutationKind.CLOSE and is_already_closed_error(exc):
                outcomes.append(TargetOutcome(task_id, Outcome.UNCHANGED))
                continue
            logger.info("%s failed for task %s: %s", kind.value, task_id, exc)
            outcomes.append(TargetOutcome(task_id, Outcome.FAILED, str(exc)))
            continue
        outcomes.append(TargetOutcome(task_id, Outcome.MUTATED))

    return BatchResult(kind, tuple(outcomes))
