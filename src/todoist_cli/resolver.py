"""Resolve the set of tasks a batch command acts on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from todoist_cli.client import TodoistClient
from todoist_cli.errors import NoTargetsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSpec:
    filter_query: str | None = None
    project_id: str | None = None
    label_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.filter_query or self.project_id or self.label_id)


def resolve_targets(
    client: TodoistClient,
    explicit_ids: Iterable[Any] = (),
    filter_spec: FilterSpec | None = None,
) -> list[Any]:
    """Return explicit IDs followed by filter matches, deduplicated in first-seen order.

    Existence is not checked here; a stale ID fails later in the batch.
    Raises :class:`NoTargetsError` when nothing is left to act on.
    """
    candidates = list(explicit_ids)
    if filter_spec is not None and not filter_spec.is_empty:
        tasks = client.get_tasks(
            project_id=filter_spec.project_id,
            label_id=filter_spec.label_id,
            filter_query=filter_spec.filter_query,
        )
        logger.debug("Filter %s matched %d tasks", filter_spec, len(tasks))
        candidates.extend(task["id"] for task in tasks)

    targets = list(dict.fromkeys(candidates))
    if not targets:
        raise NoTargetsError()
    return targets
