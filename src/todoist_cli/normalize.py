"""Canonical comparison form for task records.

Task payloads differ between API versions: labels arrive as ``labels`` or
``label_ids`` and completion as ``is_completed`` or ``completed``. The
canonical form decodes both, sorts labels, and reduces ``due`` to the
sub-fields that matter for comparison.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

# Ordered preference: the first key present wins.
LABEL_KEYS = ("labels", "label_ids")
COMPLETION_KEYS = ("is_completed", "completed")


@dataclass(frozen=True)
class Due:
    date: str | None = None
    string: str | None = None
    lang: str | None = None
    is_recurring: bool = False


@dataclass(frozen=True)
class CanonicalTask:
    """Reduced task record; equality ignores ``is_completed``."""

    id: Any
    content: str = ""
    description: str = ""
    project_id: Any = None
    section_id: Any = None
    parent_id: Any = None
    order: int | None = None
    labels: tuple[Any, ...] = ()
    priority: int | None = None
    due: Due | None = None
    is_completed: bool = field(default=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["labels"] = list(self.labels)
        return data


def _first_present(raw: Mapping[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def raw_labels(raw: Mapping[str, Any]) -> list[Any]:
    return list(_first_present(raw, LABEL_KEYS, ()))


def is_completed(raw: Mapping[str, Any]) -> bool:
    return bool(_first_present(raw, COMPLETION_KEYS, False))


def _normalize_due(value: Any) -> Due | None:
    if not value:
        return None
    if isinstance(value, str):
        return Due(string=value)
    return Due(
        date=value.get("date"),
        string=value.get("string"),
        lang=value.get("lang"),
        is_recurring=bool(value.get("is_recurring", False)),
    )


def normalize(raw: Mapping[str, Any]) -> CanonicalTask:
    """Project a raw task record into its canonical form."""
    return CanonicalTask(
        id=raw.get("id"),
        content=raw.get("content") or "",
        description=raw.get("description") or "",
        project_id=raw.get("project_id"),
        section_id=raw.get("section_id"),
        parent_id=raw.get("parent_id"),
        order=raw.get("order"),
        labels=tuple(sorted(raw_labels(raw), key=str)),
        priority=raw.get("priority"),
        due=_normalize_due(raw.get("due")),
        is_completed=is_completed(raw),
    )
