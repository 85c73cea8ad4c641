"""Terminal output: rich tables, detail views, JSON and grouped summaries."""

from __future__ import annotations

import json
from dataclasses import fields
from datetime import datetime
from typing import Any, Iterable, Mapping

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from todoist_cli.batch import BatchResult, MutationKind, Outcome
from todoist_cli.diff import DiffResult, Modification
from todoist_cli.normalize import CanonicalTask, is_completed, raw_labels

EMPTY = "-"

Lookups = Mapping[str, Mapping[Any, Mapping[str, Any]]]


def truncate(text: str | None, length: int = 60) -> str:
    if not text:
        return ""
    if len(text) <= length:
        return text
    return text[: length - 3] + "..."


def format_date(value: str | None) -> str:
    if not value:
        return EMPTY
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def format_due(due: Any) -> str:
    if not due:
        return "no due"
    if isinstance(due, str):
        return due
    if due.get("string") and due.get("date"):
        return f"{due['string']} ({due['date']})"
    return due.get("date") or due.get("string") or "no due"


def changed_fields(item: Modification) -> list[str]:
    return [
        f.name
        for f in fields(CanonicalTask)
        if f.compare and getattr(item.before, f.name) != getattr(item.after, f.name)
    ]


class Renderer:
    """Writes command output to stdout and diagnostics to stderr."""

    def __init__(self, fmt: str = "table", color: bool = True) -> None:
        self.fmt = fmt
        self.color = color
        self.console = Console(no_color=not color, highlight=False)
        self.err_console = Console(stderr=True, no_color=not color, highlight=False)

    @property
    def is_json(self) -> bool:
        return self.fmt == "json"

    # Messages

    def _say(self, message: str, style: str, *, stderr: bool = False) -> None:
        console = self.err_console if stderr else self.console
        console.print(Text(message, style=style if self.color else ""))

    def success(self, message: str) -> None:
        self._say(message, "green")

    def info(self, message: str) -> None:
        self._say(message, "blue")

    def warning(self, message: str) -> None:
        self._say(message, "yellow")

    def error(self, message: str) -> None:
        self._say(message, "red", stderr=True)

    def json(self, data: Any) -> None:
        typer.echo(json.dumps(data, indent=2, default=str))

    # Records

    def _table(self, *columns: str) -> Table:
        table = Table(header_style="bold cyan" if self.color else "bold")
        for column in columns:
            table.add_column(column)
        return table

    def _project_name(self, task: Mapping[str, Any], lookups: Lookups | None) -> str:
        project = (lookups or {}).get("projects", {}).get(task.get("project_id"))
        if project:
            return project.get("name") or EMPTY
        return str(task.get("project_id") or EMPTY)

    def _label_names(self, task: Mapping[str, Any], lookups: Lookups | None) -> str:
        known = (lookups or {}).get("labels", {})
        names = [str(known.get(label, {}).get("name") or label) for label in raw_labels(task)]
        return ", ".join(names) if names else EMPTY

    def _priority(self, priority: Any) -> Text:
        mapping = {1: "1 (low)", 2: "2", 3: "3 (high)", 4: "4 (urgent)"}
        text = mapping.get(priority, EMPTY)
        if priority == 4 and self.color:
            return Text(text, style="bold red")
        return Text(text)

    def _status(self, task: Mapping[str, Any]) -> Text:
        if is_completed(task):
            return Text("completed", style="dim" if self.color else "")
        return Text("open", style="green" if self.color else "")

    def _flag(self, value: Any) -> Text:
        if value:
            return Text("yes", style="green" if self.color else "")
        return Text("no", style="dim" if self.color else "")

    def task_list(self, tasks: list[dict[str, Any]], lookups: Lookups | None = None) -> None:
        if self.is_json:
            self.json(tasks)
            return
        if not tasks:
            self.warning("No tasks found.")
            return
        table = self._table("ID", "Content", "Project", "Labels", "Priority", "Due", "Status")
        for task in tasks:
            table.add_row(
                str(task.get("id")),
                Text(truncate(task.get("content"), 50)),
                Text(self._project_name(task, lookups)),
                Text(self._label_names(task, lookups)),
                self._priority(task.get("priority")),
                Text(format_due(task.get("due"))),
                self._status(task),
            )
        self.console.print(table)

    def task(self, task: dict[str, Any], lookups: Lookups | None = None) -> None:
        if self.is_json:
            self.json(task)
            return
        lines = [
            Text(task.get("content") or "", style="bold" if self.color else ""),
            Text(""),
            Text(f"ID: {task.get('id')}"),
            Text(f"Project: {self._project_name(task, lookups)}"),
            Text(f"Labels: {self._label_names(task, lookups)}"),
            Text("Priority: ").append_text(self._priority(task.get("priority"))),
            Text(f"Due: {format_due(task.get('due'))}"),
        ]
        if task.get("description"):
            lines += [Text(""), Text(task["description"])]
        lines += [
            Text(""),
            Text(f"Created: {format_date(task.get('created_at') or task.get('created'))}"),
            Text(f"Updated: {format_date(task.get('updated_at') or task.get('updated'))}"),
            Text("Status: ").append_text(self._status(task)),
        ]
        for line in lines:
            self.console.print(line)

    def project_list(self, projects: list[dict[str, Any]]) -> None:
        if self.is_json:
            self.json(projects)
            return
        if not projects:
            self.warning("No projects found.")
            return
        table = self._table("ID", "Name", "Color", "Favorite", "Order")
        for project in projects:
            table.add_row(
                str(project.get("id")),
                Text(truncate(project.get("name"), 40)),
                project.get("color") or EMPTY,
                self._flag(project.get("is_favorite") or project.get("favorite")),
                str(project.get("order", EMPTY)),
            )
        self.console.print(table)

    def project(self, project: dict[str, Any]) -> None:
        if self.is_json:
            self.json(project)
            return
        self.console.print(Text(project.get("name") or "", style="bold" if self.color else ""))
        self.console.print()
        self.console.print(Text(f"ID: {project.get('id')}"))
        self.console.print(Text(f"Color: {project.get('color') or EMPTY}"))
        self.console.print(Text(f"Comment count: {project.get('comment_count') or 0}"))
        self.console.print(Text("Favorite: ").append_text(
            self._flag(project.get("is_favorite") or project.get("favorite"))
        ))
        self.console.print(Text(f"Order: {project.get('order', EMPTY)}"))

    def label_list(self, labels: list[dict[str, Any]]) -> None:
        if self.is_json:
            self.json(labels)
            return
        if not labels:
            self.warning("No labels found.")
            return
        table = self._table("ID", "Name", "Color", "Favorite", "Order")
        for label in labels:
            table.add_row(
                str(label.get("id")),
                Text(truncate(label.get("name"), 30)),
                label.get("color") or EMPTY,
                self._flag(label.get("is_favorite") or label.get("favorite")),
                str(label.get("order", EMPTY)),
            )
        self.console.print(table)

    def label(self, label: dict[str, Any]) -> None:
        if self.is_json:
            self.json(label)
            return
        self.console.print(Text(label.get("name") or "", style="bold" if self.color else ""))
        self.console.print()
        self.console.print(Text(f"ID: {label.get('id')}"))
        self.console.print(Text(f"Color: {label.get('color') or EMPTY}"))
        self.console.print(Text("Favorite: ").append_text(
            self._flag(label.get("is_favorite") or label.get("favorite"))
        ))
        self.console.print(Text(f"Order: {label.get('order', EMPTY)}"))

    def comment_list(self, comments: list[dict[str, Any]]) -> None:
        if self.is_json:
            self.json(comments)
            return
        if not comments:
            self.warning("No comments found.")
            return
        table = self._table("ID", "Target", "Content", "Posted")
        for comment in comments:
            if comment.get("task_id"):
                target = f"task:{comment['task_id']}"
            elif comment.get("project_id"):
                target = f"project:{comment['project_id']}"
            else:
                target = EMPTY
            table.add_row(
                str(comment.get("id")),
                target,
                Text(truncate(comment.get("content"), 50)),
                format_date(comment.get("posted_at") or comment.get("added_at") or comment.get("created_at")),
            )
        self.console.print(table)

    # Batch and diff

    def batch_result(self, result: BatchResult) -> None:
        if self.is_json:
            self.json(result.to_list())
            return
        verb = "Closed" if result.kind is MutationKind.CLOSE else "Updated"
        mutated = result.ids(Outcome.MUTATED)
        unchanged = result.ids(Outcome.UNCHANGED)
        failed = [item for item in result.outcomes if item.outcome is Outcome.FAILED]
        if mutated:
            self.success(f"{verb} ({len(mutated)}): {', '.join(map(str, mutated))}")
        if unchanged:
            self.info(f"Unchanged ({len(unchanged)}): {', '.join(map(str, unchanged))}")
        if failed:
            self.error(f"Failed ({len(failed)}):")
            for item in failed:
                self.error(f"  {item.id}: {item.error}")

    def _diff_section(self, title: str, marker: str, tasks: Iterable[CanonicalTask], style: str) -> None:
        tasks = list(tasks)
        if not tasks:
            return
        self._say(f"{title} ({len(tasks)})", f"bold {style}")
        for task in tasks:
            self.console.print(Text(f"  {marker} {task.id} {truncate(task.content, 60)}"))

    def diff_result(self, result: DiffResult) -> None:
        if self.is_json:
            self.json(result.to_dict())
            return
        if not result.has_changes:
            self.info("No changes since the last snapshot.")
            return
        self._diff_section("Added", "+", result.added, "green")
        self._diff_section("Removed", "-", result.removed, "red")
        self._diff_section("Completed", "x", result.completed, "cyan")
        self._diff_section("Reopened", "o", result.reopened, "yellow")
        if result.modified:
            self._say(f"Modified ({len(result.modified)})", "bold magenta")
            for item in result.modified:
                names = ", ".join(changed_fields(item))
                self.console.print(Text(f"  ~ {item.after.id} {truncate(item.after.content, 60)} [{names}]"))
