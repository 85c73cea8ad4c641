import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Optional

import httpx
import typer

from todoist_cli.batch import BatchResult, MutationKind, TaskUpdate, execute_batch
from todoist_cli.client import TodoistClient, fetch_lookups
from todoist_cli.config import Config, load_config, save_config
from todoist_cli.diff import diff_snapshots
from todoist_cli.errors import NoUpdatesError, TodoistCLIError
from todoist_cli.render import Renderer
from todoist_cli.resolver import FilterSpec, resolve_targets
from todoist_cli.snapshot import ReadStatus, SnapshotStore

logger = logging.getLogger(__name__)


class OutputFormat(str, enum.Enum):
    table = "table"
    json = "json"
    detail = "detail"


@dataclass
class AppState:
    config: Config
    renderer: Renderer = field(default_factory=Renderer)
    transport: Optional[httpx.BaseTransport] = None

    def client(self) -> TodoistClient:
        return TodoistClient.from_config(self.config, transport=self.transport)


app = typer.Typer(name="todoist", no_args_is_help=True, help="Command line access to the Todoist REST API.")
auth_app = typer.Typer(name="auth", no_args_is_help=True, help="Authentication management.")
task_app = typer.Typer(name="task", no_args_is_help=True, help="Show and edit a single task.")
project_app = typer.Typer(name="project", no_args_is_help=True, help="Show and edit a single project.")
label_app = typer.Typer(name="label", no_args_is_help=True, help="Show and edit a single label.")
comment_app = typer.Typer(name="comment", no_args_is_help=True, help="Show and edit a single comment.")
batch_app = typer.Typer(name="batch", no_args_is_help=True, help="Apply one change to many tasks.")

app.add_typer(auth_app)
app.add_typer(task_app)
app.add_typer(project_app)
app.add_typer(label_app)
app.add_typer(comment_app)
app.add_typer(batch_app)


@app.callback()
def main(
    ctx: typer.Context,
    fmt: Optional[OutputFormat] = typer.Option(None, "--format", help="Output format (default from config)."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log API calls to stderr."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state = ctx.obj if isinstance(ctx.obj, AppState) else AppState(config=load_config())
    state.renderer = Renderer(
        fmt.value if fmt else state.config.default_format,
        color=state.config.color and not no_color,
    )
    ctx.obj = state


@contextmanager
def _reporting(state: AppState) -> Iterator[None]:
    try:
        yield
    except TodoistCLIError as exc:
        state.renderer.error(str(exc))
        raise typer.Exit(code=1) from exc


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def _task_update(
    content: Optional[str],
    description: Optional[str],
    project: Optional[str],
    labels: Optional[str],
    priority: Optional[int],
    due_string: Optional[str],
    due_date: Optional[str],
    due_datetime: Optional[str],
    due_lang: Optional[str],
    assignee: Optional[str],
) -> TaskUpdate:
    return TaskUpdate(
        content=content,
        description=description,
        project_id=project,
        labels=_split_csv(labels),
        priority=priority,
        due_string=due_string,
        due_date=due_date,
        due_datetime=due_datetime,
        due_lang=due_lang,
        assignee=assignee,
    )


def _favorite_updates(favorite: Optional[bool], **fields: Any) -> dict:
    updates = {key: value for key, value in fields.items() if value is not None}
    if favorite is not None:
        updates["is_favorite"] = favorite
    if not updates:
        raise NoUpdatesError()
    return updates


# Auth


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    token: str = typer.Option(..., "--token", help="Todoist API token (Settings > Integrations)."),
) -> None:
    """Store the Todoist API token."""
    state: AppState = ctx.obj
    state.config = state.config.with_token(token)
    save_config(state.config)
    state.renderer.success("Todoist token saved.")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show current authentication status."""
    state: AppState = ctx.obj
    if not state.config.token:
        state.renderer.warning("Not authenticated. Run `todoist auth login --token <API_TOKEN>`.")
        raise typer.Exit(code=1)
    state.renderer.success("Authenticated against Todoist.")
    state.renderer.info(f"Base URL: {state.config.base_url}")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Clear stored credentials."""
    state: AppState = ctx.obj
    state.config = state.config.with_token(None)
    save_config(state.config)
    state.renderer.info("Todoist token removed.")


# Tasks


@app.command("tasks")
def list_tasks(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", help="Filter by project ID."),
    label: Optional[str] = typer.Option(None, "--label", help="Filter by label ID."),
    filter_query: Optional[str] = typer.Option(None, "--filter", help='Todoist filter query, e.g. "today & @work".'),
    ids: Optional[str] = typer.Option(None, "--ids", help="Comma-separated task IDs."),
    with_lookups: bool = typer.Option(False, "--with-lookups", help="Fetch projects and labels to show names."),
) -> None:
    """List tasks."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        tasks = client.get_tasks(
            project_id=project, label_id=label, filter_query=filter_query, ids=_split_csv(ids)
        )
        lookups = fetch_lookups(client) if with_lookups else None
    state.renderer.task_list(tasks, lookups)


@task_app.command("show")
def task_show(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID."),
    with_lookups: bool = typer.Option(False, "--with-lookups", help="Fetch projects and labels to show names."),
) -> None:
    """Show a specific task."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        task = client.get_task(task_id)
        lookups = fetch_lookups(client) if with_lookups else None
    state.renderer.task(task, lookups)


@task_app.command("add")
def task_add(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="Task content."),
    description: Optional[str] = typer.Option(None, "--description", help="Task description."),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID."),
    labels: Optional[str] = typer.Option(None, "--labels", help="Comma-separated label names."),
    priority: Optional[int] = typer.Option(None, "--priority", min=1, max=4, help="Priority, 1 (low) to 4 (urgent)."),
    due_string: Optional[str] = typer.Option(None, "--due-string", help='Natural language due date, e.g. "tomorrow 18:00".'),
    due_date: Optional[str] = typer.Option(None, "--due-date", help="Due date (YYYY-MM-DD)."),
    due_datetime: Optional[str] = typer.Option(None, "--due-datetime", help="Due date and time (ISO 8601)."),
    due_lang: Optional[str] = typer.Option(None, "--due-lang", help="Language of --due-string (en, de, ...)."),
    assignee: Optional[str] = typer.Option(None, "--assignee", help="Assignee user ID."),
) -> None:
    """Create a new task."""
    state: AppState = ctx.obj
    payload = _task_update(
        content, description, project, labels, priority, due_string, due_date, due_datetime, due_lang, assignee
    ).to_payload()
    with _reporting(state), state.client() as client:
        task = client.create_task(payload)
        lookups = fetch_lookups(client)
    state.renderer.success("Task created.")
    state.renderer.task(task, lookups)


@task_app.command("update")
def task_update(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID."),
    content: Optional[str] = typer.Option(None, "--content", help="Task content."),
    description: Optional[str] = typer.Option(None, "--description", help="Task description."),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID."),
    labels: Optional[str] = typer.Option(None, "--labels", help="Comma-separated label names."),
    priority: Optional[int] = typer.Option(None, "--priority", min=1, max=4, help="Priority, 1 (low) to 4 (urgent)."),
    due_string: Optional[str] = typer.Option(None, "--due-string", help="Natural language due date."),
    due_date: Optional[str] = typer.Option(None, "--due-date", help="Due date (YYYY-MM-DD)."),
    due_datetime: Optional[str] = typer.Option(None, "--due-datetime", help="Due date and time (ISO 8601)."),
    due_lang: Optional[str] = typer.Option(None, "--due-lang", help="Language of --due-string (en, de, ...)."),
    assignee: Optional[str] = typer.Option(None, "--assignee", help="Assignee user ID."),
) -> None:
    """Update an existing task."""
    state: AppState = ctx.obj
    update = _task_update(
        content, description, project, labels, priority, due_string, due_date, due_datetime, due_lang, assignee
    )
    with _reporting(state):
        if update.is_empty:
            raise NoUpdatesError()
        with state.client() as client:
            client.update_task(task_id, update.to_payload())
            task = client.get_task(task_id)
            lookups = fetch_lookups(client)
    state.renderer.success("Task updated.")
    state.renderer.task(task, lookups)


@task_app.command("close")
def task_close(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID.")) -> None:
    """Close (complete) a task."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.close_task(task_id)
    state.renderer.success(f"Task {task_id} closed.")


@task_app.command("reopen")
def task_reopen(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID.")) -> None:
    """Reopen a closed task."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.reopen_task(task_id)
    state.renderer.success(f"Task {task_id} reopened.")


@task_app.command("delete")
def task_delete(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID.")) -> None:
    """Delete a task."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.delete_task(task_id)
    state.renderer.success(f"Task {task_id} deleted.")


# Projects


@app.command("projects")
def list_projects(ctx: typer.Context) -> None:
    """List projects."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        projects = client.get_projects()
    state.renderer.project_list(projects)


@project_app.command("show")
def project_show(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project ID.")) -> None:
    """Show a project."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        project = client.get_project(project_id)
    state.renderer.project(project)


@project_app.command("add")
def project_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Project name."),
    color: Optional[str] = typer.Option(None, "--color", help="Project color."),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent project ID."),
    favorite: bool = typer.Option(False, "--favorite", help="Mark as favorite."),
) -> None:
    """Create a new project."""
    state: AppState = ctx.obj
    payload = {"name": name, "color": color, "parent_id": parent, "is_favorite": favorite or None}
    with _reporting(state), state.client() as client:
        project = client.create_project(payload)
    state.renderer.success("Project created.")
    state.renderer.project(project)


@project_app.command("update")
def project_update(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID."),
    name: Optional[str] = typer.Option(None, "--name", help="Project name."),
    color: Optional[str] = typer.Option(None, "--color", help="Project color."),
    favorite: Optional[bool] = typer.Option(None, "--favorite/--unfavorite", help="Set or clear the favorite flag."),
) -> None:
    """Update a project."""
    state: AppState = ctx.obj
    with _reporting(state):
        updates = _favorite_updates(favorite, name=name, color=color)
        with state.client() as client:
            client.update_project(project_id, updates)
            project = client.get_project(project_id)
    state.renderer.success("Project updated.")
    state.renderer.project(project)


@project_app.command("delete")
def project_delete(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project ID.")) -> None:
    """Delete a project."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.delete_project(project_id)
    state.renderer.success(f"Project {project_id} deleted.")


# Labels


@app.command("labels")
def list_labels(ctx: typer.Context) -> None:
    """List labels."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        labels = client.get_labels()
    state.renderer.label_list(labels)


@label_app.command("show")
def label_show(ctx: typer.Context, label_id: str = typer.Argument(..., help="Label ID.")) -> None:
    """Show a label."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        label = client.get_label(label_id)
    state.renderer.label(label)


@label_app.command("add")
def label_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Label name."),
    color: Optional[str] = typer.Option(None, "--color", help="Label color."),
    order: Optional[int] = typer.Option(None, "--order", help="Sort order."),
    favorite: bool = typer.Option(False, "--favorite", help="Mark as favorite."),
) -> None:
    """Create a new label."""
    state: AppState = ctx.obj
    payload = {"name": name, "color": color, "order": order, "is_favorite": favorite or None}
    with _reporting(state), state.client() as client:
        label = client.create_label(payload)
    state.renderer.success("Label created.")
    state.renderer.label(label)


@label_app.command("update")
def label_update(
    ctx: typer.Context,
    label_id: str = typer.Argument(..., help="Label ID."),
    name: Optional[str] = typer.Option(None, "--name", help="Label name."),
    color: Optional[str] = typer.Option(None, "--color", help="Label color."),
    order: Optional[int] = typer.Option(None, "--order", help="Sort order."),
    favorite: Optional[bool] = typer.Option(None, "--favorite/--unfavorite", help="Set or clear the favorite flag."),
) -> None:
    """Update a label."""
    state: AppState = ctx.obj
    with _reporting(state):
        updates = _favorite_updates(favorite, name=name, color=color, order=order)
        with state.client() as client:
            client.update_label(label_id, updates)
            label = client.get_label(label_id)
    state.renderer.success("Label updated.")
    state.renderer.label(label)


@label_app.command("delete")
def label_delete(ctx: typer.Context, label_id: str = typer.Argument(..., help="Label ID.")) -> None:
    """Delete a label."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.delete_label(label_id)
    state.renderer.success(f"Label {label_id} deleted.")


# Comments


@app.command("comments")
def list_comments(
    ctx: typer.Context,
    task: Optional[str] = typer.Option(None, "--task", help="Task ID to fetch comments for."),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID to fetch comments for."),
) -> None:
    """List comments attached to a task or project."""
    state: AppState = ctx.obj
    if not task and not project:
        raise typer.BadParameter("Provide --task or --project to list comments.")
    with _reporting(state), state.client() as client:
        comments = client.get_comments(task_id=task, project_id=project)
    state.renderer.comment_list(comments)


@comment_app.command("show")
def comment_show(ctx: typer.Context, comment_id: str = typer.Argument(..., help="Comment ID.")) -> None:
    """Show a comment."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        comment = client.get_comment(comment_id)
    state.renderer.comment_list([comment])


@comment_app.command("add")
def comment_add(
    ctx: typer.Context,
    content: str = typer.Option(..., "--content", help="Comment text."),
    task: Optional[str] = typer.Option(None, "--task", help="Task ID."),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID."),
) -> None:
    """Add a comment to a task or project."""
    state: AppState = ctx.obj
    if not task and not project:
        raise typer.BadParameter("Provide --task or --project to attach the comment.")
    if task and project:
        raise typer.BadParameter("Choose either --task or --project, not both.")
    with _reporting(state), state.client() as client:
        comment = client.create_comment({"content": content, "task_id": task, "project_id": project})
    state.renderer.success("Comment created.")
    state.renderer.comment_list([comment])


@comment_app.command("update")
def comment_update(
    ctx: typer.Context,
    comment_id: str = typer.Argument(..., help="Comment ID."),
    content: str = typer.Option(..., "--content", help="New comment text."),
) -> None:
    """Update an existing comment."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.update_comment(comment_id, {"content": content})
        comment = client.get_comment(comment_id)
    state.renderer.success("Comment updated.")
    state.renderer.comment_list([comment])


@comment_app.command("delete")
def comment_delete(ctx: typer.Context, comment_id: str = typer.Argument(..., help="Comment ID.")) -> None:
    """Delete a comment."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        client.delete_comment(comment_id)
    state.renderer.success(f"Comment {comment_id} deleted.")


# Batch


def _finish_batch(state: AppState, result: BatchResult) -> None:
    state.renderer.batch_result(result)
    if result.has_failures:
        raise typer.Exit(code=1)


@batch_app.command("close")
def batch_close(
    ctx: typer.Context,
    task_ids: Optional[List[str]] = typer.Argument(None, help="Task IDs to close."),
    filter_query: Optional[str] = typer.Option(None, "--filter", help="Also close tasks matching this filter query."),
    project: Optional[str] = typer.Option(None, "--project", help="Also close tasks in this project."),
    label: Optional[str] = typer.Option(None, "--label", help="Also close tasks with this label."),
) -> None:
    """Close every task given by ID or matched by the filter scope."""
    state: AppState = ctx.obj
    with _reporting(state), state.client() as client:
        targets = resolve_targets(client, task_ids or [], FilterSpec(filter_query, project, label))
        result = execute_batch(client, targets, MutationKind.CLOSE)
    _finish_batch(state, result)


@batch_app.command("update")
def batch_update(
    ctx: typer.Context,
    task_ids: Optional[List[str]] = typer.Argument(None, help="Task IDs to update."),
    filter_query: Optional[str] = typer.Option(None, "--filter", help="Also update tasks matching this filter query."),
    scope_project: Optional[str] = typer.Option(None, "--project", help="Also update tasks in this project."),
    scope_label: Optional[str] = typer.Option(None, "--label", help="Also update tasks with this label."),
    content: Optional[str] = typer.Option(None, "--content", help="Task content."),
    description: Optional[str] = typer.Option(None, "--description", help="Task description."),
    project: Optional[str] = typer.Option(None, "--to-project", help="Move tasks to this project ID."),
    labels: Optional[str] = typer.Option(None, "--labels", help="Comma-separated label names."),
    priority: Optional[int] = typer.Option(None, "--priority", min=1, max=4, help="Priority, 1 (low) to 4 (urgent)."),
    due_string: Optional[str] = typer.Option(None, "--due-string", help="Natural language due date."),
    due_date: Optional[str] = typer.Option(None, "--due-date", help="Due date (YYYY-MM-DD)."),
    due_datetime: Optional[str] = typer.Option(None, "--due-datetime", help="Due date and time (ISO 8601)."),
    due_lang: Optional[str] = typer.Option(None, "--due-lang", help="Language of --due-string (en, de, ...)."),
    assignee: Optional[str] = typer.Option(None, "--assignee", help="Assignee user ID."),
) -> None:
    """Apply the same field changes to every task given by ID or matched by the filter scope."""
    state: AppState = ctx.obj
    update = _task_update(
        content, description, project, labels, priority, due_string, due_date, due_datetime, due_lang, assignee
    )
    with _reporting(state):
        # must fail before the filter query runs
        if update.is_empty:
            raise NoUpdatesError()
        with state.client() as client:
            targets = resolve_targets(client, task_ids or [], FilterSpec(filter_query, scope_project, scope_label))
            result = execute_batch(client, targets, MutationKind.UPDATE, update)
    _finish_batch(state, result)


# Diff


@app.command("diff")
def diff(
    ctx: typer.Context,
    filter_query: Optional[str] = typer.Option(None, "--filter", help="Only compare tasks matching this filter query."),
    project: Optional[str] = typer.Option(None, "--project", help="Only compare tasks in this project."),
    label: Optional[str] = typer.Option(None, "--label", help="Only compare tasks with this label."),
    no_save: bool = typer.Option(False, "--no-save", help="Keep the previous snapshot instead of replacing it."),
    snapshot: Optional[Path] = typer.Option(None, "--snapshot", help="Snapshot file (default in the config dir)."),
) -> None:
    """Show what changed since the last snapshot.

    The API only lists active tasks, so a task closed since the last run shows
    up as removed. Completed and reopened appear only when a snapshot holds
    completed records.
    """
    state: AppState = ctx.obj
    store = SnapshotStore(snapshot or state.config.snapshot_path)
    previous = store.read()
    if previous.status is not ReadStatus.LOADED:
        logger.info("No usable snapshot at %s (%s), comparing against empty", store.path, previous.status.value)

    with _reporting(state), state.client() as client:
        current = client.get_tasks(project_id=project, label_id=label, filter_query=filter_query)

    result = diff_snapshots(previous.tasks, current)
    if not no_save:
        store.write(current)
    state.renderer.diff_result(result)


if __name__ == "__main__":
    app()
