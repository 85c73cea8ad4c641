"""Thin synchronous client for the Todoist REST API.

Every method maps to exactly one HTTP call. Failures surface as
:class:`~todoist_cli.errors.TodoistAPIError` tagged with an
:class:`~todoist_cli.errors.ErrorKind` derived from the response status.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable
from urllib.parse import quote

import httpx

from todoist_cli.config import Config
from todoist_cli.errors import ConfigError, ErrorKind, TodoistAPIError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _drop_empty(values: dict[str, Any] | None, *, drop_blank: bool = False) -> dict[str, Any] | None:
    if values is None:
        return None
    return {
        key: value
        for key, value in values.items()
        if value is not None and not (drop_blank and value == "")
    }


def _segment(value: Any) -> str:
    segment = quote(str(value), safe="")
    # dot segments would be collapsed by URL normalization
    if segment in (".", ".."):
        segment = segment.replace(".", "%2E")
    return segment


def _path(collection: str, resource_id: Any, action: str | None = None) -> str:
    """Build ``/<collection>/<id>[/<action>]`` with the id escaped as one segment."""
    path = f"/{collection}/{_segment(resource_id)}"
    if action:
        path = f"{path}/{action}"
    return path


class TodoistClient:
    """Synchronous Todoist REST client.

    Parameters
    ----------
    base_url:
        API root, e.g. ``https://api.todoist.com/rest/v2``.
    token:
        Personal API token sent as a bearer credential.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, used by tests to swap in a fake service.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not token:
            raise ConfigError(
                "No Todoist API token configured. Run `todoist auth login --token <API_TOKEN>` first."
            )
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url + "/",
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Config, *, transport: httpx.BaseTransport | None = None) -> "TodoistClient":
        return cls(config.base_url, config.token, transport=transport)

    def __enter__(self) -> "TodoistClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one API call and decode the response."""
        path = path.lstrip("/")
        kwargs: dict[str, Any] = {"params": _drop_empty(params, drop_blank=True)}
        if body is not None and method not in ("GET", "HEAD"):
            kwargs["json"] = _drop_empty(body)

        logger.debug("%s %s params=%s", method, path, kwargs["params"])
        try:
            response = self._client.request(method, path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TodoistAPIError(f"Request to {path} failed: {exc}", kind=ErrorKind.UNKNOWN) from exc

        if not response.is_success:
            detail = response.text
            message = f"{response.status_code} {response.reason_phrase}"
            if detail:
                message = f"{message}: {detail}"
            raise TodoistAPIError(message, status=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    # Tasks

    def get_tasks(
        self,
        *,
        project_id: str | None = None,
        label_id: str | None = None,
        filter_query: str | None = None,
        ids: Iterable[Any] | None = None,
    ) -> list[dict[str, Any]]:
        params = {"project_id": project_id, "label_id": label_id, "filter": filter_query}
        if ids:
            params["ids"] = ",".join(str(task_id) for task_id in ids)
        return self.request("GET", "/tasks", params=params) or []

    def get_task(self, task_id: Any) -> dict[str, Any]:
        return self.request("GET", _path("tasks", task_id))

    def create_task(self, task: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/tasks", body=task)

    def update_task(self, task_id: Any, updates: dict[str, Any]) -> Any:
        return self.request("POST", _path("tasks", task_id), body=updates)

    def close_task(self, task_id: Any) -> None:
        self.request("POST", _path("tasks", task_id, "close"))

    def reopen_task(self, task_id: Any) -> None:
        self.request("POST", _path("tasks", task_id, "reopen"))

    def delete_task(self, task_id: Any) -> None:
        self.request("DELETE", _path("tasks", task_id))

    # Projects

    def get_projects(self) -> list[dict[str, Any]]:
        return self.request("GET", "/projects") or []

    def get_project(self, project_id: str) -> dict[str, Any]:
        return self.request("GET", _path("projects", project_id))

    def create_project(self, project: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/projects", body=project)

    def update_project(self, project_id: str, updates: dict[str, Any]) -> Any:
        return self.request("POST", _path("projects", project_id), body=updates)

    def delete_project(self, project_id: str) -> None:
        self.request("DELETE", _path("projects", project_id))

    # Labels

    def get_labels(self) -> list[dict[str, Any]]:
        return self.request("GET", "/labels") or []

    def get_label(self, label_id: str) -> dict[str, Any]:
        return self.request("GET", _path("labels", label_id))

    def create_label(self, label: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/labels", body=label)

    def update_label(self, label_id: str, updates: dict[str, Any]) -> Any:
        return self.request("POST", _path("labels", label_id), body=updates)

    def delete_label(self, label_id: str) -> None:
        self.request("DELETE", _path("labels", label_id))

    # Comments

    def get_comments(self, *, task_id: str | None = None, project_id: str | None = None) -> list[dict[str, Any]]:
        return self.request("GET", "/comments", params={"task_id": task_id, "project_id": project_id}) or []

    def get_comment(self, comment_id: str) -> dict[str, Any]:
        return self.request("GET", _path("comments", comment_id))

    def create_comment(self, comment: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/comments", body=comment)

    def update_comment(self, comment_id: str, updates: dict[str, Any]) -> Any:
        return self.request("POST", _path("comments", comment_id), body=updates)

    def delete_comment(self, comment_id: str) -> None:
        self.request("DELETE", _path("comments", comment_id))


def fetch_lookups(client: TodoistClient) -> dict[str, dict[Any, dict[str, Any]]]:
    """Fetch projects and labels concurrently, keyed by id for display."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        projects = pool.submit(client.get_projects)
        labels = pool.submit(client.get_labels)
        return {
            "projects": {project["id"]: project for project in projects.result()},
            "labels": {label["id"]: label for label in labels.result()},
        }
