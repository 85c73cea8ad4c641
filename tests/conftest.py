"""
Pytest configuration and shared fixtures for todoist-cli tests.

Remote calls go through ``httpx.MockTransport`` to an in-memory fake of the
Todoist REST API that records every request it receives.
"""

import json
import re
from urllib.parse import unquote

import httpx
import pytest

from todoist_cli.cli import AppState
from todoist_cli.client import TodoistClient
from todoist_cli.config import Config

BASE_URL = "https://todoist.test/rest/v2"
TOKEN = "test-token"


class FakeTodoist:
    """Just enough of the Todoist REST API for the CLI and the batch layer."""

    def __init__(self):
        self.tasks = {}
        self.projects = {}
        self.labels = {}
        self.comments = {}
        self.filters = {}
        self.requests = []
        self._next_id = 1000

    # Seeding

    def add_task(self, task_id, content, **fields):
        task = {
            "id": task_id,
            "content": content,
            "description": "",
            "project_id": None,
            "section_id": None,
            "parent_id": None,
            "order": 1,
            "labels": [],
            "priority": 1,
            "due": None,
            "is_completed": False,
        }
        task.update(fields)
        self.tasks[task_id] = task
        return task

    def _new_id(self):
        self._next_id += 1
        return str(self._next_id)

    @property
    def mutations(self):
        return [(method, path) for method, path in self.requests if method != "GET"]

    # Transport

    @property
    def transport(self):
        return httpx.MockTransport(self.handle)

    def handle(self, request):
        # raw path, so escaped ids stay a single segment
        path = request.url.raw_path.decode("ascii").split("?", 1)[0].removeprefix("/rest/v2")
        self.requests.append((request.method, path))
        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return httpx.Response(401, text="Unauthorized")
        body = json.loads(request.content) if request.content else {}
        params = dict(request.url.params)

        for pattern, handler in self._routes():
            match = re.fullmatch(pattern, f"{request.method} {path}")
            if match:
                return handler(params, body, *(unquote(group) for group in match.groups()))
        return httpx.Response(404, text="Not found")

    def _routes(self):
        return [
            (r"GET /tasks", self._list_tasks),
            (r"POST /tasks", self._create_task),
            (r"GET /tasks/([^/]+)", self._get_task),
            (r"POST /tasks/([^/]+)", self._update_task),
            (r"DELETE /tasks/([^/]+)", self._delete_task),
            (r"POST /tasks/([^/]+)/close", self._close_task),
            (r"POST /tasks/([^/]+)/reopen", self._reopen_task),
            (r"GET /projects", lambda p, b: httpx.Response(200, json=list(self.projects.values()))),
            (r"GET /labels", lambda p, b: httpx.Response(200, json=list(self.labels.values()))),
            (r"GET /comments", self._list_comments),
            (r"POST /comments", self._create_comment),
        ]

    def _missing(self, task_id):
        return httpx.Response(404, text=f"Task {task_id} not found")

    def _list_tasks(self, params, body):
        tasks = [task for task in self.tasks.values() if not task["is_completed"]]
        if "project_id" in params:
            tasks = [task for task in tasks if task["project_id"] == params["project_id"]]
        if "label_id" in params:
            tasks = [task for task in tasks if params["label_id"] in task["labels"]]
        if "filter" in params:
            wanted = self.filters.get(params["filter"], [])
            tasks = [task for task in tasks if task["id"] in wanted]
        if "ids" in params:
            wanted = params["ids"].split(",")
            tasks = [task for task in tasks if task["id"] in wanted]
        return httpx.Response(200, json=tasks)

    def _create_task(self, params, body):
        task = self.add_task(self._new_id(), body.pop("content"), **body)
        return httpx.Response(200, json=task)

    def _get_task(self, params, body, task_id):
        if task_id not in self.tasks:
            return self._missing(task_id)
        return httpx.Response(200, json=self.tasks[task_id])

    def _update_task(self, params, body, task_id):
        if task_id not in self.tasks:
            return self._missing(task_id)
        self.tasks[task_id].update(body)
        return httpx.Response(200, json=self.tasks[task_id])

    def _delete_task(self, params, body, task_id):
        if self.tasks.pop(task_id, None) is None:
            return self._missing(task_id)
        return httpx.Response(204)

    def _close_task(self, params, body, task_id):
        if task_id not in self.tasks:
            return self._missing(task_id)
        if self.tasks[task_id]["is_completed"]:
            return httpx.Response(400, text="Task is already completed")
        self.tasks[task_id]["is_completed"] = True
        return httpx.Response(204)

    def _reopen_task(self, params, body, task_id):
        if task_id not in self.tasks:
            return self._missing(task_id)
        self.tasks[task_id]["is_completed"] = False
        return httpx.Response(204)

    def _list_comments(self, params, body):
        comments = [
            comment
            for comment in self.comments.values()
            if all(comment.get(key) == params[key] for key in ("task_id", "project_id") if key in params)
        ]
        return httpx.Response(200, json=comments)

    def _create_comment(self, params, body):
        comment = dict(body, id=self._new_id(), posted_at="2024-01-15T10:00:00Z")
        self.comments[comment["id"]] = comment
        return httpx.Response(200, json=comment)


@pytest.fixture
def fake_service():
    return FakeTodoist()


@pytest.fixture
def client(fake_service):
    with TodoistClient(BASE_URL, TOKEN, transport=fake_service.transport) as api:
        yield api


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    directory = tmp_path / "config"
    monkeypatch.setenv("TODOIST_CLI_CONFIG_DIR", str(directory))
    return directory


@pytest.fixture
def app_state(fake_service, config_dir):
    """CLI state wired to the fake service, passed to CliRunner as ``obj``."""
    config = Config(token=TOKEN, base_url=BASE_URL, color=False, config_dir=config_dir)
    return AppState(config=config, transport=fake_service.transport)
