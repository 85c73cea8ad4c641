"""
Tests for the REST client.
"""

import json

import httpx
import pytest

from todoist_cli.client import TodoistClient, _path, fetch_lookups
from todoist_cli.errors import ConfigError, ErrorKind, TodoistAPIError

from conftest import BASE_URL, TOKEN


def _client(handler):
    return TodoistClient(BASE_URL, TOKEN, transport=httpx.MockTransport(handler))


def test_missing_token_is_a_config_error():
    with pytest.raises(ConfigError, match="auth login"):
        TodoistClient(BASE_URL, None)


def test_request_sends_bearer_token_and_drops_empty_values():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "1"})

    with _client(handler) as client:
        client.request(
            "POST",
            "/tasks",
            params={"a": "1", "b": None, "c": ""},
            body={"content": "x", "description": None},
        )

    assert seen["auth"] == f"Bearer {TOKEN}"
    assert seen["url"] == f"{BASE_URL}/tasks?a=1"
    assert seen["body"] == {"content": "x"}


def test_get_tasks_joins_ids():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[])

    with _client(handler) as client:
        assert client.get_tasks(filter_query="today", ids=["1", "2"]) == []

    assert seen["params"] == {"filter": "today", "ids": "1,2"}


def test_no_content_returns_none():
    with _client(lambda request: httpx.Response(204)) as client:
        assert client.close_task("1") is None


def test_non_json_body_is_returned_as_text():
    with _client(lambda request: httpx.Response(200, text="ok")) as client:
        assert client.request("GET", "/tasks/1") == "ok"


@pytest.mark.parametrize("status, kind", [
    (401, ErrorKind.UNAUTHORIZED),
    (403, ErrorKind.UNAUTHORIZED),
    (404, ErrorKind.NOT_FOUND),
    (429, ErrorKind.RATE_LIMITED),
    (400, ErrorKind.VALIDATION),
    (500, ErrorKind.SERVER),
    (503, ErrorKind.SERVER),
])
def test_error_status_maps_to_kind(status, kind):
    with _client(lambda request: httpx.Response(status, text="nope")) as client:
        with pytest.raises(TodoistAPIError) as excinfo:
            client.get_task("1")

    assert excinfo.value.kind is kind
    assert excinfo.value.status == status
    assert str(excinfo.value).startswith(str(status))
    assert str(excinfo.value).endswith(": nope")


def test_transport_error_is_unknown_kind():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(TodoistAPIError) as excinfo:
            client.get_projects()

    assert excinfo.value.kind is ErrorKind.UNKNOWN
    assert excinfo.value.status is None


def test_ids_are_escaped_as_one_path_segment(fake_service, client):
    fake_service.projects["9"] = {"id": "9", "name": "Inbox"}

    with pytest.raises(TodoistAPIError) as excinfo:
        client.delete_task("../projects/9")

    assert excinfo.value.kind is ErrorKind.NOT_FOUND
    assert fake_service.requests == [("DELETE", "/tasks/..%2Fprojects%2F9")]


@pytest.mark.parametrize("task_id, expected", [
    ("1", "/tasks/1/close"),
    ("1?x=2", "/tasks/1%3Fx%3D2/close"),
    ("a#b", "/tasks/a%23b/close"),
    ("..", "/tasks/%2E%2E/close"),
    (".", "/tasks/%2E/close"),
])
def test_path_escapes_ids(task_id, expected):
    assert _path("tasks", task_id, "close") == expected


def test_fetch_lookups_indexes_by_id(fake_service, client):
    fake_service.projects["p1"] = {"id": "p1", "name": "Inbox"}
    fake_service.labels["l1"] = {"id": "l1", "name": "work"}

    lookups = fetch_lookups(client)

    assert lookups["projects"]["p1"]["name"] == "Inbox"
    assert lookups["labels"]["l1"]["name"] == "work"
