"""
Tests for batch target resolution.
"""

import pytest

from todoist_cli.errors import NoTargetsError
from todoist_cli.resolver import FilterSpec, resolve_targets


def test_explicit_ids_are_deduplicated_with_filter_matches(fake_service, client):
    fake_service.add_task("A", "first")
    fake_service.add_task("B", "second")
    fake_service.filters["today"] = ["B"]

    targets = resolve_targets(client, ["A", "B", "A"], FilterSpec(filter_query="today"))

    assert targets == ["A", "B"]


def test_filter_matches_follow_explicit_ids(fake_service, client):
    fake_service.add_task("1", "one", project_id="p1")
    fake_service.add_task("2", "two", project_id="p1")
    fake_service.add_task("3", "three", project_id="p2")

    targets = resolve_targets(client, ["3"], FilterSpec(project_id="p1"))

    assert targets == ["3", "1", "2"]


def test_label_scope(fake_service, client):
    fake_service.add_task("1", "one", labels=["work"])
    fake_service.add_task("2", "two", labels=["home"])

    assert resolve_targets(client, [], FilterSpec(label_id="work")) == ["1"]


def test_explicit_ids_only_make_no_call(fake_service, client):
    assert resolve_targets(client, ["9", "8"], FilterSpec()) == ["9", "8"]
    assert fake_service.requests == []


def test_ids_are_not_coerced(client):
    assert resolve_targets(client, [1, "1"]) == [1, "1"]


def test_unknown_ids_are_kept(fake_service, client):
    assert resolve_targets(client, ["missing"]) == ["missing"]


def test_empty_resolution_fails(fake_service, client):
    with pytest.raises(NoTargetsError):
        resolve_targets(client, [], FilterSpec())
    assert fake_service.requests == []


def test_filter_without_matches_fails(fake_service, client):
    fake_service.add_task("1", "one")
    with pytest.raises(NoTargetsError):
        resolve_targets(client, [], FilterSpec(filter_query="overdue"))
    assert fake_service.requests == [("GET", "/tasks")]


@pytest.mark.parametrize("spec, empty", [
    (FilterSpec(), True),
    (FilterSpec(filter_query=""), True),
    (FilterSpec(filter_query="today"), False),
    (FilterSpec(project_id="p"), False),
    (FilterSpec(label_id="l"), False),
])
def test_filter_spec_is_empty(spec, empty):
    assert spec.is_empty is empty
