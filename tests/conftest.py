"""Common test fixtures for notetree."""

import itertools

import pytest

from notetree.config import config
from notetree.models.nodes import create_unknown_schema
from notetree.models.tree import NodeTree
from notetree.observability import metrics
from notetree.services.hierarchy_service import HierarchyService
from notetree.services.schema_matcher import SchemaMatcher
from notetree.services.tree_builder import TreeBuilder
from tests.records import note, schema


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Each test starts with empty metrics."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(monkeypatch):
    """Default settings, auto-restored after the test."""
    monkeypatch.setattr(config, "match_namespace", True)
    monkeypatch.setattr(config, "eager_duplicate_check", True)
    yield config


@pytest.fixture
def id_factory():
    """Deterministic ids: stub-1, stub-2, ..."""
    counter = itertools.count(1)
    return lambda: f"stub-{next(counter)}"


@pytest.fixture
def timestamp_factory():
    return lambda: "2024-01-01T00:00:00+00:00"


@pytest.fixture
def note_records():
    """A small note collection, deliberately out of order.

    root
    ├── foo
    │   ├── foo.one
    │   └── foo.two
    └── bar
        └── bar.ch1
    """
    return [
        note("foo.two", "foo.two", "foo", body="two"),
        note("bar", "bar", "root-id", ["bar.ch1"]),
        note("root-id", "root", None, ["foo", "bar"], title="root"),
        note("foo.one", "foo.one", "foo", body="  one  "),
        note("foo", "foo", "root-id", ["foo.one", "foo.two"], body="foo body"),
        note("bar.ch1", "bar.ch1", "bar"),
    ]


@pytest.fixture
def schema_records():
    """Schemas from two files.

    work.schema: work > proj (namespace) > task
    journal.schema: journal > daily (pattern "daily.*")
    """
    return [
        schema("work", "work", parent="root", children=["proj"]),
        schema("proj", "work", children=["task"], namespace=True),
        schema("task", "work", template={"id": "templates.task", "type": "note"}),
        schema("journal", "journal", parent="root", children=["daily"]),
        schema("daily", "journal", pattern="daily.*"),
    ]


@pytest.fixture
def schema_tree(schema_records):
    return TreeBuilder().build_schemas(schema_records)


@pytest.fixture
def unknown_schema():
    return create_unknown_schema()


@pytest.fixture
def matcher(schema_tree, unknown_schema, test_config):
    return SchemaMatcher(schema_tree, unknown_schema)


@pytest.fixture
def note_tree(note_records, test_config) -> NodeTree:
    return TreeBuilder().build_notes(note_records)


@pytest.fixture
def hierarchy(test_config, id_factory, timestamp_factory):
    """Service loaded with work and journal notes plus a template note."""
    service = HierarchyService(
        id_factory=id_factory, timestamp_factory=timestamp_factory
    )
    notes = [
        note("root", "root", None, ["work", "journal", "templates", "misc"]),
        note("work", "work", "root", ["work.proj"]),
        note("work.proj", "work.proj", "work", ["work.proj.alpha"]),
        note("work.proj.alpha", "work.proj.alpha", "work.proj", ["work.proj.alpha.task"]),
        note(
            "work.proj.alpha.task",
            "work.proj.alpha.task",
            "work.proj.alpha",
            body="old body",
        ),
        note("journal", "journal", "root", ["journal.daily"]),
        note("journal.daily", "journal.daily", "journal", ["journal.daily.2024"]),
        note("journal.daily.2024", "journal.daily.2024", "journal.daily"),
        note("templates", "templates", "root", ["templates.task"]),
        note("templates.task", "templates.task", "templates", body="# Task\n- [ ] todo"),
        note("misc", "misc", "root", ["misc.child"]),
        note("misc.child", "misc.child", "misc"),
    ]
    schemas = [
        schema("work", "work", parent="root", children=["proj"]),
        schema("proj", "work", children=["task"], namespace=True),
        schema("task", "work", template={"id": "templates.task", "type": "note"}),
        schema("journal", "journal", parent="root", children=["daily"]),
        schema("daily", "journal", pattern="daily.*"),
    ]
    service.build(notes, schemas)
    return service
