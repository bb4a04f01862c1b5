"""Tests for the hierarchy service."""
import logging

import pytest

from notetree.exceptions import (
    MissingParentError,
    NoteNotFoundError,
    OrphanNodeError,
    TemplateNotFoundError,
)
from notetree.models.nodes import UNKNOWN_SCHEMA_ID, NoteNode
from notetree.services.hierarchy_service import HierarchyService
from tests.records import note, schema


class TestBuild:
    """Tests for loading records."""

    def test_build_loads_both_trees(self, hierarchy):
        assert len(hierarchy.notes) == 12
        assert len(hierarchy.schemas) == 6
        assert hierarchy.matcher.schema_tree is hierarchy.schemas
        assert hierarchy.templates.notes is hierarchy.notes

    def test_failed_build_keeps_previous_trees(self, hierarchy):
        notes, schemas = hierarchy.notes, hierarchy.schemas
        with pytest.raises(MissingParentError):
            hierarchy.build(
                [note("root", "root", None, ["a"]), note("a", "a", "ghost")],
                [schema("x", "x", parent="root")],
            )
        assert hierarchy.notes is notes
        assert hierarchy.schemas is schemas
        assert hierarchy.matcher.schema_tree is schemas

    def test_services_have_separate_placeholders(self):
        assert HierarchyService().unknown_schema is not HierarchyService().unknown_schema

    def test_build_without_schemas(self, test_config):
        service = HierarchyService()
        service.build([note("root", "root", None, ["a"]), note("a", "a", "root")])
        assert service.notes["a"].schema_id == UNKNOWN_SCHEMA_ID


class TestLookup:
    """Tests for note lookup."""

    def test_get_note(self, hierarchy):
        assert hierarchy.get_note("work").fname == "work"
        assert hierarchy.get_note("missing") is None

    def test_get_note_by_fname_ignores_case(self, hierarchy):
        assert hierarchy.get_note_by_fname("Work.Proj").id == "work.proj"

    def test_get_note_by_fname_missing(self, hierarchy):
        assert hierarchy.get_note_by_fname("nope") is None
        with pytest.raises(NoteNotFoundError) as exc_info:
            hierarchy.get_note_by_fname("nope", throw_if_empty=True)
        assert str(exc_info.value) == "[NOTE_NOT_FOUND] nope not found (key=nope)"

    def test_schema_for(self, hierarchy):
        assert hierarchy.schema_for(hierarchy.notes["work.proj"]).id == "proj"
        assert hierarchy.schema_for(hierarchy.notes["misc"]) is hierarchy.unknown_schema
        assert hierarchy.schema_for(hierarchy.notes.root) is hierarchy.unknown_schema

    def test_find_closest_parent(self, hierarchy):
        assert hierarchy.find_closest_parent("work.proj.beta.x").id == "work.proj"


class TestTemplates:
    """Tests for template application across notes."""

    def test_apply_template(self, hierarchy):
        note = hierarchy.notes["work.proj.alpha.task"]
        assert hierarchy.apply_template(note) is True
        assert note.body.startswith("# Task")

    def test_apply_templates_report(self, hierarchy):
        report = hierarchy.apply_templates()
        assert report.ok
        assert report.applied == ["work.proj.alpha.task"]
        assert "misc" in report.skipped
        assert "root" not in report.skipped

    def test_missing_template_is_isolated(self, test_config, caplog):
        """One broken template does not stop the other notes."""
        service = HierarchyService()
        service.build(
            [
                note("root", "root", None, ["a", "b", "t"]),
                note("a", "a", "root"),
                note("b", "b", "root"),
                note("t", "t", "root", body="template"),
            ],
            [
                schema("a", "a", parent="root", template={"id": "gone"}),
                schema("b", "b", parent="root", template={"id": "t"}),
            ],
        )
        with caplog.at_level(logging.WARNING, logger="notetree.hierarchy"):
            report = service.apply_templates()
        assert "Template not applied | note=a template=gone" in caplog.text
        assert not report.ok
        assert [fname for fname, _ in report.failed] == ["a"]
        assert isinstance(report.failed[0][1], TemplateNotFoundError)
        assert report.applied == ["b"]
        assert service.notes["b"].body == "template"

    def test_single_missing_template_raises(self, test_config):
        service = HierarchyService()
        service.build(
            [note("root", "root", None, ["a"]), note("a", "a", "root")],
            [schema("a", "a", parent="root", template={"id": "gone"})],
        )
        with pytest.raises(TemplateNotFoundError):
            service.apply_template(service.notes["a"])


class TestEditing:
    """Tests for adding and linking notes."""

    def test_add_note_resolves_schema(self, hierarchy):
        added = hierarchy.add_note(note("beta", "work.proj.beta", "work.proj"))
        assert added.parent == "work.proj"
        assert added.schema_id == "proj"
        assert "beta" in hierarchy.notes["work.proj"].children

    def test_add_note_without_parent(self, hierarchy):
        with pytest.raises(MissingParentError):
            hierarchy.add_note(note("x", "nowhere.x", "nowhere"))

    def test_link_creates_stubs_and_resolves(self, hierarchy):
        target = NoteNode(id="deep", fname="work.proj.beta.task")
        stubs = hierarchy.link(hierarchy.notes["work.proj"], target)
        assert [s.fname for s in stubs] == ["work.proj.beta"]
        assert stubs[0].id == "stub-1"
        assert stubs[0].schema_id == "proj"
        assert target.schema_id == "task"
        assert hierarchy.notes["deep"] is target

    def test_link_into_unknown_area(self, hierarchy):
        target = NoteNode(id="z", fname="misc.a.b")
        stubs = hierarchy.link(hierarchy.notes["misc"], target)
        assert [s.fname for s in stubs] == ["misc.a"]
        assert stubs[0].schema_id == UNKNOWN_SCHEMA_ID

    def test_back_link(self, hierarchy):
        source = hierarchy.notes["work"]
        hierarchy.add_back_link(source, hierarchy.notes["journal"])
        assert source.data["links"] == [{"type": "note", "id": "[[journal]]"}]

    def test_create_note_from_schema(self, hierarchy):
        daily = hierarchy.schemas["daily"]
        created = hierarchy.create_note_from_schema("journal", daily)
        assert created.fname == "journal.daily.*"
        assert created.schema_stub is True
        assert created.schema_id == "daily"
        assert created.data == {"schemaId": "daily"}
        assert created.parent == "journal.daily"
        assert created.created == "2024-01-01T00:00:00+00:00"

    def test_create_note_from_schema_with_stubs(self, hierarchy):
        task = hierarchy.schemas["task"]
        created = hierarchy.create_note_from_schema("work.proj.gamma", task)
        assert created.fname == "work.proj.gamma.task"
        parent = hierarchy.notes[created.parent]
        assert parent.stub is True
        assert parent.fname == "work.proj.gamma"
        assert parent.parent == "work.proj"

    def test_create_top_level_note_under_named_root(self, test_config, id_factory):
        """A root with its own id and fname still anchors top-level notes."""
        service = HierarchyService(id_factory=id_factory)
        service.build(
            [note("n0", "vault", None, ["a"]), note("a", "a", "n0")],
            [schema("journal", "journal", parent="root")],
        )
        created = service.create_note_from_schema("", service.schemas["journal"])
        assert created.fname == "journal"
        assert created.parent == "n0"
        assert service.notes.root.children == ["a", created.id]
        assert service.get_meta(service.notes.root)["parent"] is None


class TestMeta:
    """Tests for note metadata export."""

    def test_get_meta_fields(self, hierarchy):
        meta = hierarchy.get_meta(hierarchy.notes["work.proj"])
        assert list(meta) == [
            "id", "title", "desc", "updated", "created", "data", "fname", "stub",
            "parent", "children",
        ]
        assert meta["parent"] == "work"
        assert meta["children"] == ["work.proj.alpha"]
        assert "body" not in meta

    def test_pull_custom_up(self, test_config):
        service = HierarchyService()
        service.build([
            note("root", "root", None, ["a"]),
            note("a", "a", "root", author="kim", title="shadowed"),
        ])
        note_a = service.notes["a"]
        note_a.custom = {"author": "kim", "title": "ignored"}
        meta = service.get_meta(note_a, pull_custom_up=True)
        assert list(meta)[0] == "author"
        assert meta["author"] == "kim"
        assert meta["title"] == "shadowed"
        assert "custom" not in meta

    def test_detached_note(self, hierarchy):
        loose = NoteNode(id="loose", fname="loose")
        with pytest.raises(OrphanNodeError):
            hierarchy.get_meta(loose)
        assert hierarchy.get_meta(loose, ignore_null_parent=True)["parent"] is None
