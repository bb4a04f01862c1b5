"""Service layer tying note and schema hierarchies together."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from notetree.exceptions import NoteNotFoundError, TemplateNotFoundError
from notetree.models.ids import generate_id, utc_timestamp
from notetree.models.nodes import NoteNode, SchemaNode, create_unknown_schema
from notetree.models.tree import NodeTree
from notetree.observability import get_logger, timed_operation
from notetree.services.schema_matcher import SchemaMatcher
from notetree.services.stub_service import StubSynthesizer, add_back_link
from notetree.services.template_service import TemplateApplier
from notetree.services.tree_builder import NoteInput, SchemaInput, TreeBuilder

log = get_logger("hierarchy")

# Fields reported by get_meta, in order
META_FIELDS = ("id", "title", "desc", "updated", "created", "data", "fname", "stub")


@dataclass
class TemplateReport:
    """Outcome of applying templates to a set of notes."""

    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Tuple[str, TemplateNotFoundError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class HierarchyService:
    """Holds a schema tree and a note tree built from flat records.

    Every instance owns its own unknown-schema placeholder, so independent
    services never share mutable state.
    """

    def __init__(
        self,
        match_namespace: Optional[bool] = None,
        eager_duplicate_check: Optional[bool] = None,
        id_factory: Callable[[], str] = generate_id,
        timestamp_factory: Callable[[], str] = utc_timestamp,
    ):
        self.unknown_schema = create_unknown_schema()
        self.schemas: NodeTree[SchemaNode] = NodeTree(SchemaNode.create_root())
        self.notes: NodeTree[NoteNode] = NodeTree(NoteNode.create_root())
        self.matcher = SchemaMatcher(
            self.schemas, self.unknown_schema, match_namespace=match_namespace
        )
        self.builder = TreeBuilder(
            self.matcher, eager_duplicate_check=eager_duplicate_check
        )
        self.templates = TemplateApplier(self.notes, self.matcher)
        self.id_factory = id_factory
        self.timestamp_factory = timestamp_factory

    def _bind(self, notes: NodeTree[NoteNode], schemas: NodeTree[SchemaNode]) -> None:
        self.notes = notes
        self.schemas = schemas
        self.matcher.schema_tree = schemas
        self.templates.notes = notes

    def build(
        self,
        note_records: Iterable[NoteInput],
        schema_records: Iterable[SchemaInput] = (),
    ) -> NodeTree[NoteNode]:
        """Build the schema tree, then the note tree matched against it.

        The previous trees are kept when either build fails.
        """
        with timed_operation("build") as op:
            previous = self.schemas
            schemas = self.builder.build_schemas(schema_records)
            self.matcher.schema_tree = schemas
            try:
                notes = self.builder.build_notes(note_records)
            except Exception:
                self.matcher.schema_tree = previous
                raise
            self._bind(notes, schemas)
            op["notes"] = len(notes)
            op["schemas"] = len(schemas)

        log.info("Loaded hierarchy", notes=len(self.notes), schemas=len(self.schemas))
        return self.notes

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_note(self, note_id: str) -> Optional[NoteNode]:
        return self.notes.get(note_id)

    def get_note_by_fname(
        self, fname: str, throw_if_empty: bool = False
    ) -> Optional[NoteNode]:
        """Find a note by path, ignoring case.

        Raises:
            NoteNotFoundError: Nothing found and ``throw_if_empty`` is set.
        """
        note = self.notes.find_by_fname(fname, case_insensitive=True)
        if note is None and throw_if_empty:
            raise NoteNotFoundError(fname)
        return note

    def find_closest_parent(self, fname: str, no_stubs: bool = False) -> Optional[NoteNode]:
        return self.notes.find_closest_parent(fname, no_stubs=no_stubs)

    # =========================================================================
    # Schemas and templates
    # =========================================================================

    def match_note(self, note_or_path: Union[NoteNode, str], **opts: Any) -> SchemaNode:
        return self.matcher.match(note_or_path, **opts)

    def schema_for(self, note: NoteNode) -> SchemaNode:
        """Schema linked to ``note``, the unknown schema when unresolved."""
        if note.schema_id is None:
            return self.unknown_schema
        schema = self.schemas.get(note.schema_id)
        return schema if schema is not None else self.unknown_schema

    def _resolve(self, note: NoteNode) -> SchemaNode:
        schema = self.matcher.match(note)
        note.schema_id = schema.id
        return schema

    def apply_template(self, note: NoteNode) -> bool:
        """Apply the template of the note's schema.

        Raises:
            TemplateNotFoundError: The template note does not exist.
        """
        return self.templates.match_and_apply_template(note)

    def apply_templates(self, notes: Optional[Iterable[NoteNode]] = None) -> TemplateReport:
        """Apply templates to many notes, every note independently.

        A missing template is recorded for its note and never stops the
        remaining notes.
        """
        report = TemplateReport()
        targets = list(notes) if notes is not None else self.notes.nodes
        for note in targets:
            if note.is_root:
                continue
            try:
                applied = self.templates.match_and_apply_template(note)
            except TemplateNotFoundError as e:
                log.warning(
                    "Template not applied", note=note.fname, template=e.template_id
                )
                report.failed.append((note.fname, e))
                continue
            (report.applied if applied else report.skipped).append(note.fname)
        log.info(
            "Applied templates",
            applied=len(report.applied),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
        return report

    # =========================================================================
    # Editing
    # =========================================================================

    def add_note(self, record: NoteInput) -> NoteNode:
        """Merge one record into the note tree and resolve its schema."""
        note = self.builder.from_record(record, self.notes)
        if not note.is_root:
            self._resolve(note)
        return note

    def _synthesizer(self) -> StubSynthesizer:
        return StubSynthesizer(
            self.notes,
            id_factory=self.id_factory,
            timestamp_factory=self.timestamp_factory,
        )

    def link(self, ancestor: NoteNode, node: NoteNode) -> List[NoteNode]:
        """Place ``node`` below ``ancestor``, creating stubs for missing levels.

        Every stub and the node are matched against the schemas.

        Returns:
            The created stubs.
        """
        stubs = self._synthesizer().create_stubs(ancestor, node)
        for created in [*stubs, node]:
            self._resolve(created)
        return stubs

    def add_back_link(self, source: NoteNode, target: NoteNode) -> None:
        add_back_link(source, target)

    def create_note_from_schema(self, dirpath: str, schema: SchemaNode) -> NoteNode:
        """Create the note ``schema`` suggests below ``dirpath`` and link it.

        The note goes under its closest existing ancestor; stubs fill any
        missing levels.
        """
        note = NoteNode.from_schema(
            dirpath, schema, id=self.id_factory(), timestamp=self.timestamp_factory()
        )
        ancestor = self.notes.find_closest_parent(note.fname)
        self.link(ancestor, note)
        note.schema_id = schema.id
        return note

    # =========================================================================
    # Export
    # =========================================================================

    def get_meta(
        self,
        note: NoteNode,
        pull_custom_up: bool = False,
        ignore_null_parent: bool = False,
    ) -> Dict[str, Any]:
        """Metadata of a note without its body.

        Args:
            pull_custom_up: Put custom fields at the top level, beneath the
                reserved fields.
            ignore_null_parent: Allow detached notes.
        """
        raw = note.to_raw_props(hide_body=True, ignore_null_parent=ignore_null_parent)
        meta: Dict[str, Any] = dict(note.custom) if pull_custom_up else {}
        meta.update({key: raw[key] for key in META_FIELDS})
        meta["parent"] = raw["parent"]
        meta["children"] = raw["children"]
        return meta
