"""Construction of connected trees from flat record collections."""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from notetree.config import config
from notetree.exceptions import (
    DuplicateIdError,
    MissingParentError,
    NoRootFoundError,
    OrphanNodeError,
    RecordNotFoundError,
    SchemaResolutionError,
)
from notetree.models.nodes import NoteNode, SchemaNode
from notetree.models.records import ROOT_ID, NodeRecord, SchemaRecord
from notetree.models.tree import NodeTree
from notetree.observability import get_logger, timed_operation, traced
from notetree.services.schema_matcher import SchemaMatcher

logger = logging.getLogger(__name__)
log = get_logger("tree_builder")

NoteInput = Union[NodeRecord, Mapping[str, Any]]
SchemaInput = Union[SchemaRecord, Mapping[str, Any]]


def to_note_record(raw: NoteInput) -> NodeRecord:
    if isinstance(raw, NodeRecord):
        return raw
    return NodeRecord.from_dict(raw)


def to_schema_record(raw: SchemaInput) -> SchemaRecord:
    if isinstance(raw, SchemaRecord):
        return raw
    if isinstance(raw, NodeRecord):
        return SchemaRecord.from_flat(raw.model_dump())
    return SchemaRecord.from_flat(raw)


def _node_values(record: NodeRecord) -> Dict[str, Any]:
    """Node constructor arguments for a record, detached from any tree."""
    values = record.model_dump()
    values["parent"] = None
    values["children"] = []
    return values


class TreeBuilder:
    """Builds note and schema trees from flat records.

    Notes are resolved level by level from the root: a record's parent must
    be one of the nodes resolved in the previous level. Each note is matched
    against the schema tree as soon as it is resolved. Schemas are resolved
    depth-first from the domain records (records whose parent is ``root``).
    """

    def __init__(
        self,
        matcher: Optional[SchemaMatcher] = None,
        eager_duplicate_check: Optional[bool] = None,
    ):
        """Initialize the builder.

        Args:
            matcher: Matcher used to resolve each note's schema while the
                tree is built. Without one notes keep an empty schema link.
            eager_duplicate_check: Reject duplicate ids before the walk
                instead of when a duplicate is first looked up. Falls back
                to ``config.eager_duplicate_check``.
        """
        self.matcher = matcher
        self.eager_duplicate_check = (
            config.eager_duplicate_check
            if eager_duplicate_check is None
            else eager_duplicate_check
        )

    # =========================================================================
    # Record lookup
    # =========================================================================

    def _index(self, records: Sequence[NodeRecord]) -> Dict[str, List[NodeRecord]]:
        index: Dict[str, List[NodeRecord]] = defaultdict(list)
        for record in records:
            index[record.id].append(record)
        if self.eager_duplicate_check:
            for record_id, matches in index.items():
                if len(matches) > 1:
                    raise DuplicateIdError(record_id, [r.fname for r in matches])
        return index

    @staticmethod
    def _lookup(
        index: Mapping[str, List[NodeRecord]], record_id: str, referenced_by: str
    ) -> NodeRecord:
        matches = index.get(record_id, [])
        if len(matches) > 1:
            raise DuplicateIdError(record_id, [r.fname for r in matches])
        if not matches:
            raise RecordNotFoundError(record_id, referenced_by=referenced_by)
        return matches[0]

    @staticmethod
    def find_root(records: Iterable[NodeRecord]) -> NodeRecord:
        """The first record titled ``root`` or without a parent.

        Raises:
            NoRootFoundError: No record qualifies.
        """
        count = 0
        for record in records:
            count += 1
            if record.is_root:
                return record
        raise NoRootFoundError(record_count=count)

    @staticmethod
    def get_domains_root(records: Iterable[NodeRecord]) -> List[NodeRecord]:
        """Records declared directly below the root, in input order."""
        return [r for r in records if r.parent == ROOT_ID]

    # =========================================================================
    # Notes
    # =========================================================================

    @traced("build_notes")
    def build_notes(
        self,
        records: Iterable[NoteInput],
        domains: Optional[Sequence[SchemaNode]] = None,
    ) -> NodeTree[NoteNode]:
        """Build the note tree.

        Args:
            records: Every note record, in any order.
            domains: Schema domains that top-level notes are matched
                against. Defaults to all domains of the matcher.

        Returns:
            The complete tree. Nothing is returned on failure.

        Raises:
            NoRootFoundError: No root record.
            DuplicateIdError: Two records share an id, or a record is
                declared as a child twice.
            RecordNotFoundError: A declared child id has no record.
            MissingParentError: A record's parent is not in the level above.
            OrphanNodeError: Records that are never reached from the root.
        """
        note_records = [to_note_record(r) for r in records]
        index = self._index(note_records)
        root_record = self.find_root(note_records)

        root = NoteNode(**_node_values(root_record))
        tree: NodeTree[NoteNode] = NodeTree(root)

        if domains is None:
            domains = self.matcher.domains if self.matcher is not None else []

        # the reserved marker always refers to the root
        frontier: Dict[str, NoteNode] = {root.id: root, ROOT_ID: root}
        pending: List[Tuple[NodeRecord, Sequence[SchemaNode]]] = [
            (self._lookup(index, cid, root_record.fname), domains)
            for cid in root_record.children
        ]
        depth = 0

        while pending:
            depth += 1
            resolved: Dict[str, NoteNode] = {}
            next_pending: List[Tuple[NodeRecord, Sequence[SchemaNode]]] = []

            for record, candidates in pending:
                parent = frontier.get(record.parent) if record.parent else None
                if parent is None:
                    raise MissingParentError(
                        record.parent or "",
                        fname=record.fname,
                        resolved_ids=list(frontier),
                    )
                node = NoteNode(**_node_values(record))
                tree.attach(parent, node)

                child_candidates = self._resolve_schema(node, candidates)
                resolved[node.id] = node
                next_pending.extend(
                    (self._lookup(index, cid, record.fname), child_candidates)
                    for cid in record.children
                )

            logger.debug("Resolved %d notes at depth %d", len(resolved), depth)
            frontier = resolved
            pending = next_pending

        unreached = [r.fname for r in note_records if r.id not in tree]
        if unreached:
            raise OrphanNodeError(unreached)

        log.info("Built note tree", notes=len(tree), depth=depth)
        return tree

    def _resolve_schema(
        self, node: NoteNode, candidates: Sequence[SchemaNode]
    ) -> Sequence[SchemaNode]:
        """Attach the matching schema and return the candidates for its children.

        Children of an unmatched note get no candidates.
        """
        if self.matcher is None:
            return candidates
        schema = self.matcher.match(node, candidates)
        node.schema_id = schema.id
        if self.matcher.is_unknown(schema):
            return []
        return candidates

    # =========================================================================
    # Schemas
    # =========================================================================

    @staticmethod
    def _find_schema_record(
        schema_id: str, declaring: SchemaRecord, records: Sequence[SchemaRecord]
    ) -> SchemaRecord:
        for record in records:
            if record.id == schema_id and record.fname == declaring.fname:
                return record
        raise SchemaResolutionError(
            schema_id,
            declaring.fname,
            available_ids=[r.id for r in records if r.fname == declaring.fname],
        )

    @traced("build_schemas")
    def build_schemas(self, records: Iterable[SchemaInput]) -> NodeTree[SchemaNode]:
        """Build the schema tree below a synthetic root.

        Raises:
            SchemaResolutionError: A declared child has no record with that id
                in the declaring record's file.
            DuplicateIdError: Two schemas in the tree share an id.
        """
        schema_records = [to_schema_record(r) for r in records]
        root = SchemaNode.create_root()
        tree: NodeTree[SchemaNode] = NodeTree(root)

        for domain_record in self.get_domains_root(schema_records):
            stack: List[Tuple[SchemaRecord, SchemaNode]] = [(domain_record, root)]
            while stack:
                record, parent = stack.pop()
                node = SchemaNode(**_node_values(record))
                tree.attach(parent, node)
                children = [
                    self._find_schema_record(cid, record, schema_records)
                    for cid in record.children
                ]
                stack.extend((child, node) for child in reversed(children))

        log.info("Built schema tree", schemas=len(tree), domains=len(tree.domains))
        return tree

    # =========================================================================
    # Single records
    # =========================================================================

    def from_record(self, raw: NoteInput, tree: NodeTree[NoteNode]) -> NoteNode:
        """Build a note from a record and merge it into an existing tree.

        Fields of an existing node with the same id win over the record;
        its children are kept. The note is placed under the node at its
        parent path, replacing any previous entry.

        Raises:
            MissingParentError: No node exists at the parent path.
        """
        record = to_note_record(raw)
        with timed_operation("from_record", fname=record.fname):
            values = _node_values(record)
            existing = tree.get(record.id)
            if existing is not None:
                kept = existing.model_dump(exclude={"parent", "children"})
                values.update(kept)
                values["children"] = list(existing.children)

            node = NoteNode(**values)
            if node.is_root or (existing is not None and existing.is_root):
                tree.replace(node)
                return node

            parent = tree.find_parent(node.fname)
            if parent is None:
                raise MissingParentError(
                    record.parent or "",
                    fname=node.fname,
                    message=f"no parent found for {node.fname}",
                )
            tree.replace(node)
            parent.add_child(node)
            for child in tree.children_of(node):
                child.parent = node.id
            return node
