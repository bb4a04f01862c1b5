"""Resolution of notes to the schema that constrains them."""

import logging
from typing import List, Optional, Sequence, Union

from notetree.config import config
from notetree.models.nodes import NoteNode, SchemaNode
from notetree.models.tree import NodeTree
from notetree.observability import traced
from notetree.utils import PATTERN_SEPARATOR, glob_match, to_pattern_path

logger = logging.getLogger(__name__)

# Wildcard segment appended to namespace fragments
NAMESPACE_WILDCARD = PATTERN_SEPARATOR + "*"


class SchemaMatcher:
    """Matches note paths against the patterns of a schema tree.

    A schema's full pattern is derived from the tree on every call: the
    fragments of its ancestors below the root joined with ``/``. Matching
    walks the domains in order and each domain in depth-first pre-order;
    the first schema whose pattern matches wins. When nothing matches the
    injected unknown schema is returned.
    """

    def __init__(
        self,
        schema_tree: NodeTree[SchemaNode],
        unknown_schema: SchemaNode,
        match_namespace: Optional[bool] = None,
    ):
        """Initialize the matcher.

        Args:
            schema_tree: Built schema hierarchy.
            unknown_schema: Placeholder returned when nothing matches.
            match_namespace: Default for namespace matching. Falls back to
                ``config.match_namespace``.
        """
        self.schema_tree = schema_tree
        self.unknown_schema = unknown_schema
        self.match_namespace = (
            config.match_namespace if match_namespace is None else match_namespace
        )

    @property
    def domains(self) -> List[SchemaNode]:
        """Top-level schemas in declaration order."""
        return self.schema_tree.domains

    def is_unknown(self, schema: SchemaNode) -> bool:
        return schema is self.unknown_schema or schema.is_unknown

    def _chain(self, schema: SchemaNode) -> List[SchemaNode]:
        """``schema`` and its ancestors below the root, outermost first."""
        chain = [schema]
        chain.extend(a for a in self.schema_tree.ancestors(schema) if not a.is_root)
        chain.reverse()
        return chain

    def pattern_match(self, schema: SchemaNode) -> str:
        """Full glob pattern of ``schema``, e.g. ``work/proj/*``."""
        fragments = []
        for node in self._chain(schema):
            fragment = node.pattern
            if node.namespace:
                fragment += NAMESPACE_WILDCARD
            fragments.append(fragment)
        return PATTERN_SEPARATOR.join(fragments)

    def schema_logical_path(self, schema: SchemaNode) -> str:
        """Like ``pattern_match`` but built from ids, e.g. ``work/proj/*/task``."""
        return PATTERN_SEPARATOR.join(
            node.id + NAMESPACE_WILDCARD if node.namespace else node.id
            for node in self._chain(schema)
        )

    @traced("match_note")
    def match(
        self,
        note_or_path: Union[NoteNode, str],
        domains: Optional[Sequence[SchemaNode]] = None,
        *,
        match_namespace: Optional[bool] = None,
        match_prefix: bool = False,
    ) -> SchemaNode:
        """Find the schema for a note.

        Args:
            note_or_path: Note, or its dot-delimited path.
            domains: Candidate domains, all domains of the tree by default.
                An empty sequence always yields the unknown schema.
            match_namespace: Let a namespace schema also match its own path.
                Defaults to the matcher setting.
            match_prefix: Accepted for compatibility; has no effect.

        Returns:
            The first matching schema, or the unknown schema.
        """
        if match_namespace is None:
            match_namespace = self.match_namespace
        if domains is None:
            domains = self.domains

        if isinstance(note_or_path, str):
            note_path = note_or_path
        else:
            note_path = note_or_path.logical_path
        clean_path = to_pattern_path(note_path)

        for domain in domains:
            for schema in self.schema_tree.descendants(domain):
                pattern = self.pattern_match(schema)
                if schema.namespace and match_namespace:
                    if glob_match(clean_path, pattern[: -len(NAMESPACE_WILDCARD)]):
                        logger.debug("Matched %s to namespace schema %s", note_path, schema.id)
                        return schema
                if glob_match(clean_path, pattern):
                    logger.debug("Matched %s to schema %s", note_path, schema.id)
                    return schema

        logger.debug("No schema matched %s", note_path)
        return self.unknown_schema
