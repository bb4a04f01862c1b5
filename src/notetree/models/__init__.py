"""Data models for note and schema hierarchies."""

from notetree.models.nodes import (
    UNKNOWN_SCHEMA_ID,
    AnyNode,
    NoteNode,
    SchemaNode,
    TreeNode,
    create_unknown_schema,
)
from notetree.models.records import (
    ROOT_ID,
    NodeRecord,
    SchemaData,
    SchemaRecord,
    SchemaTemplate,
    TemplateKind,
)
from notetree.models.tree import NodeTree

__all__ = [
    "ROOT_ID",
    "UNKNOWN_SCHEMA_ID",
    "AnyNode",
    "NodeRecord",
    "NodeTree",
    "NoteNode",
    "SchemaData",
    "SchemaNode",
    "SchemaRecord",
    "SchemaTemplate",
    "TemplateKind",
    "TreeNode",
    "create_unknown_schema",
]
