"""Tree node models.

A node is one of two variants sharing the ``TreeNode`` shape, told apart by
its ``type`` tag: ``NoteNode`` (document content plus the resolved schema
link) and ``SchemaNode`` (pattern fragment, optional template, namespace
flag). Parent and children are stored as identifiers; the nodes themselves
live in a ``NodeTree``.
"""

import copy
from abc import ABC, abstractmethod
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from notetree.config import config
from notetree.exceptions import OrphanNodeError
from notetree.models.ids import generate_id, utc_timestamp
from notetree.models.records import ROOT_ID, SchemaData, SchemaTemplate
from notetree.utils import basename, default_title, to_pattern_path

# Identifier of the placeholder schema attached to unmatched notes
UNKNOWN_SCHEMA_ID = "_UNKNOWN_SCHEMA"


class TreeNode(BaseModel, ABC):
    """Fields and operations shared by every node variant."""

    id: str = Field(..., description="Unique ID of the node")
    title: str = Field(default="", description="Defaults from the last path segment")
    desc: str = Field(default="")
    fname: str = Field(..., description="Dot-delimited logical path")
    created: Optional[str] = Field(default=None, description="Opaque timestamp")
    updated: Optional[str] = Field(default=None, description="Opaque timestamp")
    parent: Optional[str] = Field(default=None, description="ID of the parent node")
    children: List[str] = Field(default_factory=list, description="Child IDs in order")
    stub: bool = Field(default=False, description="Synthesized rather than declared")
    body: str = Field(default="")
    custom: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"validate_assignment": True}

    # Set by the NodeTree that holds this node as its root
    _tree_root: bool = PrivateAttr(default=False)

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, values: Any) -> Any:
        if isinstance(values, dict):
            values = cls._apply_defaults(dict(values))
        return values

    @classmethod
    def _apply_defaults(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values.get("title") and values.get("fname"):
            values["title"] = default_title(values["fname"])
        return values

    @property
    def is_root(self) -> bool:
        """True for the reserved root and for the root of the holding tree.

        A root found only by its missing parent keeps its own id and fname.
        """
        return self._tree_root or self.id == ROOT_ID or self.fname == ROOT_ID

    def mark_root(self) -> None:
        self._tree_root = True

    @property
    def logical_path(self) -> str:
        """Dot-delimited path; empty for the root."""
        if self.is_root:
            return ""
        return self.fname

    @property
    def basename(self) -> str:
        return basename(self.logical_path)

    def add_child(self, node: "TreeNode") -> None:
        """Make ``node`` a child of this node.

        The children list only grows when no child with the same id is
        present. The child's parent is always reset to this node, which
        re-links nodes that kept their id through a rename.
        """
        if node.id not in self.children:
            self.children.append(node.id)
        node.parent = self.id

    @abstractmethod
    def _dump_data(self) -> Dict[str, Any]:
        """Exported form of ``data``."""

    def to_raw_props(
        self, hide_body: bool = False, ignore_null_parent: bool = False
    ) -> Dict[str, Any]:
        """Export the node as a flat record mapping.

        Args:
            hide_body: Leave out the body.
            ignore_null_parent: Export a detached non-root node with a None
                parent instead of raising.

        Raises:
            OrphanNodeError: A non-root node has no parent.
        """
        props: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "desc": self.desc,
            "type": self.type,
            "updated": self.updated,
            "created": self.created,
            "body": self.body,
            "fname": self.fname,
            "data": self._dump_data(),
            "stub": self.stub,
            "custom": copy.deepcopy(self.custom),
        }
        if hide_body:
            del props["body"]

        if self.is_root:
            parent = None
        elif self.parent is None:
            if not (ignore_null_parent or self.id == UNKNOWN_SCHEMA_ID):
                raise OrphanNodeError(
                    [self.fname], message=f"{self.fname} has no parent node"
                )
            parent = None
        else:
            parent = self.parent

        props["parent"] = parent
        props["children"] = list(self.children)
        return props

    def __eq__(self, other: object) -> bool:
        """Equal when every exported field but the body matches and the
        bodies match after trimming surrounding whitespace."""
        if not isinstance(other, TreeNode):
            return NotImplemented
        props1 = self.to_raw_props(hide_body=True, ignore_null_parent=True)
        props2 = other.to_raw_props(hide_body=True, ignore_null_parent=True)
        return props1 == props2 and self.body.strip() == other.body.strip()


class NoteNode(TreeNode):
    """A note in the hierarchy."""

    type: Literal["note"] = "note"
    data: Dict[str, Any] = Field(default_factory=dict)
    schema_id: Optional[str] = Field(
        default=None, description="ID of the matched schema (or the unknown schema)"
    )
    schema_stub: bool = Field(
        default=False, description="Created from a schema rather than authored"
    )

    def _dump_data(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data)

    @classmethod
    def create_root(cls) -> "NoteNode":
        return cls(id=ROOT_ID, fname=ROOT_ID, title=ROOT_ID)

    @classmethod
    def create_stub(
        cls,
        fname: str,
        id: Optional[str] = None,
        timestamp: Optional[str] = None,
        **opts: Any,
    ) -> "NoteNode":
        """Create a placeholder note for a path that has no authored note."""
        stamp = timestamp or utc_timestamp()
        return cls(
            id=id or generate_id(),
            fname=fname,
            stub=True,
            created=stamp,
            updated=stamp,
            **opts,
        )

    @classmethod
    def from_schema(
        cls,
        dirpath: str,
        schema: "SchemaNode",
        id: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> "NoteNode":
        """Create the note a schema suggests below ``dirpath``."""
        fragment = schema.data.pattern or schema.id
        fname = ".".join([dirpath, fragment]) if dirpath else fragment
        stamp = timestamp or utc_timestamp()
        return cls(
            id=id or generate_id(),
            fname=fname,
            desc=schema.desc,
            created=stamp,
            updated=stamp,
            schema_stub=True,
            schema_id=schema.id,
            data={"schemaId": schema.id},
        )


class SchemaNode(TreeNode):
    """A schema in the schema hierarchy."""

    type: Literal["schema"] = "schema"
    data: SchemaData = Field(default_factory=SchemaData)

    @classmethod
    def _apply_defaults(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        fname = values.get("fname")
        if fname and not fname.endswith(config.schema_suffix):
            fname = values["fname"] = fname + config.schema_suffix
        if not values.get("id") and fname:
            values["id"] = fname[: -len(config.schema_suffix)]
        if not values.get("title"):
            values["title"] = values.get("id", "")
        return values

    def _dump_data(self) -> Dict[str, Any]:
        return self.data.model_dump(exclude_none=True)

    @property
    def namespace(self) -> bool:
        return self.data.namespace

    @property
    def pattern(self) -> str:
        """Pattern fragment: the explicit pattern with dots rewritten, else the id."""
        if self.data.pattern:
            return to_pattern_path(self.data.pattern)
        return self.id

    @property
    def template(self) -> Optional[SchemaTemplate]:
        return self.data.template

    @property
    def is_unknown(self) -> bool:
        return self.id == UNKNOWN_SCHEMA_ID

    @classmethod
    def create_root(cls) -> "SchemaNode":
        return cls(id=ROOT_ID, title=ROOT_ID, fname=ROOT_ID)


AnyNode = Annotated[Union[NoteNode, SchemaNode], Field(discriminator="type")]


def create_unknown_schema() -> SchemaNode:
    """Build the placeholder schema attached to notes no pattern matches.

    Each matching context owns one instance; it belongs to no tree.
    """
    return SchemaNode(
        id=UNKNOWN_SCHEMA_ID,
        fname=UNKNOWN_SCHEMA_ID,
        stub=True,
        created="-1",
        updated="-1",
    )
