"""Flat input records consumed by the tree builder."""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from notetree.config import config

# Reserved identifier (and parent marker) of the tree root
ROOT_ID = "root"

# Record fields with a fixed meaning. Everything else is a custom field.
RESERVED_FIELDS = (
    "id",
    "title",
    "desc",
    "fname",
    "updated",
    "created",
    "parent",
    "children",
    "stub",
    "body",
    "data",
)
# Keys that are dropped instead of being kept as custom fields
DISCARDED_FIELDS = ("schemaStub", "type")

# Flat schema keys that belong in ``data``
SCHEMA_DATA_FIELDS = ("namespace", "pattern", "template")


class TemplateKind(str, Enum):
    """Kinds of schema templates."""

    NOTE = "note"  # Body is copied from another note


class SchemaTemplate(BaseModel):
    """Template reference declared by a schema."""

    id: str = Field(..., description="Path (fname) of the referenced content")
    type: str = Field(default=TemplateKind.NOTE.value, description="Template kind")

    model_config = {"frozen": True}


class SchemaData(BaseModel):
    """Schema-specific payload of a schema record or node."""

    pattern: Optional[str] = Field(
        default=None, description="Pattern fragment overriding the schema id"
    )
    namespace: bool = Field(
        default=False, description="Also match one wildcard segment below"
    )
    template: Optional[SchemaTemplate] = Field(
        default=None, description="Template applied to matching notes"
    )

    model_config = {"extra": "allow"}


class NodeRecord(BaseModel):
    """A flat note record as stored by the surrounding system."""

    id: str = Field(..., description="Unique ID of the record")
    fname: str = Field(..., description="Dot-delimited logical path")
    parent: Optional[str] = Field(
        default=None, description="Parent id, the root marker, or None for the root"
    )
    children: List[str] = Field(default_factory=list, description="Child ids in order")
    stub: bool = Field(default=False)
    body: str = Field(default="")
    data: Dict[str, Any] = Field(default_factory=dict)
    title: Optional[str] = Field(default=None)
    desc: str = Field(default="")
    created: Optional[str] = Field(default=None)
    updated: Optional[str] = Field(default=None)
    custom: Dict[str, Any] = Field(
        default_factory=dict, description="Fields outside the reserved set"
    )

    model_config = {"extra": "forbid"}

    @field_validator("id", "fname")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Identifiers and paths must not be blank."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("created", "updated", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[str]:
        """Timestamps are opaque strings; numeric epochs are kept as text."""
        if v is None:
            return None
        return str(v)

    @field_validator("desc", "body", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else v

    @property
    def is_root(self) -> bool:
        """True for the record that anchors the tree."""
        return self.id == ROOT_ID or self.title == ROOT_ID or self.parent is None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NodeRecord":
        """Build a record from a raw mapping, collecting custom fields.

        Keys outside the reserved set end up in ``custom``; an explicit
        ``custom`` mapping in ``raw`` is merged underneath them.
        """
        values: Dict[str, Any] = {}
        custom: Dict[str, Any] = dict(raw.get("custom") or {})
        for key, value in raw.items():
            if key in RESERVED_FIELDS:
                values[key] = value
            elif key == "custom" or key in DISCARDED_FIELDS:
                continue
            else:
                custom[key] = value
        values["custom"] = custom
        return cls(**values)


class SchemaRecord(NodeRecord):
    """A flat schema record.

    Schema records loaded from one schema file share that file's ``fname``;
    children are resolved by id within the same file.
    """

    data: SchemaData = Field(default_factory=SchemaData)

    @model_validator(mode="after")
    def _apply_schema_defaults(self) -> "SchemaRecord":
        if not self.fname.endswith(config.schema_suffix):
            self.fname = self.fname + config.schema_suffix
        if not self.title:
            self.title = self.id
        return self

    @classmethod
    def from_flat(cls, raw: Mapping[str, Any]) -> "SchemaRecord":
        """Build a schema record whose pattern, namespace and template sit at top level."""
        values = dict(raw)
        data = dict(values.pop("data", None) or {})
        for key in SCHEMA_DATA_FIELDS:
            if key in values:
                data[key] = values.pop(key)
        values["data"] = data
        return cls.from_dict(values)
