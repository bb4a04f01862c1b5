"""Custom exceptions for notetree.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Tree construction errors (1xxx)
    NO_ROOT_FOUND = 1001
    MISSING_PARENT = 1002
    DUPLICATE_ID = 1003
    RECORD_NOT_FOUND = 1004
    ORPHAN_NODE = 1005

    # Schema errors (2xxx)
    SCHEMA_RESOLUTION_FAILED = 2001

    # Template errors (3xxx)
    TEMPLATE_NOT_FOUND = 3001

    # Note lookup and linking errors (4xxx)
    NOTE_NOT_FOUND = 4001
    INVALID_LINK_PATH = 4002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


def _truncate_list(values: Sequence[str], limit: int = 10) -> List[str]:
    return [str(v) for v in list(values)[:limit]]


class NoteTreeError(Exception):
    """Base exception for all notetree errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class TreeConstructionError(NoteTreeError):
    """Base class for structural errors that abort a tree build.

    A build that raises one of these returns no tree at all.
    """


class NoRootFoundError(TreeConstructionError):
    """Raised when no record qualifies as the root of a tree."""

    def __init__(self, record_count: int = 0, message: Optional[str] = None):
        super().__init__(
            message or "no root node found",
            code=ErrorCode.NO_ROOT_FOUND,
            details={"record_count": record_count}
        )
        self.record_count = record_count


class MissingParentError(TreeConstructionError):
    """Raised when a record's declared parent is not among the resolved nodes."""

    def __init__(
        self,
        parent_id: Optional[str],
        fname: Optional[str] = None,
        resolved_ids: Optional[Sequence[str]] = None,
        message: Optional[str] = None
    ):
        details: Dict[str, Any] = {"parent_id": parent_id}
        if fname:
            details["fname"] = fname
        if resolved_ids is not None:
            details["resolved_ids"] = _truncate_list(resolved_ids)

        super().__init__(
            message or f"no parent found for '{fname}' (parent id '{parent_id}')",
            code=ErrorCode.MISSING_PARENT,
            details=details
        )
        self.parent_id = parent_id
        self.fname = fname
        self.resolved_ids: List[str] = list(resolved_ids) if resolved_ids else []


class DuplicateIdError(TreeConstructionError):
    """Raised when several records or nodes share one identifier.

    Attributes:
        record_id: The conflicting identifier
        fnames: Paths of every record carrying the identifier (full list)
    """

    def __init__(self, record_id: str, fnames: Sequence[str]):
        fname_list = ", ".join(fnames)
        super().__init__(
            "found multiple notes with the same id. "
            f"please check the following notes: {fname_list}",
            code=ErrorCode.DUPLICATE_ID,
            details={"id": record_id, "fnames": _truncate_list(fnames)}
        )
        self.record_id = record_id
        self.fnames: List[str] = list(fnames)


class RecordNotFoundError(TreeConstructionError):
    """Raised when a declared child identifier has no record."""

    def __init__(self, record_id: str, referenced_by: Optional[str] = None):
        details = {"id": record_id}
        if referenced_by:
            details["referenced_by"] = referenced_by

        super().__init__(
            f"no record found with id '{record_id}'",
            code=ErrorCode.RECORD_NOT_FOUND,
            details=details
        )
        self.record_id = record_id
        self.referenced_by = referenced_by


class OrphanNodeError(TreeConstructionError):
    """Raised when records or nodes are not connected to the root."""

    def __init__(self, fnames: Sequence[str], message: Optional[str] = None):
        fname_list = list(fnames)
        super().__init__(
            message or f"{len(fname_list)} node(s) not connected to root",
            code=ErrorCode.ORPHAN_NODE,
            details={"fnames": _truncate_list(fname_list)}
        )
        self.fnames = fname_list


class SchemaResolutionError(TreeConstructionError):
    """Raised when a schema's declared child has no matching record."""

    def __init__(
        self,
        schema_id: str,
        fname: str,
        available_ids: Optional[Sequence[str]] = None
    ):
        details: Dict[str, Any] = {"schema_id": schema_id, "fname": fname}
        if available_ids is not None:
            details["available_ids"] = _truncate_list(available_ids)

        super().__init__(
            f"bad schema file. no match found for schema with id {schema_id} in {fname}",
            code=ErrorCode.SCHEMA_RESOLUTION_FAILED,
            details=details
        )
        self.schema_id = schema_id
        self.fname = fname


class TemplateNotFoundError(NoteTreeError):
    """Raised when a schema template references a note that does not exist."""

    def __init__(self, template_id: str, note_fname: Optional[str] = None):
        details = {"template_id": template_id}
        if note_fname:
            details["note"] = note_fname

        super().__init__(
            f"no template found for {template_id}",
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            details=details
        )
        self.template_id = template_id
        self.note_fname = note_fname


class NoteNotFoundError(NoteTreeError):
    """Raised when a note cannot be found."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(
            message or f"{key} not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"key": key}
        )
        self.key = key


class LinkPathError(NoteTreeError):
    """Raised when a node cannot be linked beneath a given ancestor."""

    def __init__(self, ancestor_path: str, node_path: str):
        super().__init__(
            f"'{node_path}' is not nested under '{ancestor_path or '<root>'}'",
            code=ErrorCode.INVALID_LINK_PATH,
            details={"ancestor": ancestor_path, "node": node_path}
        )
        self.ancestor_path = ancestor_path
        self.node_path = node_path

