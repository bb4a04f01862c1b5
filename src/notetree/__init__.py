"""
notetree - hierarchical notes and schemas built from flat records.

Turns an order-independent collection of note and schema records into
connected trees, resolves every note to the most specific schema pattern that
constrains it, and fills structural gaps with stub notes.

All operations are synchronous and in-memory.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notetree")
except PackageNotFoundError:
    __version__ = "0.3.0"
