"""Synthesis of stub notes that fill gaps in a note hierarchy."""

import logging
from typing import Callable, List, Optional

from notetree.exceptions import LinkPathError
from notetree.models.ids import generate_id, utc_timestamp
from notetree.models.nodes import NoteNode
from notetree.models.tree import NodeTree
from notetree.observability import timed_operation
from notetree.utils import PATH_SEPARATOR, is_nested_path

logger = logging.getLogger(__name__)


def create_back_link(note: NoteNode) -> dict:
    """Link entry pointing at ``note``."""
    return {"type": "note", "id": f"[[{note.fname}]]"}


def add_back_link(source: NoteNode, target: NoteNode) -> None:
    """Append a link to ``target`` in ``source.data["links"]``."""
    links = list(source.data.get("links") or [])
    links.append(create_back_link(target))
    source.data = {**source.data, "links": links}


class StubSynthesizer:
    """Creates the stub notes between an ancestor and a deeper node.

    Linking ``a`` with ``a.b.c.d`` creates stubs ``a.b`` and ``a.b.c``; each
    stub is the child of the previous one and ``a.b.c.d`` ends up under
    ``a.b.c``.
    """

    def __init__(
        self,
        tree: Optional[NodeTree[NoteNode]] = None,
        id_factory: Callable[[], str] = generate_id,
        timestamp_factory: Callable[[], str] = utc_timestamp,
    ):
        """Initialize the synthesizer.

        Args:
            tree: When set, stubs and the linked node are registered in it.
            id_factory: Produces ids for stubs.
            timestamp_factory: Produces created/updated values for stubs.
        """
        self.tree = tree
        self.id_factory = id_factory
        self.timestamp_factory = timestamp_factory

    def _make_stub(self, fname: str) -> NoteNode:
        return NoteNode.create_stub(
            fname, id=self.id_factory(), timestamp=self.timestamp_factory()
        )

    def _link(self, parent: NoteNode, child: NoteNode) -> None:
        if self.tree is not None:
            if child.id not in self.tree:
                self.tree.add(child)
            elif self.tree[child.id] is not child:
                self.tree.replace(child)
            previous = self.tree.get(child.parent)
            if previous is not None and previous.id != parent.id:
                previous.children = [c for c in previous.children if c != child.id]
        parent.add_child(child)

    def create_stubs(self, ancestor: NoteNode, node: NoteNode) -> List[NoteNode]:
        """Link ``node`` beneath ``ancestor``, creating stubs for missing levels.

        Returns:
            The stubs in order from the ancestor down. Empty when ``node``
            is a direct child path of ``ancestor``.

        Raises:
            LinkPathError: ``node`` does not lie below ``ancestor``.
        """
        from_path = ancestor.logical_path
        to_path = node.logical_path
        if not is_nested_path(from_path, to_path):
            raise LinkPathError(from_path, to_path)

        with timed_operation("create_stubs", ancestor=from_path, node=to_path) as op:
            rest = to_path[len(from_path):].lstrip(PATH_SEPARATOR)
            # last segment is the node itself
            missing = rest.split(PATH_SEPARATOR)[:-1]

            stubs: List[NoteNode] = []
            stub_path = from_path
            parent = ancestor
            for part in missing:
                stub_path = f"{stub_path}{PATH_SEPARATOR}{part}" if stub_path else part
                stub = self._make_stub(stub_path)
                self._link(parent, stub)
                stubs.append(stub)
                parent = stub

            self._link(parent, node)
            op["stub_count"] = len(stubs)

        if stubs:
            logger.debug(
                "Created %d stub(s) between %r and %r", len(stubs), from_path, to_path
            )
        return stubs
