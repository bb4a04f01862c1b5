"""Flat node table backing a note or schema hierarchy."""

import logging
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar

from notetree.exceptions import DuplicateIdError
from notetree.models.nodes import TreeNode
from notetree.utils import dir_name

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=TreeNode)


class NodeTree(Generic[N]):
    """Insertion-ordered table of nodes keyed by id.

    Nodes refer to their parent and children by id; every lookup goes
    through this table. The first node added is the root.
    """

    def __init__(self, root: Optional[N] = None):
        self._nodes: Dict[str, N] = {}
        self._root_id: Optional[str] = None
        if root is not None:
            self.add(root)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add(self, node: N) -> N:
        """Register a node.

        Raises:
            DuplicateIdError: Another node with the same id is registered.
        """
        existing = self._nodes.get(node.id)
        if existing is not None:
            if existing is node:
                return node
            raise DuplicateIdError(node.id, [existing.fname, node.fname])
        self._nodes[node.id] = node
        if self._root_id is None:
            self._root_id = node.id
        if node.id == self._root_id:
            node.mark_root()
        return node

    def attach(self, parent: N, child: N) -> N:
        """Register ``child`` and link it under ``parent``."""
        self.add(child)
        parent.add_child(child)
        return child

    def replace(self, node: N) -> Optional[N]:
        """Swap the entry for ``node.id``, returning the previous node."""
        previous = self._nodes.get(node.id)
        self._nodes[node.id] = node
        if self._root_id is None:
            self._root_id = node.id
        if node.id == self._root_id:
            node.mark_root()
        return previous

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, node_id: Optional[str]) -> Optional[N]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def __getitem__(self, node_id: str) -> N:
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[N]:
        return iter(list(self._nodes.values()))

    @property
    def nodes(self) -> List[N]:
        return list(self._nodes.values())

    @property
    def root(self) -> N:
        if self._root_id is None:
            raise KeyError("tree has no root")
        return self._nodes[self._root_id]

    @property
    def domains(self) -> List[N]:
        """Top-level nodes directly below the root, in order."""
        return self.children_of(self.root)

    def parent_of(self, node: N) -> Optional[N]:
        return self.get(node.parent)

    def children_of(self, node: N) -> List[N]:
        return [self._nodes[cid] for cid in node.children if cid in self._nodes]

    def ancestors(self, node: N) -> List[N]:
        """Ancestors of ``node``, nearest first, ending with the root."""
        result: List[N] = []
        seen = {node.id}
        current = self.parent_of(node)
        while current is not None and current.id not in seen:
            result.append(current)
            seen.add(current.id)
            current = self.parent_of(current)
        return result

    def domain(self, node: N) -> N:
        """Highest ancestor of ``node`` below the root.

        The root and detached nodes are their own domain.
        """
        current = node
        parent = self.parent_of(current)
        seen = {current.id}
        while parent is not None and not parent.is_root and parent.id not in seen:
            seen.add(parent.id)
            current = parent
            parent = self.parent_of(current)
        return current

    def descendants(self, node: N) -> List[N]:
        """``node`` followed by all of its descendants in depth-first pre-order."""
        result: List[N] = []
        stack = [node]
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self.children_of(current)))
        return result

    def find_by_fname(self, fname: str, case_insensitive: bool = False) -> Optional[N]:
        """First node whose path equals ``fname``."""
        if case_insensitive:
            wanted = fname.lower()
            return next((n for n in self._nodes.values() if n.fname.lower() == wanted), None)
        return next((n for n in self._nodes.values() if n.fname == fname), None)

    def find_parent(self, fname: str) -> Optional[N]:
        """Node that should hold ``fname`` as a child.

        Top-level paths belong to the root.
        """
        parent_path = dir_name(fname)
        if not parent_path:
            return self.root if self._root_id is not None else None
        return self.find_by_fname(parent_path)

    def find_closest_parent(self, fname: str, no_stubs: bool = False) -> Optional[N]:
        """Nearest existing node above ``fname``, falling back to the root.

        Args:
            fname: Path whose ancestors are searched. The path itself is not
                considered.
            no_stubs: Skip stub nodes while walking up.
        """
        path = dir_name(fname)
        while path:
            found = self.find_by_fname(path)
            if found is not None and not (no_stubs and found.stub):
                return found
            path = dir_name(path)
        return self.root if self._root_id is not None else None

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def to_raw_props_recursive(
        self, node: Optional[N] = None, hide_body: bool = False
    ) -> List[Dict[str, Any]]:
        """Export ``node`` (the root by default) and its subtree, pre-order."""
        start = node if node is not None else self.root
        return [n.to_raw_props(hide_body=hide_body) for n in self.descendants(start)]
