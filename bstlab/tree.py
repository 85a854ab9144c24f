"""Binary search tree model.

Nodes live in an arena keyed by id and refer to their children by id. Every
structural edit returns a new ``Tree`` generation and leaves the previous one
untouched, so a view holding an older snapshot never sees a half-applied
edit. A rejected edit returns the same ``Tree`` instance.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

Position = Tuple[float, float]


class Side(Enum):
    """Child slot of a node."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


class Direction(Enum):
    """Rotation direction."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def pivot_side(self) -> Side:
        """Side of the child that becomes the new subtree root."""
        return Side.RIGHT if self is Direction.LEFT else Side.LEFT

    @property
    def inner_side(self) -> Side:
        """Side of the pivot's child that changes parent."""
        return self.pivot_side.opposite


class NodeLookupError(KeyError):
    """Raised when a node id is not present in a tree."""


@dataclass(frozen=True)
class Node:
    """A tree node. Children are referenced by id."""
    id: str
    value: int
    x: float
    y: float
    left_id: Optional[str] = None
    right_id: Optional[str] = None

    @property
    def position(self) -> Position:
        return (self.x, self.y)

    @property
    def is_leaf(self) -> bool:
        return self.left_id is None and self.right_id is None

    def child_id(self, side: Side) -> Optional[str]:
        return self.left_id if side is Side.LEFT else self.right_id

    def with_child(self, side: Side, child_id: Optional[str]) -> "Node":
        if side is Side.LEFT:
            return replace(self, left_id=child_id)
        return replace(self, right_id=child_id)

    def moved_to(self, x: float, y: float) -> "Node":
        return replace(self, x=x, y=y)


def new_node_id() -> str:
    """Generate a unique node id."""
    return f"node-{uuid.uuid4().hex[:12]}"


def _orders(value: int, parent_value: int, side: Side) -> bool:
    if side is Side.LEFT:
        return value < parent_value
    return value > parent_value


class Tree:
    """Immutable arena of nodes forming a single binary search tree."""

    def __init__(self, nodes: Optional[Iterable[Node]] = None, generation: int = 0):
        self._nodes: Dict[str, Node] = {n.id: n for n in (nodes or ())}
        self.generation = generation

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __repr__(self) -> str:
        return f"Tree(generation={self.generation}, nodes={len(self)})"

    @property
    def nodes(self) -> Mapping[str, Node]:
        return MappingProxyType(self._nodes)

    @property
    def is_empty(self) -> bool:
        return not self._nodes

    # ==================== Queries ====================

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def node(self, node_id: str) -> Node:
        """Return a node, raising NodeLookupError if it is not present."""
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeLookupError(node_id) from None

    def child(self, node_id: str, side: Side) -> Optional[Node]:
        node = self.get(node_id)
        if node is None:
            return None
        return self.get(node.child_id(side))

    def children(self, node_id: str) -> List[Node]:
        node = self.get(node_id)
        if node is None:
            return []
        return [c for c in (self.get(node.left_id), self.get(node.right_id)) if c]

    def find_parent(self, node_id: str) -> Optional[Tuple[Node, Side]]:
        """Find the parent of a node and the side it occupies."""
        for candidate in self._nodes.values():
            if candidate.left_id == node_id:
                return candidate, Side.LEFT
            if candidate.right_id == node_id:
                return candidate, Side.RIGHT
        return None

    def has_parent(self, node_id: str) -> bool:
        return self.find_parent(node_id) is not None

    @property
    def root(self) -> Optional[Node]:
        child_ids = set()
        for n in self._nodes.values():
            child_ids.update(c for c in (n.left_id, n.right_id) if c)
        for n in self._nodes.values():
            if n.id not in child_ids:
                return n
        return None

    def subtree_ids(self, node_id: str) -> List[str]:
        """Ids of a node and all its descendants, pre-order."""
        result: List[str] = []
        stack = [node_id]
        while stack:
            current = self.get(stack.pop())
            if current is None:
                continue
            result.append(current.id)
            for child_id in (current.right_id, current.left_id):
                if child_id:
                    stack.append(child_id)
        return result

    def values(self) -> List[int]:
        return [n.value for n in self._nodes.values()]

    def has_value(self, value: int) -> bool:
        return any(n.value == value for n in self._nodes.values())

    def in_order_values(self) -> List[int]:
        result: List[int] = []

        def walk(node_id: Optional[str]):
            node = self.get(node_id)
            if node is None:
                return
            walk(node.left_id)
            result.append(node.value)
            walk(node.right_id)

        root = self.root
        if root:
            walk(root.id)
        return result

    def is_ordered(self) -> bool:
        """Check every parent/child edge against the ordering invariant."""
        for n in self._nodes.values():
            for side in Side:
                child = self.get(n.child_id(side))
                if child is not None and not _orders(child.value, n.value, side):
                    return False
        return True

    # ==================== Edits ====================

    def _derive(self, updates: Iterable[Node] = (), removed: Iterable[str] = ()) -> "Tree":
        nodes = dict(self._nodes)
        for node_id in removed:
            nodes.pop(node_id, None)
        for n in updates:
            nodes[n.id] = n
        return Tree(nodes.values(), generation=self.generation + 1)

    def _rejects_value(self, value: int) -> bool:
        if self.has_value(value):
            logger.debug(f"Value {value} already in tree")
            return True
        return False

    def insert_root(self, value: int, position: Position,
                    node_id: Optional[str] = None) -> "Tree":
        """Create the first node of an empty tree."""
        if self._nodes:
            logger.debug("Tree already has a root")
            return self
        x, y = position
        return self._derive([Node(node_id or new_node_id(), value, x, y)])

    def insert_as_child(self, parent_id: str, side: Side, value: int,
                        position: Position, node_id: Optional[str] = None) -> "Tree":
        """Attach a new leaf under ``parent_id`` on ``side``."""
        parent = self.get(parent_id)
        if parent is None:
            logger.debug(f"Insert child: parent {parent_id} not found")
            return self
        if parent.child_id(side) is not None:
            logger.debug(f"Insert child: {side.value} slot of {parent_id} is occupied")
            return self
        if not _orders(value, parent.value, side):
            logger.debug(f"Insert child: {value} cannot be {side.value} child of {parent.value}")
            return self
        if self._rejects_value(value):
            return self

        x, y = position
        new = Node(node_id or new_node_id(), value, x, y)
        return self._derive([new, parent.with_child(side, new.id)])

    def insert_as_parent(self, existing_id: str, side: Side, value: int,
                         position: Position, node_id: Optional[str] = None) -> "Tree":
        """Insert a new subtree root above ``existing_id``.

        ``side`` is where the new node sits relative to the existing one: on
        the left it is smaller and adopts the existing node as its right
        child, and symmetrically on the right. The existing node must be a
        root, so no grandparent needs rewiring.
        """
        existing = self.get(existing_id)
        if existing is None:
            logger.debug(f"Insert parent: node {existing_id} not found")
            return self
        if self.has_parent(existing_id):
            logger.debug(f"Insert parent: {existing_id} already has a parent")
            return self
        if not _orders(value, existing.value, side):
            logger.debug(f"Insert parent: {value} cannot sit {side.value} of {existing.value}")
            return self
        if self._rejects_value(value):
            return self

        x, y = position
        new = Node(node_id or new_node_id(), value, x, y).with_child(side.opposite, existing_id)
        return self._derive([new])

    def delete_leaf(self, node_id: str) -> "Tree":
        """Remove a node that has no children."""
        node = self.get(node_id)
        if node is None:
            logger.debug(f"Delete: node {node_id} not found")
            return self
        if not node.is_leaf:
            logger.debug(f"Delete: {node_id} is not a leaf")
            return self

        updates = []
        found = self.find_parent(node_id)
        if found:
            parent, side = found
            updates.append(parent.with_child(side, None))
        return self._derive(updates, removed=[node_id])

    def rotate(self, node_id: str, direction: Direction) -> "Tree":
        """Single rotation around ``node_id``.

        The child on ``direction.pivot_side`` becomes the subtree root, the
        node becomes the pivot's child and takes over the pivot's inner
        child. In-order sequence is preserved, so ordering is not rechecked.
        """
        node = self.get(node_id)
        if node is None:
            logger.debug(f"Rotate: node {node_id} not found")
            return self
        pivot = self.get(node.child_id(direction.pivot_side))
        if pivot is None:
            logger.debug(f"Rotate {direction.value}: {node_id} has no {direction.pivot_side.value} child")
            return self

        inner_id = pivot.child_id(direction.inner_side)
        new_node = node.with_child(direction.pivot_side, inner_id)
        new_pivot = pivot.with_child(direction.inner_side, node.id)
        updates = [new_node, new_pivot]

        found = self.find_parent(node_id)
        if found:
            parent, side = found
            updates.append(parent.with_child(side, pivot.id))
        return self._derive(updates)

    def move_subtree(self, node_id: str, dx: float, dy: float) -> "Tree":
        """Translate a node and every descendant by (dx, dy)."""
        ids = self.subtree_ids(node_id)
        if not ids or (dx == 0 and dy == 0):
            return self
        return self._derive(
            self._nodes[i].moved_to(self._nodes[i].x + dx, self._nodes[i].y + dy)
            for i in ids
        )

    def with_positions(self, positions: Mapping[str, Position]) -> "Tree":
        """Return a generation with updated positions for known ids."""
        updates = []
        for node_id, (x, y) in positions.items():
            node = self._nodes.get(node_id)
            if node is not None and (node.x, node.y) != (x, y):
                updates.append(node.moved_to(x, y))
        if not updates:
            return self
        return self._derive(updates)


class TreeStore:
    """Holds the current committed tree generation."""

    def __init__(self, tree: Optional[Tree] = None):
        self._tree = tree or Tree()

        # Callbacks
        self.on_changed: Optional[Callable[[Tree], None]] = None

    @property
    def tree(self) -> Tree:
        return self._tree

    def commit(self, tree: Tree) -> bool:
        """Replace the current generation. Returns False if unchanged."""
        if tree is self._tree:
            return False
        self._tree = tree
        if self.on_changed:
            self.on_changed(tree)
        return True

    def reset(self):
        self.commit(Tree(generation=self._tree.generation + 1))
