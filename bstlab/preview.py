"""Pointer-position heuristics that propose tree edits."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bstlab.config import EditorSettings
from bstlab.tree import Node, Position, Side, Tree

logger = logging.getLogger(__name__)

INVALID_VALUE = -1
PREVIEW_NODE_ID = "preview-node"


class PreviewRole(Enum):
    """Whether the proposed node becomes a child or a parent of its anchor."""
    CHILD = "child"
    PARENT = "parent"


@dataclass(frozen=True)
class PreviewNode:
    """A proposed, uncommitted node."""
    x: float
    y: float
    value: int
    anchor_id: str
    side: Side
    role: PreviewRole

    @property
    def position(self) -> Position:
        return (self.x, self.y)

    @property
    def is_child(self) -> bool:
        return self.role is PreviewRole.CHILD


@dataclass(frozen=True)
class Proposal:
    """Outcome of a pointer query. At most one field is set."""
    rotation_target_id: Optional[str] = None
    preview: Optional[PreviewNode] = None


EMPTY_PROPOSAL = Proposal()


def find_close_node(tree: Tree, x: float, y: float,
                    min_distance: float, max_distance: float) -> Optional[Node]:
    """Nearest node whose distance lies in [min_distance, max_distance)."""
    closest = None
    closest_distance = max_distance
    for node in tree:
        distance = math.hypot(node.x - x, node.y - y)
        if min_distance <= distance < closest_distance:
            closest = node
            closest_distance = distance
    return closest


def default_value(tree: Tree, anchor: Node, side: Side) -> int:
    """Pick a value for a node placed on ``side`` of ``anchor``.

    Takes the midpoint between the anchor and its nearest neighbour in value
    on that side, or scales the anchor by 0.5 / 1.5 when there is none.
    Returns INVALID_VALUE if the result collides with an existing value or
    is not positive.
    """
    values = tree.values()
    existing = set(values)

    if side is Side.LEFT:
        smaller = [v for v in values if v < anchor.value]
        if smaller:
            candidate = math.floor((anchor.value + max(smaller)) / 2)
        else:
            candidate = math.floor(anchor.value * 0.5)
            if candidate <= 0:
                return INVALID_VALUE
    else:
        larger = [v for v in values if v > anchor.value]
        if larger:
            candidate = math.floor((anchor.value + min(larger)) / 2)
        else:
            candidate = math.floor(anchor.value * 1.5)

    if candidate in existing:
        return INVALID_VALUE
    return candidate


class PreviewEngine:
    """Classifies pointer positions into rotation or insertion proposals."""

    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()

    def propose(self, tree: Tree, x: float, y: float) -> Proposal:
        s = self.settings

        # The rotation ring takes precedence over any preview
        target = find_close_node(tree, x, y, 0, s.rotation_radius)
        if target is not None:
            return Proposal(rotation_target_id=target.id)

        anchor = find_close_node(tree, x, y, s.rotation_radius, s.preview_radius)
        if anchor is None:
            return EMPTY_PROPOSAL

        side = Side.LEFT if x - anchor.x < 0 else Side.RIGHT
        role = PreviewRole.CHILD if y - anchor.y > 0 else PreviewRole.PARENT

        if role is PreviewRole.CHILD and anchor.child_id(side) is not None:
            return EMPTY_PROPOSAL
        if role is PreviewRole.PARENT and tree.has_parent(anchor.id):
            return EMPTY_PROPOSAL

        value = default_value(tree, anchor, side)
        if value == INVALID_VALUE:
            logger.debug(f"No free value {side.value} of {anchor.value}")
            return EMPTY_PROPOSAL

        offset = s.preview_offset
        preview = PreviewNode(
            x=anchor.x + (-offset if side is Side.LEFT else offset),
            y=anchor.y + (offset if role is PreviewRole.CHILD else -offset),
            value=value,
            anchor_id=anchor.id,
            side=side,
            role=role,
        )
        return Proposal(preview=preview)

    def commit(self, tree: Tree, preview: PreviewNode) -> Tree:
        """Apply a preview to ``tree`` as a structural insert."""
        if preview.is_child:
            return tree.insert_as_child(preview.anchor_id, preview.side,
                                        preview.value, preview.position)
        return tree.insert_as_parent(preview.anchor_id, preview.side,
                                     preview.value, preview.position)
