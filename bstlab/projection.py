"""Derives what the surface draws from the tree, preview and animation state.

Nothing here is a source of truth: every function is a pure projection of
its inputs and is recomputed for each frame.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from bstlab.animation import AnimatedLink, LinkAnimation
from bstlab.config import EditorSettings
from bstlab.preview import PREVIEW_NODE_ID, PreviewNode, Proposal
from bstlab.tree import Direction, Position, Side, Tree

DASH = (5.0, 5.0)


class LinkKind(Enum):
    STRUCTURAL = "structural"
    PREVIEW = "preview"


class EdgeStyle(Enum):
    STRUCTURAL = "structural"
    PREVIEW = "preview"
    CREATE = "create"
    DELETE = "delete"
    REPARENT = "reparent"


@dataclass(frozen=True)
class Link:
    source_id: str
    target_id: str
    kind: LinkKind = LinkKind.STRUCTURAL


@dataclass(frozen=True)
class EdgeInstruction:
    source: Position
    target: Position
    style: EdgeStyle
    dash: Optional[Tuple[float, ...]] = None


@dataclass(frozen=True)
class NodeInstruction:
    id: str
    position: Position
    value: int
    highlighted: bool = False
    preview: bool = False
    radius: float = 20.0


@dataclass(frozen=True)
class RotationControl:
    """A clickable rotation button drawn beside the highlighted node."""
    node_id: str
    direction: Direction
    position: Position
    radius: float

    def contains_point(self, px: float, py: float) -> bool:
        dx = px - self.position[0]
        dy = py - self.position[1]
        return dx * dx + dy * dy <= self.radius * self.radius


@dataclass(frozen=True)
class Frame:
    nodes: Tuple[NodeInstruction, ...] = ()
    edges: Tuple[EdgeInstruction, ...] = ()
    controls: Tuple[RotationControl, ...] = ()


_ANIMATION_STYLES = {
    LinkAnimation.CREATE: EdgeStyle.CREATE,
    LinkAnimation.DELETE: EdgeStyle.DELETE,
    LinkAnimation.REPARENT: EdgeStyle.REPARENT,
}


def derive_links(tree: Tree, preview: Optional[PreviewNode] = None) -> List[Link]:
    """Structural links for every child relation, plus the preview link."""
    links = []
    for node in tree:
        for side in Side:
            child_id = node.child_id(side)
            if child_id is not None and child_id in tree:
                links.append(Link(node.id, child_id))
    if preview is not None and preview.anchor_id in tree:
        links.append(Link(preview.anchor_id, PREVIEW_NODE_ID, LinkKind.PREVIEW))
    return links


def project_edges(tree: Tree, preview: Optional[PreviewNode] = None,
                  animated_links: Sequence[AnimatedLink] = (),
                  links_visible: bool = False) -> List[EdgeInstruction]:
    """Edge draw instructions for the current state.

    Animated links are only emitted when ``links_visible`` is set, i.e. once
    node movement has finished. While they run, the structural edges they
    stand in for are withheld.
    """
    animated = list(animated_links) if links_visible else []
    withheld: Set[Tuple[str, str]] = {a.replaces for a in animated if a.replaces}

    edges = []
    for link in derive_links(tree, preview):
        source = tree.node(link.source_id).position
        if link.kind is LinkKind.PREVIEW:
            edges.append(EdgeInstruction(source, preview.position, EdgeStyle.PREVIEW, DASH))
            continue
        if (link.source_id, link.target_id) in withheld:
            continue
        edges.append(EdgeInstruction(source, tree.node(link.target_id).position,
                                     EdgeStyle.STRUCTURAL))

    for a in animated:
        source, target = a.segment()
        dash = DASH if a.kind is LinkAnimation.DELETE else None
        edges.append(EdgeInstruction(source, target, _ANIMATION_STYLES[a.kind], dash))
    return edges


def project_controls(tree: Tree, node_id: Optional[str],
                     settings: EditorSettings) -> List[RotationControl]:
    node = tree.get(node_id)
    if node is None:
        return []
    offset = settings.control_offset
    return [
        RotationControl(node.id, Direction.LEFT, (node.x - offset, node.y), settings.control_radius),
        RotationControl(node.id, Direction.RIGHT, (node.x + offset, node.y), settings.control_radius),
    ]


def build_frame(tree: Tree, proposal: Proposal,
                animated_links: Iterable[AnimatedLink] = (),
                links_visible: bool = False,
                settings: Optional[EditorSettings] = None) -> Frame:
    """Assemble the full set of draw instructions for one frame."""
    settings = settings or EditorSettings()
    highlighted = proposal.rotation_target_id
    nodes = [
        NodeInstruction(n.id, n.position, n.value, highlighted=n.id == highlighted,
                        radius=settings.node_radius)
        for n in tree
    ]
    preview = proposal.preview
    if preview is not None and preview.anchor_id not in tree:
        preview = None
    if preview is not None:
        nodes.append(NodeInstruction(PREVIEW_NODE_ID, preview.position, preview.value,
                                     preview=True, radius=settings.node_radius))
    return Frame(
        nodes=tuple(nodes),
        edges=tuple(project_edges(tree, preview, list(animated_links), links_visible)),
        controls=tuple(project_controls(tree, highlighted, settings)),
    )
