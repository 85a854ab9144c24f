"""Two-phase rotation animation.

A rotation first moves the nodes toward their post-rotation positions with a
small target-seeking simulation. Once the simulation's alpha decays below its
threshold every node is snapped to its target, the structural rotation is
committed in one step, and only then are the link transitions (delete,
create, reparent) animated.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from bstlab.config import EditorSettings
from bstlab.scheduler import TickScheduler
from bstlab.tree import Direction, Node, NodeLookupError, Position, Tree, TreeStore

logger = logging.getLogger(__name__)


class RotationPhase(Enum):
    """States of the rotation engine."""
    IDLE = "idle"
    NODES_MOVING = "nodes_moving"
    LINKS_ANIMATING = "links_animating"


class LinkAnimation(Enum):
    """How an animated link changes while its progress runs from 0 to 1."""
    CREATE = "create"
    DELETE = "delete"
    REPARENT = "reparent"


def _lerp(a: Position, b: Position, t: float) -> Position:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


@dataclass(frozen=True)
class AnimatedLink:
    """An edge transition shown after the nodes have settled."""
    id: str
    kind: LinkAnimation
    start_source: Position
    start_target: Position
    end_source: Position
    end_target: Position
    progress: float = 0.0
    # Structural edge (source id, target id) this link stands in for once
    # the rotation is committed
    replaces: Optional[Tuple[str, str]] = None

    @property
    def done(self) -> bool:
        return self.progress >= 1.0

    def advanced(self, step: float) -> "AnimatedLink":
        return replace(self, progress=min(self.progress + step, 1.0))

    def segment(self) -> Tuple[Position, Position]:
        """Current (source, target) endpoints."""
        t = self.progress
        if self.kind is LinkAnimation.CREATE:
            # Grows from the source toward the target
            return self.start_source, _lerp(self.start_source, self.end_target, t)
        if self.kind is LinkAnimation.DELETE:
            # Retracts from the target back into the source
            return self.start_source, _lerp(self.start_target, self.start_source, t)
        # Swings from the old parent to the new one, target stays put
        return _lerp(self.start_source, self.end_source, t), self.start_target


def rotation_offset(node: Node, direction: Direction, offset: float) -> Position:
    """Position a node moves to when it is rotated down."""
    dx = -offset if direction is Direction.LEFT else offset
    return (node.x + dx, node.y + offset)


def rotation_targets(tree: Tree, node: Node, pivot: Node, direction: Direction,
                     offset: float, translate_subtrees: bool = False) -> Dict[str, Position]:
    """Target positions for every node in ``tree``.

    The rotated node moves diagonally down, the pivot takes its place and
    everything else stays where it is. With ``translate_subtrees`` the
    node's untouched subtree and the pivot's outer subtree follow their
    roots rigidly; the inner subtree that changes parent never moves.
    """
    targets = {n.id: n.position for n in tree}
    node_target = rotation_offset(node, direction, offset)
    moves = [
        (node.id, node_target[0] - node.x, node_target[1] - node.y),
        (pivot.id, node.x - pivot.x, node.y - pivot.y),
    ]
    if translate_subtrees:
        outer_node_child = node.child_id(direction.pivot_side.opposite)
        outer_pivot_child = pivot.child_id(direction.pivot_side)
        if outer_node_child:
            moves.append((outer_node_child, moves[0][1], moves[0][2]))
        if outer_pivot_child:
            moves.append((outer_pivot_child, moves[1][1], moves[1][2]))

    for root_id, dx, dy in moves:
        ids = tree.subtree_ids(root_id) if root_id not in (node.id, pivot.id) else [root_id]
        for node_id in ids:
            x, y = tree.node(node_id).position
            targets[node_id] = (x + dx, y + dy)
    return targets


def rotation_links(node: Node, pivot: Node, grandchild: Optional[Node],
                   direction: Direction, offset: float) -> List[AnimatedLink]:
    """Animated links for a rotation of ``node`` around ``pivot``."""
    node_new = rotation_offset(node, direction, offset)
    links = [
        AnimatedLink(
            id=f"delete-{node.id}-{pivot.id}",
            kind=LinkAnimation.DELETE,
            start_source=node.position,
            start_target=pivot.position,
            end_source=node.position,
            end_target=pivot.position,
        ),
        AnimatedLink(
            id=f"create-{pivot.id}-{node.id}",
            kind=LinkAnimation.CREATE,
            start_source=pivot.position,
            start_target=node_new,
            end_source=pivot.position,
            end_target=node_new,
            replaces=(pivot.id, node.id),
        ),
    ]
    if grandchild is not None:
        links.append(AnimatedLink(
            id=f"reparent-{grandchild.id}",
            kind=LinkAnimation.REPARENT,
            start_source=pivot.position,
            start_target=grandchild.position,
            end_source=node_new,
            end_target=grandchild.position,
            replaces=(node.id, grandchild.id),
        ))
    return links


@dataclass
class SimulationNode:
    id: str
    x: float
    y: float
    target_x: float
    target_y: float
    vx: float = 0.0
    vy: float = 0.0


class TargetSimulation:
    """Moves every node toward its target with a decaying strength.

    Each step decays alpha toward zero, sets each velocity to
    ``(target - position) * alpha * strength``, damps it and integrates.
    The simulation is converged once alpha drops below ``alpha_min``.
    """

    def __init__(self, nodes: List[SimulationNode], settings: EditorSettings):
        self.nodes = nodes
        self.alpha = settings.alpha_start
        self.alpha_min = settings.alpha_min
        self.alpha_decay = settings.alpha_decay
        self.velocity_decay = settings.velocity_decay
        self.strength = settings.target_strength

    @classmethod
    def for_tree(cls, tree: Tree, targets: Dict[str, Position],
                 settings: EditorSettings) -> "TargetSimulation":
        nodes = []
        for n in tree:
            tx, ty = targets.get(n.id, n.position)
            nodes.append(SimulationNode(n.id, n.x, n.y, tx, ty))
        return cls(nodes, settings)

    @property
    def converged(self) -> bool:
        return self.alpha < self.alpha_min

    def step(self):
        self.alpha += (0.0 - self.alpha) * self.alpha_decay
        for n in self.nodes:
            n.vx = (n.target_x - n.x) * self.alpha * self.strength
            n.vy = (n.target_y - n.y) * self.alpha * self.strength
            n.vx *= 1.0 - self.velocity_decay
            n.vy *= 1.0 - self.velocity_decay
            n.x += n.vx
            n.y += n.vy

    def snap(self):
        """Place every node exactly on its target."""
        for n in self.nodes:
            n.x, n.y = n.target_x, n.target_y
            n.vx = n.vy = 0.0

    def positions(self) -> Dict[str, Position]:
        return {n.id: (n.x, n.y) for n in self.nodes}


@dataclass(frozen=True)
class _RotationRequest:
    node_id: str
    pivot_id: str
    direction: Direction
    # Committed positions when the rotation was requested
    start_positions: Dict[str, Position]


class RotationAnimator:
    """State machine for one rotation at a time.

    ``IDLE -> NODES_MOVING -> LINKS_ANIMATING -> IDLE``. Requests made while
    a rotation is in flight are dropped. The scheduler is owned by the
    animator and stopped by ``dispose()``.
    """

    def __init__(self, store: TreeStore, scheduler: TickScheduler,
                 settings: Optional[EditorSettings] = None):
        self.store = store
        self.scheduler = scheduler
        self.settings = settings or EditorSettings()

        self.phase = RotationPhase.IDLE
        self._request: Optional[_RotationRequest] = None
        self._simulation: Optional[TargetSimulation] = None
        self._links: List[AnimatedLink] = []
        self._disposed = False

        # Callbacks
        self.on_frame: Optional[Callable[[], None]] = None
        self.on_phase_changed: Optional[Callable[[RotationPhase], None]] = None

    @property
    def is_animating(self) -> bool:
        return self.phase is not RotationPhase.IDLE

    @property
    def links_visible(self) -> bool:
        """Animated links are only drawn once the nodes have settled."""
        return self.phase is RotationPhase.LINKS_ANIMATING

    @property
    def animated_links(self) -> Tuple[AnimatedLink, ...]:
        return tuple(self._links)

    def request_rotation(self, node_id: str, direction: Direction) -> bool:
        """Start a rotation. Returns False if the request was dropped."""
        if self._disposed:
            logger.debug("Rotation requested on a disposed animator")
            return False
        if self.is_animating:
            logger.debug(f"Rotation of {node_id} dropped, {self.phase.value} in progress")
            return False

        tree = self.store.tree
        node = tree.get(node_id)
        if node is None:
            logger.debug(f"Rotation: node {node_id} not found")
            return False
        pivot = tree.child(node_id, direction.pivot_side)
        if pivot is None:
            logger.debug(f"Rotation {direction.value}: {node_id} has no {direction.pivot_side.value} child")
            return False
        grandchild = tree.child(pivot.id, direction.inner_side)

        s = self.settings
        targets = rotation_targets(tree, node, pivot, direction,
                                   s.rotation_offset, s.translate_subtrees)
        self._links = rotation_links(node, pivot, grandchild, direction, s.rotation_offset)
        self._simulation = TargetSimulation.for_tree(tree, targets, s)
        self._request = _RotationRequest(node.id, pivot.id, direction,
                                         {n.id: n.position for n in tree})

        logger.info(f"Rotating {node.value} {direction.value} around {pivot.value}")
        self._set_phase(RotationPhase.NODES_MOVING)
        self.scheduler.start(s.tick_interval_ms, self._on_tick)
        return True

    def dispose(self):
        """Stop the timer and drop any in-flight rotation."""
        self.scheduler.stop()
        self._reset()
        self._disposed = True

    # ==================== Ticks ====================

    def _on_tick(self) -> bool:
        if self.phase is RotationPhase.NODES_MOVING:
            return self._step_nodes()
        if self.phase is RotationPhase.LINKS_ANIMATING:
            return self._step_links()
        return False

    def _step_nodes(self) -> bool:
        sim = self._simulation
        sim.step()
        if not sim.converged:
            self.store.commit(self.store.tree.with_positions(sim.positions()))
            self._emit_frame()
            return True

        sim.snap()
        return self._commit_rotation()

    def _commit_rotation(self) -> bool:
        request = self._request
        tree = self.store.tree.with_positions(self._simulation.positions())
        try:
            node = tree.node(request.node_id)
            pivot = tree.node(request.pivot_id)
        except NodeLookupError as e:
            logger.warning(f"Rotation aborted, node {e} is gone")
            self._abort()
            return False
        if node.child_id(request.direction.pivot_side) != pivot.id:
            logger.warning(f"Rotation aborted, {pivot.id} is no longer a child of {node.id}")
            self._abort()
            return False

        self.store.commit(tree.rotate(request.node_id, request.direction))
        self._set_phase(RotationPhase.LINKS_ANIMATING)
        self._emit_frame()
        return True

    def _step_links(self) -> bool:
        step = self.settings.link_step
        self._links = [link.advanced(step) for link in self._links]
        self._emit_frame()
        if all(link.done for link in self._links):
            self._reset()
            self._emit_frame()
            return False
        return True

    # ==================== State ====================

    def _abort(self):
        """Put surviving nodes back where they were before the rotation."""
        request = self._request
        if request is not None:
            self.store.commit(self.store.tree.with_positions(request.start_positions))
        self._reset()
        self._emit_frame()

    def _reset(self):
        self._request = None
        self._simulation = None
        self._links = []
        self._set_phase(RotationPhase.IDLE)

    def _set_phase(self, phase: RotationPhase):
        if phase is self.phase:
            return
        self.phase = phase
        if self.on_phase_changed:
            self.on_phase_changed(phase)

    def _emit_frame(self):
        if self.on_frame:
            self.on_frame()
