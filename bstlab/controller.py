"""Maps pointer input to previews, tree edits and rotations."""

import logging
import math
import random
from typing import Optional

from bstlab.animation import RotationAnimator
from bstlab.config import EditorSettings
from bstlab.preview import EMPTY_PROPOSAL, PreviewEngine, Proposal
from bstlab.projection import Frame, build_frame, project_controls
from bstlab.scheduler import TickScheduler
from bstlab.tree import Direction, Node, TreeStore

logger = logging.getLogger(__name__)


class InputController:
    """Editing session for one tree.

    Structural edits and drags are ignored while a rotation is in flight,
    since the animator owns node positions until it settles.
    """

    def __init__(self, store: TreeStore, animator: RotationAnimator,
                 preview_engine: Optional[PreviewEngine] = None,
                 settings: Optional[EditorSettings] = None,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.animator = animator
        self.settings = settings or animator.settings
        self.preview_engine = preview_engine or PreviewEngine(self.settings)
        self.rng = rng or random.Random()

        self.proposal: Proposal = EMPTY_PROPOSAL
        self.dragging_node_id: Optional[str] = None

    @classmethod
    def create(cls, scheduler: TickScheduler,
               settings: Optional[EditorSettings] = None,
               rng: Optional[random.Random] = None) -> "InputController":
        """Build a controller with its own store and animator."""
        settings = settings or EditorSettings()
        store = TreeStore()
        animator = RotationAnimator(store, scheduler, settings)
        return cls(store, animator, settings=settings, rng=rng)

    @property
    def tree(self):
        return self.store.tree

    def _busy(self, action: str) -> bool:
        if self.animator.is_animating:
            logger.debug(f"Ignoring {action} during rotation")
            return True
        return False

    # ==================== Pointer ====================

    def move(self, x: float, y: float) -> Proposal:
        """Update the rotation affordance or preview for a pointer position."""
        self.proposal = self.preview_engine.propose(self.tree, x, y)
        return self.proposal

    def leave(self):
        """Pointer left the surface."""
        self.proposal = EMPTY_PROPOSAL

    def primary_click(self, x: float, y: float) -> bool:
        """Handle a primary click. Returns True if something changed."""
        for control in project_controls(self.tree, self.proposal.rotation_target_id, self.settings):
            if control.contains_point(x, y):
                return self.rotate(control.node_id, control.direction)

        if self._busy("click"):
            return False

        changed = False
        preview = self.proposal.preview
        if preview is not None:
            changed = self.store.commit(self.preview_engine.commit(self.tree, preview))
            if changed:
                logger.info(f"Inserted {preview.value} as {preview.side.value} {preview.role.value}")
        elif self.tree.is_empty:
            value = self.rng.randint(self.settings.root_value_min, self.settings.root_value_max)
            changed = self.store.commit(self.tree.insert_root(value, (x, y)))
            logger.info(f"Created root {value}")

        self.proposal = EMPTY_PROPOSAL
        return changed

    def secondary_click(self, x: float, y: float, node_id: Optional[str] = None) -> bool:
        """Delete the clicked node if it is a leaf."""
        if node_id is None:
            node = self.node_at(x, y)
            node_id = node.id if node else None
        if node_id is None or self._busy("delete"):
            return False
        changed = self.store.commit(self.tree.delete_leaf(node_id))
        if changed:
            self.proposal = EMPTY_PROPOSAL
            logger.info(f"Deleted leaf {node_id}")
        return changed

    def drag_start(self, node_id: str) -> bool:
        if node_id not in self.tree or self._busy("drag"):
            return False
        self.dragging_node_id = node_id
        return True

    def drag(self, dx: float, dy: float) -> bool:
        """Move the dragged node and its whole subtree by (dx, dy)."""
        if self.dragging_node_id is None or self._busy("drag"):
            return False
        return self.store.commit(self.tree.move_subtree(self.dragging_node_id, dx, dy))

    def drag_end(self, node_id: Optional[str] = None):
        self.dragging_node_id = None

    # ==================== Commands ====================

    def rotate(self, node_id: str, direction: Direction) -> bool:
        return self.animator.request_rotation(node_id, direction)

    def clear(self) -> bool:
        """Remove every node."""
        if self._busy("clear") or self.tree.is_empty:
            return False
        self.store.reset()
        self.proposal = EMPTY_PROPOSAL
        self.dragging_node_id = None
        return True

    def node_at(self, x: float, y: float) -> Optional[Node]:
        """Topmost node whose circle contains (x, y)."""
        for node in reversed(list(self.tree)):
            if math.hypot(node.x - x, node.y - y) <= self.settings.node_radius:
                return node
        return None

    def frame(self) -> Frame:
        return build_frame(self.tree, self.proposal, self.animator.animated_links,
                           self.animator.links_visible, self.settings)

    def dispose(self):
        self.animator.dispose()
