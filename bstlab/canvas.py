"""Canvas widget for the tree editor."""

import math
from typing import Callable, Optional

import gi

gi.require_version("Gtk", "4.0")
from gi.repository import Gtk

from bstlab.animation import RotationPhase
from bstlab.controller import InputController
from bstlab.render import paint_frame
from bstlab.tree import Tree


class TreeCanvas(Gtk.DrawingArea):
    """Drawing area that forwards pointer gestures to an InputController."""

    def __init__(self, controller: InputController):
        super().__init__()

        self.controller = controller
        self.show_grid = True

        # Drag threshold
        self._drag_threshold = 5
        self._drag_exceeded_threshold = False
        self._drag_pending_node_id: Optional[str] = None
        self._last_offset_x = 0.0
        self._last_offset_y = 0.0

        # Callbacks
        self.on_structure_changed: Optional[Callable[[Tree], None]] = None

        controller.store.on_changed = self._on_tree_changed
        controller.animator.on_frame = self.queue_draw
        controller.animator.on_phase_changed = self._on_phase_changed

        # Setup widget
        self.set_draw_func(self._on_draw)
        self.set_focusable(True)
        self._setup_event_controllers()
        self.set_hexpand(True)
        self.set_vexpand(True)

    def _setup_event_controllers(self):
        """Setup mouse event controllers."""
        # Primary click fires on release so a drag never doubles as a click
        click_ctrl = Gtk.GestureClick()
        click_ctrl.set_button(1)
        click_ctrl.connect("released", self._on_click_released)
        self.add_controller(click_ctrl)

        # Mouse motion
        motion_ctrl = Gtk.EventControllerMotion()
        motion_ctrl.connect("motion", self._on_motion)
        motion_ctrl.connect("leave", self._on_leave)
        self.add_controller(motion_ctrl)

        # Drag nodes (left mouse button)
        drag_ctrl = Gtk.GestureDrag()
        drag_ctrl.set_button(1)
        drag_ctrl.connect("drag-begin", self._on_drag_begin)
        drag_ctrl.connect("drag-update", self._on_drag_update)
        drag_ctrl.connect("drag-end", self._on_drag_end)
        self.add_controller(drag_ctrl)

        # Right-click deletes leaves
        right_click = Gtk.GestureClick()
        right_click.set_button(3)
        right_click.connect("pressed", self._on_right_click)
        self.add_controller(right_click)

    def dispose(self):
        """Stop animation timers before the widget goes away."""
        self.controller.dispose()

    def _on_draw(self, area, cr, width, height):
        """Main drawing function."""
        paint_frame(cr, self.controller.frame(), width, height, show_grid=self.show_grid)

    def _on_tree_changed(self, tree: Tree):
        self.queue_draw()
        if self.on_structure_changed:
            self.on_structure_changed(tree)

    def _on_phase_changed(self, phase: RotationPhase):
        self.queue_draw()

    # ==================== Pointer ====================

    def _on_click_released(self, gesture, n_press, x, y):
        """Handle primary click."""
        self.grab_focus()
        if self._drag_exceeded_threshold:
            return
        self.controller.primary_click(x, y)
        self.controller.move(x, y)
        self.queue_draw()

    def _on_motion(self, controller, x, y):
        """Handle mouse motion."""
        if self._drag_pending_node_id is not None and self._drag_exceeded_threshold:
            return
        self.controller.move(x, y)
        self.queue_draw()

    def _on_leave(self, controller):
        """Handle mouse leaving canvas."""
        self.controller.leave()
        self.queue_draw()

    def _on_right_click(self, gesture, n_press, x, y):
        """Delete the clicked node if it has no children."""
        self.controller.secondary_click(x, y)

    def _on_drag_begin(self, gesture, start_x, start_y):
        """Don't commit to a drag until the threshold is passed."""
        node = self.controller.node_at(start_x, start_y)
        self._drag_pending_node_id = node.id if node else None
        self._drag_exceeded_threshold = False
        self._last_offset_x = 0.0
        self._last_offset_y = 0.0

    def _on_drag_update(self, gesture, offset_x, offset_y):
        """Move the dragged subtree by the pointer delta."""
        if self._drag_pending_node_id is None:
            return
        if not self._drag_exceeded_threshold:
            if math.hypot(offset_x, offset_y) < self._drag_threshold:
                return  # Below threshold, don't move anything
            if not self.controller.drag_start(self._drag_pending_node_id):
                self._drag_pending_node_id = None
                return
            self._drag_exceeded_threshold = True

        self.controller.drag(offset_x - self._last_offset_x, offset_y - self._last_offset_y)
        self._last_offset_x = offset_x
        self._last_offset_y = offset_y

    def _on_drag_end(self, gesture, offset_x, offset_y):
        """Handle end of drag."""
        if self._drag_exceeded_threshold:
            self.controller.drag_end(self._drag_pending_node_id)
        self._drag_pending_node_id = None
