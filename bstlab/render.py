"""Cairo painter for editor frames."""

import math

import cairo

from bstlab.projection import EdgeStyle, Frame, NodeInstruction, RotationControl
from bstlab.tree import Direction

# Colors
COLORS = {
    'bg_primary': (0.039, 0.039, 0.039),      # #0a0a0a
    'grid_dots': (0.12, 0.12, 0.12),
    'surface': (0.118, 0.118, 0.118),         # #1e1e1e
    'surface_hover': (0.145, 0.145, 0.145),   # #252525
    'border_subtle': (0.533, 0.533, 0.533),   # #888888
    'text_primary': (0.878, 0.878, 0.878),    # #e0e0e0
    'text_muted': (0.533, 0.533, 0.533),      # #888888
    'accent_primary': (1.0, 0.176, 0.176),    # #ff2d2d
}

# Edge color and opacity per style
EDGE_COLORS = {
    EdgeStyle.STRUCTURAL: ((0.6, 0.6, 0.6), 0.6),      # #999999
    EdgeStyle.PREVIEW: ((0.6, 0.6, 0.6), 0.4),
    EdgeStyle.CREATE: ((0.298, 0.686, 0.314), 0.8),    # #4caf50
    EdgeStyle.DELETE: ((0.957, 0.263, 0.212), 0.8),    # #f44336
    EdgeStyle.REPARENT: ((0.129, 0.588, 0.953), 0.8),  # #2196f3
}

GRID_SIZE = 30

CONTROL_GLYPHS = {
    Direction.LEFT: "⟲",
    Direction.RIGHT: "⟳",
}


def paint_frame(cr, frame: Frame, width: float, height: float, show_grid: bool = True):
    """Paint a full frame: background, edges, nodes, rotation controls."""
    cr.save()
    cr.set_source_rgb(*COLORS['bg_primary'])
    cr.paint()
    if show_grid:
        _draw_grid(cr, width, height)

    # Edges first (behind nodes)
    for edge in frame.edges:
        color, alpha = EDGE_COLORS[edge.style]
        cr.set_source_rgba(*color, alpha)
        cr.set_line_width(2)
        cr.set_line_cap(cairo.LINE_CAP_ROUND)
        cr.set_dash(list(edge.dash) if edge.dash else [])
        cr.move_to(*edge.source)
        cr.line_to(*edge.target)
        cr.stroke()
    cr.set_dash([])

    for node in frame.nodes:
        _draw_node(cr, node)

    for control in frame.controls:
        _draw_control(cr, control)

    cr.restore()


def _draw_grid(cr, width: float, height: float):
    """Draw dot grid pattern."""
    cr.save()
    cr.set_source_rgb(*COLORS['grid_dots'])
    x = 0.0
    while x < width:
        y = 0.0
        while y < height:
            cr.arc(x, y, 1.5, 0, 2 * math.pi)
            cr.fill()
            y += GRID_SIZE
        x += GRID_SIZE
    cr.restore()


def _draw_centered_text(cr, text: str, x: float, y: float, size: float):
    cr.select_font_face("monospace", cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
    cr.set_font_size(size)
    extents = cr.text_extents(text)
    cr.move_to(x - extents.width / 2 - extents.x_bearing,
               y - extents.height / 2 - extents.y_bearing)
    cr.show_text(text)


def _draw_node(cr, node: NodeInstruction):
    """Draw a single node."""
    x, y = node.position
    cr.save()
    cr.new_path()
    cr.arc(x, y, node.radius, 0, 2 * math.pi)

    if node.preview:
        cr.set_source_rgba(*COLORS['surface'], 0.6)
        cr.fill_preserve()
        cr.set_source_rgba(*COLORS['text_muted'], 0.6)
        cr.set_dash([5.0, 5.0])
    else:
        fill = COLORS['surface_hover'] if node.highlighted else COLORS['surface']
        cr.set_source_rgb(*fill)
        cr.fill_preserve()
        border = COLORS['accent_primary'] if node.highlighted else COLORS['border_subtle']
        cr.set_source_rgb(*border)
    cr.set_line_width(2)
    cr.stroke()
    cr.set_dash([])

    text_color = COLORS['text_muted'] if node.preview else COLORS['text_primary']
    cr.set_source_rgb(*text_color)
    _draw_centered_text(cr, str(node.value), x, y, 12)
    cr.restore()


def _draw_control(cr, control: RotationControl):
    x, y = control.position
    cr.save()
    cr.new_path()
    cr.arc(x, y, control.radius, 0, 2 * math.pi)
    cr.set_source_rgb(*COLORS['surface_hover'])
    cr.fill_preserve()
    cr.set_source_rgb(*COLORS['accent_primary'])
    cr.set_line_width(1)
    cr.stroke()
    cr.set_source_rgb(*COLORS['text_primary'])
    _draw_centered_text(cr, CONTROL_GLYPHS[control.direction], x, y, 12)
    cr.restore()
