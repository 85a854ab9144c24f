"""PNG snapshots of the editor canvas."""

import logging
from pathlib import Path

import cairo

from bstlab.projection import Frame
from bstlab.render import paint_frame

logger = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """Get the application data directory."""
    data_dir = Path.home() / ".local" / "share" / "bstlab"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_export_dir() -> Path:
    """Get the default export directory."""
    export_dir = get_data_dir() / "exports"
    export_dir.mkdir(exist_ok=True)
    return export_dir


def export_png(frame: Frame, filepath: str, width: int = 800, height: int = 600,
               scale: float = 1.0) -> bool:
    """Render ``frame`` to a PNG file. Returns False for an empty frame."""
    if not frame.nodes:
        return False

    surface = cairo.ImageSurface(cairo.FORMAT_ARGB32,
                                 int(width * scale), int(height * scale))
    cr = cairo.Context(surface)
    cr.scale(scale, scale)
    paint_frame(cr, frame, width, height, show_grid=False)

    surface.write_to_png(str(filepath))
    logger.info(f"Exported frame to {filepath}")
    return True
