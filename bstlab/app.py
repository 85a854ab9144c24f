"""Main BST Lab application."""

import logging
import sys
from typing import Optional

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Gtk, Gio, GLib, Adw

from bstlab import __version__, __app_id__
from bstlab.canvas import TreeCanvas
from bstlab.config import EditorSettings, load_settings
from bstlab.controller import InputController
from bstlab.export import export_png, get_export_dir
from bstlab.glib_timer import GLibScheduler
from bstlab.tree import Tree

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Click anywhere to create a root node. Click near a node to add a "
    "child or parent. Drag to move a subtree. Hover a node for rotation "
    "controls. Right-click a leaf to delete it."
)


class BSTLabWindow(Adw.ApplicationWindow):
    """Main application window."""

    def __init__(self, app: Adw.Application, settings: EditorSettings):
        super().__init__(application=app)
        self.settings = settings
        self.controller = InputController.create(GLibScheduler(), settings)

        # Window setup
        self.set_title("BST Lab")
        self.set_default_size(1000, 700)

        self._build_ui()
        self.connect("close-request", self._on_close_request)

    def _build_ui(self):
        """Build the main UI layout."""
        main_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        main_box.append(self._build_header())

        help_label = Gtk.Label(label=HELP_TEXT)
        help_label.set_wrap(True)
        help_label.set_margin_top(8)
        help_label.set_margin_bottom(8)
        help_label.add_css_class("dim-label")
        main_box.append(help_label)

        self.canvas = TreeCanvas(self.controller)
        self.canvas.on_structure_changed = self._on_structure_changed

        canvas_frame = Gtk.Frame()
        canvas_frame.set_child(self.canvas)
        canvas_frame.set_vexpand(True)

        # Wrap in toast overlay for in-app notifications
        self.toast_overlay = Adw.ToastOverlay()
        self.toast_overlay.set_child(canvas_frame)
        main_box.append(self.toast_overlay)

        self.set_content(main_box)

    def _build_header(self) -> Adw.HeaderBar:
        header = Adw.HeaderBar()

        self.title_widget = Adw.WindowTitle(title="BST Lab", subtitle="Empty tree")
        header.set_title_widget(self.title_widget)

        clear_button = Gtk.Button(label="Clear")
        clear_button.set_tooltip_text("Remove every node")
        clear_button.connect("clicked", lambda b: self._clear())
        header.pack_start(clear_button)

        export_button = Gtk.Button(icon_name="document-save-symbolic")
        export_button.set_tooltip_text("Export as PNG")
        export_button.connect("clicked", lambda b: self._export_png())
        header.pack_end(export_button)

        return header

    def _on_structure_changed(self, tree: Tree):
        if tree.is_empty:
            self.title_widget.set_subtitle("Empty tree")
            return
        values = ", ".join(str(v) for v in tree.in_order_values())
        self.title_widget.set_subtitle(f"In order: {values}")

    def _clear(self):
        if not self.controller.clear() and self.controller.animator.is_animating:
            self._show_toast("Wait for the rotation to finish")

    def _on_close_request(self, window) -> bool:
        self.canvas.dispose()
        return False

    # ==================== Export ====================

    def _export_png(self):
        """Export the canvas as PNG."""
        if self.controller.tree.is_empty:
            self._show_toast("Nothing to export")
            return

        dialog = Gtk.FileDialog()
        dialog.set_title("Export as PNG")
        dialog.set_initial_name("bst.png")
        dialog.set_initial_folder(Gio.File.new_for_path(str(get_export_dir())))

        filter_png = Gtk.FileFilter()
        filter_png.set_name("PNG Images")
        filter_png.add_mime_type("image/png")

        filters = Gio.ListStore.new(Gtk.FileFilter)
        filters.append(filter_png)
        dialog.set_filters(filters)

        dialog.save(self, None, self._on_export_png_response)

    def _on_export_png_response(self, dialog, result):
        """Handle PNG export dialog response."""
        try:
            file = dialog.save_finish(result)
        except GLib.Error:
            return  # User cancelled
        filepath = file.get_path() if file else None
        if not filepath:
            self._show_toast("Export failed: selected location is not a local file")
            return
        width = max(self.canvas.get_width(), 1)
        height = max(self.canvas.get_height(), 1)
        if export_png(self.controller.frame(), filepath, width, height):
            self._show_toast(f"Exported to {filepath}")
        else:
            self._show_toast("Export failed")

    def _show_toast(self, message: str):
        """Show a toast notification."""
        toast = Adw.Toast(title=message)
        toast.set_timeout(3)
        self.toast_overlay.add_toast(toast)


class BSTLabApp(Adw.Application):
    """Main application class."""

    def __init__(self, settings: Optional[EditorSettings] = None):
        super().__init__(
            application_id=__app_id__,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS
        )
        self.settings = settings or EditorSettings()
        self.window: Optional[BSTLabWindow] = None

    def do_startup(self):
        """Initialize application."""
        Adw.Application.do_startup(self)
        style_manager = Adw.StyleManager.get_default()
        style_manager.set_color_scheme(Adw.ColorScheme.FORCE_DARK)

    def do_activate(self):
        """Activate application."""
        if not self.window:
            self.window = BSTLabWindow(self, self.settings)
        self.window.present()


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    """Application entry point."""
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting BST Lab {__version__}")
    app = BSTLabApp(settings)
    return app.run(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
