import pytest

cairo = pytest.importorskip("cairo")

from bstlab.controller import InputController  # noqa: E402
from bstlab.export import export_png  # noqa: E402
from bstlab.projection import Frame  # noqa: E402
from bstlab.render import paint_frame  # noqa: E402
from bstlab.scheduler import ManualScheduler  # noqa: E402
from bstlab.tree import Direction, Side, Tree  # noqa: E402


def _busy_frame(controller: InputController, scheduler: ManualScheduler) -> Frame:
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    tree = tree.insert_as_child("a", Side.RIGHT, 30, (180, 180), node_id="b")
    tree = tree.insert_as_child("b", Side.LEFT, 25, (140, 260), node_id="c")
    controller.store.commit(tree)
    controller.rotate("a", Direction.LEFT)
    while not controller.animator.links_visible:
        scheduler.tick()
    scheduler.tick()
    controller.move(100, 100)
    return controller.frame()


def test_paint_frame_draws_every_style():
    scheduler = ManualScheduler()
    controller = InputController.create(scheduler)
    frame = _busy_frame(controller, scheduler)
    assert frame.controls

    surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, 320, 320)
    cr = cairo.Context(surface)
    paint_frame(cr, frame, 320, 320)
    surface.flush()

    assert any(surface.get_data())


def test_export_png_writes_file(tmp_path):
    scheduler = ManualScheduler()
    controller = InputController.create(scheduler)
    controller.store.commit(Tree().insert_root(20, (100, 100)))
    controller.move(60, 160)

    target = tmp_path / "tree.png"
    assert export_png(controller.frame(), str(target), width=200, height=200, scale=2.0)

    assert target.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_export_png_skips_empty_frame(tmp_path):
    target = tmp_path / "empty.png"
    assert not export_png(Frame(), str(target))
    assert not target.exists()
