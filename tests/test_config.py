from bstlab.animation import RotationPhase
from bstlab.config import EditorSettings, load_settings, save_settings
from bstlab.controller import InputController
from bstlab.scheduler import ManualScheduler
from bstlab.tree import Direction, Side, Tree


def test_defaults():
    settings = EditorSettings()
    assert settings.rotation_radius == 40
    assert settings.preview_radius == 100
    assert settings.alpha_min == 0.1
    assert settings.tick_interval_ms == 16
    assert not settings.translate_subtrees


def test_json_round_trip_keeps_changes():
    settings = EditorSettings(rotation_offset=70, translate_subtrees=True)
    restored = EditorSettings.from_json(settings.to_json())
    assert restored == settings


def test_unknown_keys_are_ignored():
    restored = EditorSettings.from_json('{"link_step": 0.1, "theme": "light"}')
    assert restored.link_step == 0.1
    assert not hasattr(restored, "theme")


def test_malformed_json_gives_defaults():
    assert EditorSettings.from_json("{not json") == EditorSettings()
    assert EditorSettings.from_json("[1, 2]") == EditorSettings()
    assert EditorSettings.from_json(None) == EditorSettings()


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    written = save_settings(EditorSettings(preview_offset=60), path)

    assert written == path
    assert load_settings(path).preview_offset == 60


def test_missing_file_writes_defaults(tmp_path):
    path = tmp_path / "config" / "settings.json"

    assert load_settings(path) == EditorSettings()
    assert EditorSettings.from_json(path.read_text(encoding="utf-8")) == EditorSettings()


def test_wrong_types_fall_back_to_defaults():
    restored = EditorSettings.from_json(
        '{"rotation_radius": "40", "translate_subtrees": 1, "tick_interval_ms": true,'
        ' "preview_offset": 60, "node_radius": NaN}'
    )

    assert restored.rotation_radius == 40.0
    assert restored.translate_subtrees is False
    assert restored.tick_interval_ms == 16
    assert restored.node_radius == 20.0
    assert restored.preview_offset == 60


def test_ints_accepted_for_float_settings():
    assert EditorSettings.from_json('{"rotation_offset": 70}').rotation_offset == 70


def test_out_of_range_values_fall_back_to_defaults():
    defaults = EditorSettings()
    for raw in (
        '{"link_step": 0}',
        '{"link_step": -0.05}',
        '{"alpha_decay": 0}',
        '{"alpha_decay": 1.5}',
        '{"velocity_decay": 1}',
        '{"alpha_min": 0}',
        '{"alpha_min": 0.9}',
        '{"tick_interval_ms": 0}',
        '{"control_radius": -10}',
        '{"root_value_min": 60}',
        '{"root_value_min": 0}',
    ):
        assert EditorSettings.from_json(raw) == defaults, raw


def test_coupled_range_resets_every_field_involved():
    restored = EditorSettings.from_json('{"alpha_start": 0.05, "alpha_min": 0.02, "link_step": 0.1}')
    assert restored.alpha_start == 0.05
    assert restored.alpha_min == 0.02

    restored = EditorSettings.from_json('{"alpha_start": 0.05, "link_step": 0.1}')
    assert restored.alpha_start == 0.8
    assert restored.alpha_min == 0.1
    assert restored.link_step == 0.1


def test_loaded_settings_keep_the_editor_usable(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"link_step": 0, "rotation_radius": "40"}', encoding="utf-8")

    scheduler = ManualScheduler()
    controller = InputController.create(scheduler, load_settings(path))
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    controller.store.commit(tree.insert_as_child("a", Side.RIGHT, 30, (180, 180), node_id="b"))

    assert controller.move(60, 160).preview.value == 10
    assert controller.rotate("a", Direction.LEFT)
    scheduler.run_until_idle()

    assert controller.animator.phase is RotationPhase.IDLE
    assert controller.tree.root.id == "b"
