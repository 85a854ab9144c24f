"""Editor settings for BST Lab."""

import json
import logging
import math
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Settings that must be strictly positive
POSITIVE_SETTINGS = (
    "rotation_radius",
    "preview_radius",
    "preview_offset",
    "node_radius",
    "control_offset",
    "control_radius",
    "rotation_offset",
    "target_strength",
    "tick_interval_ms",
    "link_step",
)


def get_config_dir() -> Path:
    """Get the application configuration directory."""
    return Path.home() / ".config" / "bstlab"


def get_settings_path() -> Path:
    """Get the settings file path."""
    return get_config_dir() / "settings.json"


def _accepts(field_type: type, value: Any) -> bool:
    """Whether a JSON value fits a settings field of ``field_type``."""
    if field_type is bool:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if field_type is float:
        return isinstance(value, (int, float)) and math.isfinite(value)
    return isinstance(value, field_type)


def _range_checks(s: Dict[str, Any]) -> List[Tuple[Tuple[str, ...], bool]]:
    """(fields, holds) pairs for every range constraint."""
    checks = [((name,), s[name] > 0) for name in POSITIVE_SETTINGS]
    checks += [
        (("alpha_decay",), 0 < s["alpha_decay"] < 1),
        (("velocity_decay",), 0 <= s["velocity_decay"] < 1),
        (("alpha_min", "alpha_start"), 0 < s["alpha_min"] < s["alpha_start"]),
        (("root_value_min", "root_value_max"),
         1 <= s["root_value_min"] <= s["root_value_max"]),
    ]
    return checks


@dataclass
class EditorSettings:
    """Tunable constants for the editor, preview and rotation engine."""
    # Pointer zones (canvas pixels, measured from node centres)
    rotation_radius: float = 40.0
    preview_radius: float = 100.0
    preview_offset: float = 80.0
    node_radius: float = 20.0
    control_offset: float = 30.0
    control_radius: float = 10.0

    # Rotation
    rotation_offset: float = 50.0
    translate_subtrees: bool = False

    # Target-seeking simulation
    alpha_start: float = 0.8
    alpha_decay: float = 0.03
    alpha_min: float = 0.1
    velocity_decay: float = 0.3
    target_strength: float = 0.3

    # Link animation
    tick_interval_ms: int = 16
    link_step: float = 0.05

    # Root node value range (inclusive)
    root_value_min: int = 5
    root_value_max: int = 54

    log_level: str = "WARNING"

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: Optional[str]) -> "EditorSettings":
        if not data:
            return cls()
        try:
            d = json.loads(data)
            # Filter to only known fields to handle schema evolution
            known = {f.name for f in cls.__dataclass_fields__.values()}
            return cls(**cls._checked({k: v for k, v in d.items() if k in known}))
        except (json.JSONDecodeError, TypeError, AttributeError):
            logger.warning("Ignoring malformed settings, using defaults")
            return cls()

    @classmethod
    def _checked(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        """Drop values of the wrong type or outside their allowed range.

        Dropped fields fall back to their defaults. A range constraint that
        spans several fields resets all of them.
        """
        fields = cls.__dataclass_fields__
        checked = {}
        for name, value in values.items():
            field_type = fields[name].type
            if _accepts(field_type, value):
                checked[name] = value
            else:
                logger.warning(f"Ignoring setting {name}={value!r}, expected {field_type.__name__}")

        merged = {name: f.default for name, f in fields.items()}
        merged.update(checked)
        for names, holds in _range_checks(merged):
            if holds:
                continue
            logger.warning(f"Ignoring out-of-range setting {', '.join(names)}, using defaults")
            for name in names:
                checked.pop(name, None)
        return checked


def load_settings(path: Optional[Path] = None) -> EditorSettings:
    """Load settings from disk, falling back to defaults.

    On first run the defaults are written out so they can be edited.
    """
    path = path or get_settings_path()
    if not path.exists():
        settings = EditorSettings()
        try:
            save_settings(settings, path)
        except OSError as e:
            logger.warning(f"Failed to write default settings to {path}: {e}")
        return settings
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to read settings file {path}: {e}")
        return EditorSettings()
    return EditorSettings.from_json(data)


def save_settings(settings: EditorSettings, path: Optional[Path] = None) -> Path:
    """Write settings to disk and return the path written."""
    path = path or get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.to_json(), encoding="utf-8")
    return path
