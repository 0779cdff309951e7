"""
Settings - Compositor configuration and logging setup.

Settings are stored as JSON under ~/.config/node_compositor/ and can be
overridden for debugging through the NODE_COMPOSITOR_DEBUG environment
variable.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "node_compositor" / "settings.json"
DEFAULT_GRAPHS_DIR = Path.home() / ".local" / "share" / "node_compositor" / "graphs"
DEBUG_ENV_VAR = "NODE_COMPOSITOR_DEBUG"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CompositorSettings:
    """
    Compositor-wide settings.

    These affect editor hit testing, node defaults, where graph
    documents are stored and how verbose logging is.
    """
    graphs_dir: Path = field(default_factory=lambda: DEFAULT_GRAPHS_DIR)
    port_hit_radius: float = 8.0
    default_node_width: float = 150.0
    default_node_height: float = 80.0
    debug: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return {
            "graphs_dir": str(self.graphs_dir),
            "port_hit_radius": self.port_hit_radius,
            "default_node_width": self.default_node_width,
            "default_node_height": self.default_node_height,
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompositorSettings:
        """Create settings from dictionary."""
        return cls(
            graphs_dir=Path(data["graphs_dir"]) if data.get("graphs_dir") else DEFAULT_GRAPHS_DIR,
            port_hit_radius=float(data.get("port_hit_radius", 8.0)),
            default_node_width=float(data.get("default_node_width", 150.0)),
            default_node_height=float(data.get("default_node_height", 80.0)),
            debug=bool(data.get("debug", False)),
        )

    @property
    def debug_enabled(self) -> bool:
        """Debug logging, from the settings file or the environment."""
        return self.debug or _env_flag(DEBUG_ENV_VAR)


def load_settings(path: Path | None = None) -> CompositorSettings:
    """
    Load settings from file.

    A missing file yields defaults; an unreadable one logs a warning
    and yields defaults.
    """
    path = path or CONFIG_PATH
    if not path.exists():
        return CompositorSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings file must contain a JSON object")
        return CompositorSettings.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Failed to load settings from %s: %s", path, e)
        return CompositorSettings()


def save_settings(settings: CompositorSettings, path: Path | None = None) -> Path:
    """Save settings to file, creating the directory if needed."""
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path


def configure_logging(settings: CompositorSettings | None = None) -> None:
    """Install a basic log handler at INFO, or DEBUG when debugging."""
    settings = settings or CompositorSettings()
    level = logging.DEBUG if settings.debug_enabled else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("node_compositor").setLevel(level)
