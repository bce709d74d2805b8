# Sift: configuration
# Override defaults via config.yaml; SIFT_DB overrides the database path.

import logging
import os
import sys
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from .schema import Layout
from .gestures import GesturePolicy
from .engine import DeskBounds

CONFIG_PATH = Path("~/.config/sift/config.yaml").expanduser()

logger = logging.getLogger(__name__)


@dataclass
class SiftConfig:
    """Runtime configuration for a sift board."""

    # Storage
    db_path: str = "~/.local/share/sift/sift.db"

    # Variant
    layout: str = "spatial"               # "spatial" | "stack"
    gesture_policy: str = "axis_four_way"  # see gestures.GesturePolicy

    # Gestures (screen points)
    swipe_threshold: float = 120.0
    flick_boost_threshold: float = 260.0

    # Timing
    save_debounce_ms: int = 250
    fling_duration_ms: int = 200

    # Desk (normalized)
    desk_margin: float = 0.08
    input_bar_height: float = 0.12

    log_level: str = "INFO"

    @property
    def layout_kind(self) -> Layout:
        return Layout.from_str(self.layout)

    @property
    def policy(self) -> GesturePolicy:
        return GesturePolicy.from_str(self.gesture_policy)

    @property
    def bounds(self) -> DeskBounds:
        return DeskBounds(margin=self.desk_margin, input_bar_height=self.input_bar_height)

    def resolve_paths(self):
        """Apply the SIFT_DB override and expand ~."""
        env = os.environ.get("SIFT_DB")
        if env:
            self.db_path = env
        self.db_path = str(Path(self.db_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "SiftConfig":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.resolve_paths()
        return cfg


def configure_logging(cfg: SiftConfig) -> None:
    """Send sift logs to stdout at the configured level."""
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [sift] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
