"""
Paths & Constants
=================
Where the viewer finds its resources, plus constants shared by the render loop.

The assets directory is looked up in order:
1. the SCENEGRAPHVIZ_ASSETS environment variable,
2. the PyInstaller bundle (sys._MEIPASS),
3. the source checkout (<repo>/assets).

Exports:
    ASSETS_PATH (str): Resolved assets directory.
    DEFAULT_RENDER_CONFIG_PATH (str): Render configuration used when none is given.
    VISIBLE_APP_NAME (str): Window and application title.
    WORLD_FRAME (str): Coordinate frame stamped on every primitive.
    DEFAULT_LOOP_PERIOD (float): Redraw scheduler period in seconds.
"""
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

ASSETS_ENV_VAR = "SCENEGRAPHVIZ_ASSETS"


def find_assets_dir() -> Path:
    override = os.environ.get(ASSETS_ENV_VAR)
    if override:
        return Path(override)

    bundle_dir = getattr(sys, '_MEIPASS', None)
    if bundle_dir is not None:
        return Path(bundle_dir) / "assets"

    # src/scenegraphviz/config.py -> repository root
    return Path(__file__).resolve().parents[2] / "assets"


ASSETS_PATH: str = str(find_assets_dir())
DEFAULT_RENDER_CONFIG_PATH: str = os.path.join(ASSETS_PATH, "visualizer_default.json")

VISIBLE_APP_NAME: str = "Scene Graph Viewer"
WORLD_FRAME: str = "world"
DEFAULT_LOOP_PERIOD: float = 0.1

if not os.path.isdir(ASSETS_PATH):
    logger.warning(f"Assets directory not found at {ASSETS_PATH}; set {ASSETS_ENV_VAR} to override.")
