"""
Application Initialization
==========================
Builds the configuration store and the viewer window, then starts the Qt
event loop.

It acts as the dependency-injection root:
1. Sets up logging.
2. Loads the render configuration (default asset unless overridden).
3. Creates the MainWindow, which wires transport, controller and scheduler.
"""
import logging
import sys
from typing import List, Optional

import typer
from PySide6.QtWidgets import QApplication

from scenegraphviz.config import DEFAULT_LOOP_PERIOD, DEFAULT_RENDER_CONFIG_PATH, VISIBLE_APP_NAME
from scenegraphviz.controller.config_store import ConfigStore
from scenegraphviz.logging_config import setup_logging
from scenegraphviz.view.main_window import MainWindow

logger = logging.getLogger(__name__)

app = typer.Typer(help=f"{VISIBLE_APP_NAME}: layered 3D scene graph visualizer.", add_completion=False)


@app.command()
def view(
    graph: Optional[str] = typer.Argument(None, help="HDF5 scene graph snapshot to display."),
    config: str = typer.Option(DEFAULT_RENDER_CONFIG_PATH, "--config", "-c", help="Render configuration (JSON)."),
    period: float = typer.Option(DEFAULT_LOOP_PERIOD, "--period", "-p", help="Redraw period in seconds."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file."),
    trace: List[str] = typer.Option([], "--trace", help="Module logged at DEBUG, e.g. controller.redraw."),
) -> None:
    """Open the viewer, optionally with a scene graph loaded."""
    # 1. Setup Logging (Console + Optional File)
    setup_logging(
        level=logging.DEBUG if debug else logging.INFO,
        log_file=log_file,
        module_levels={name: logging.DEBUG for name in trace},
    )

    # 2. Create the Qt Application
    qt_app = QApplication(sys.argv[:1])
    qt_app.setApplicationName(VISIBLE_APP_NAME)

    # 3. Render configuration
    try:
        config_store = ConfigStore.from_file(config)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read render config '{config}': {e}. Using defaults.")
        config_store = ConfigStore()

    # 4. Main Window (starts the redraw loop)
    window = MainWindow(config_store, period=period)
    window.show()

    if graph:
        window.load_graph(graph)

    # 5. Start Event Loop
    raise typer.Exit(code=qt_app.exec())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
