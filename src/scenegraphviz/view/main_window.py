"""
Viewer Window
=============
Hosts the 3D scene (PyVista QtInteractor) and a toolbar for the redraw loop.

Why is this file needed?
------------------------
1. Rendering: It owns the plotter the PyVistaTransport draws into.
2. Controls: Layer visibility toggles replace the layer configuration through
   the ConfigStore; "Clear" retracts every primitive.
3. Loading: "Open" reads an HDF5 scene graph snapshot and hands it to the
   redraw controller.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QToolBar, QVBoxLayout, QWidget
from pyvistaqt import QtInteractor

from scenegraphviz.config import VISIBLE_APP_NAME
from scenegraphviz.controller.config_store import ConfigStore
from scenegraphviz.controller.redraw import RedrawController
from scenegraphviz.model.graph import DsgLayers
from scenegraphviz.model.io import GraphIO
from scenegraphviz.view.transport import PyVistaTransport

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, config_store: ConfigStore, period: Optional[float] = None) -> None:
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1400, 900)

        self.config_store = config_store

        # --- 3D VIEW ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        layout = QVBoxLayout(main_widget)
        layout.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(main_widget)
        self.plotter.set_background("white")
        self.plotter.add_axes()
        layout.addWidget(self.plotter)

        # --- RENDER LOOP ---
        self.transport = PyVistaTransport(self.plotter)
        self.controller = RedrawController(self.transport, config_store)
        self.controller.redrawn.connect(self._on_redrawn)

        self._layer_actions: Dict[int, QAction] = {}
        self._build_toolbar()

        self.controller.start(period)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def load_graph(self, filepath: str) -> bool:
        try:
            graph = GraphIO.load_graph(filepath)
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load scene graph '{filepath}': {e}")
            QMessageBox.critical(self, "Error", f"Failed to load scene graph:\n{e}")
            return False

        if not self.controller.set_graph(graph):
            QMessageBox.warning(self, "Empty graph", "The scene graph has no nodes.")
            return False

        self.statusBar().showMessage(f"Loaded {graph.num_nodes()} nodes from {filepath}", 5000)
        self.plotter.reset_camera()
        return True

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Scene")
        toolbar.setMovable(False)
        self.addToolBar(Qt.TopToolBarArea, toolbar)

        act_open = QAction("Open…", self)
        act_open.triggered.connect(self._on_open)
        toolbar.addAction(act_open)

        act_clear = QAction("Clear", self)
        act_clear.triggered.connect(self.controller.clear)
        toolbar.addAction(act_clear)

        toolbar.addSeparator()

        for layer_id in self.config_store.layer_ids():
            config = self.config_store.layer_config(layer_id)
            try:
                name = DsgLayers(layer_id).name.capitalize()
            except ValueError:
                name = f"Layer {layer_id}"

            action = QAction(name, self)
            action.setCheckable(True)
            action.setChecked(config.visualize)
            action.toggled.connect(
                lambda checked, lid=layer_id: self.config_store.set_layer_visible(lid, checked)
            )
            toolbar.addAction(action)
            self._layer_actions[layer_id] = action

    def _on_open(self) -> None:
        filepath, _ = QFileDialog.getOpenFileName(
            self, "Open scene graph", "", "Scene graph (*.h5 *.hdf5);;All files (*)"
        )
        if filepath:
            self.load_graph(filepath)

    def _on_redrawn(self, num_primitives: int) -> None:
        self.statusBar().showMessage(f"Redrawn: {num_primitives} primitives updated", 2000)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.controller.stop()
        self.plotter.close()
        super().closeEvent(event)
