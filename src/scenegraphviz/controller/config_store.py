"""
Configuration Store
===================
The configuration channel of the visualizer.

Why is this file needed?
------------------------
1. Ownership: It holds the latest VisualizerConfig and one LayerConfig per layer.
2. Signals: Whole-struct replacements are announced with Qt signals so the
   redraw controller can arm itself.
3. Snapshots: A redraw pass reads the configuration exactly once, through
   snapshot(), so a replacement arriving mid-pass only affects the next pass.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from scenegraphviz.model.io import load_render_config
from scenegraphviz.model.render_config import LayerConfig, RenderSnapshot, VisualizerConfig

logger = logging.getLogger(__name__)


class ConfigStore(QObject):
    visualizer_config_changed = Signal(object)
    layer_config_changed = Signal(int, object)
    changed = Signal()

    def __init__(
        self,
        visualizer_config: Optional[VisualizerConfig] = None,
        layer_configs: Optional[Mapping[int, LayerConfig]] = None,
    ) -> None:
        super().__init__()
        self._visualizer_config = visualizer_config or VisualizerConfig()
        self._layer_configs: Dict[int, LayerConfig] = dict(layer_configs or {})

    @staticmethod
    def from_file(filepath: str) -> ConfigStore:
        visualizer_config, layer_configs = load_render_config(filepath)
        return ConfigStore(visualizer_config, layer_configs)

    # --- Reads ---
    @property
    def visualizer_config(self) -> VisualizerConfig:
        return self._visualizer_config

    def layer_config(self, layer_id: int) -> Optional[LayerConfig]:
        return self._layer_configs.get(layer_id)

    def layer_ids(self) -> List[int]:
        return sorted(self._layer_configs)

    def snapshot(self) -> RenderSnapshot:
        return RenderSnapshot(visualizer=self._visualizer_config, layers=dict(self._layer_configs))

    # --- Writes (last writer wins) ---
    def set_visualizer_config(self, config: VisualizerConfig) -> None:
        self._visualizer_config = config
        logger.debug("Visualizer config replaced.")
        self.visualizer_config_changed.emit(config)
        self.changed.emit()

    def set_layer_config(self, layer_id: int, config: LayerConfig) -> None:
        self._layer_configs[layer_id] = config
        logger.debug(f"Layer {layer_id} config replaced.")
        self.layer_config_changed.emit(layer_id, config)
        self.changed.emit()

    def set_layer_visible(self, layer_id: int, visible: bool) -> None:
        """Convenience toggle used by the viewer; replaces the whole struct."""
        current = self._layer_configs.get(layer_id, LayerConfig())
        self.set_layer_config(layer_id, LayerConfig.from_dict({**current.to_dict(), "visualize": visible}))
