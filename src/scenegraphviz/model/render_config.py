"""
Render Configuration
====================
Per-layer and global render settings.

Both structs are frozen: the configuration channel replaces them whole, and
every redraw pass works on one RenderSnapshot captured by value at tick start.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from scenegraphviz.model.colormap import HlsColorMapConfig
from scenegraphviz.model.errors import MissingLayerConfig


@dataclass(frozen=True)
class LayerConfig:
    visualize: bool = True
    z_offset_scale: float = 0.0

    # Centroids
    marker_scale: float = 0.1
    marker_alpha: float = 1.0
    use_sphere_marker: bool = True

    # Labels
    use_label: bool = False
    label_height: float = 1.0
    label_scale: float = 0.5

    # Bounding boxes
    use_bounding_box: bool = False
    bounding_box_alpha: float = 0.5

    # Edges inside the layer
    intralayer_edge_scale: float = 0.03
    intralayer_edge_alpha: float = 1.0
    intralayer_edge_insertion_skip: int = 0

    # Edges towards other layers / mesh samples
    interlayer_edge_scale: float = 0.03
    interlayer_edge_alpha: float = 0.4
    interlayer_edge_use_color: bool = True
    use_edge_source: bool = True
    interlayer_edge_insertion_skip: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> LayerConfig:
        return LayerConfig(**_known_fields(LayerConfig, data))


@dataclass(frozen=True)
class VisualizerConfig:
    layer_z_step: float = 5.0
    collapse_layers: bool = False
    mesh_edge_break_ratio: float = 0.5
    mesh_layer_offset: float = 0.0

    color_places_by_distance: bool = False
    places_min_distance: float = 0.5
    places_max_distance: float = 2.5
    places_min_hue: float = 0.0
    places_max_hue: float = 0.67
    places_min_saturation: float = 1.0
    places_max_saturation: float = 1.0
    places_min_luminance: float = 0.5
    places_max_luminance: float = 0.5

    @property
    def places_colormap(self) -> HlsColorMapConfig:
        return HlsColorMapConfig(
            min_hue=self.places_min_hue,
            max_hue=self.places_max_hue,
            min_saturation=self.places_min_saturation,
            max_saturation=self.places_max_saturation,
            min_luminance=self.places_min_luminance,
            max_luminance=self.places_max_luminance,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> VisualizerConfig:
        return VisualizerConfig(**_known_fields(VisualizerConfig, data))


def _known_fields(cls: type, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


def get_z_offset(config: LayerConfig, visualizer_config: VisualizerConfig) -> float:
    """Vertical separation of a layer; zero when layers are collapsed."""
    if visualizer_config.collapse_layers:
        return 0.0
    return config.z_offset_scale * visualizer_config.layer_z_step


@dataclass(frozen=True)
class RenderSnapshot:
    """Consistent view of the whole configuration for one redraw pass."""
    visualizer: VisualizerConfig = field(default_factory=VisualizerConfig)
    layers: Mapping[int, LayerConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "layers", MappingProxyType(dict(self.layers)))

    def layer(self, layer_id: int) -> Optional[LayerConfig]:
        return self.layers.get(layer_id)

    def require(self, layer_id: int) -> LayerConfig:
        """
        Raises:
            MissingLayerConfig: if the layer has no configuration.
        """
        config = self.layers.get(layer_id)
        if config is None:
            raise MissingLayerConfig(layer_id)
        return config
