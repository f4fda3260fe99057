import numpy as np
import pytest
from PySide6.QtCore import QCoreApplication

from scenegraphviz.controller.config_store import ConfigStore
from scenegraphviz.model.colormap import Color
from scenegraphviz.model.graph import (
    BoundingBox, BoundingBoxType, DsgLayers, NodeSymbol, ObjectNodeAttributes,
    PlaceNodeAttributes, SceneGraph, SemanticNodeAttributes,
)
from scenegraphviz.model.render_config import LayerConfig, RenderSnapshot, VisualizerConfig
from scenegraphviz.view.transport import RecordingTransport


def sym(key: str, index: int) -> int:
    return NodeSymbol(key, index).value


RED = Color(1.0, 0.0, 0.0)
GREEN = Color(0.0, 1.0, 0.0)
BLUE = Color(0.0, 0.0, 1.0)


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def scene_graph() -> SceneGraph:
    """
    Objects: O(1) axis-aligned box, O(2) oriented box.
    Places:  p(1) - p(2) - p(3) with clearance 0.5 / 1.5 / 2.5.
    Rooms:   R(1).
    """
    graph = SceneGraph()
    graph.add_node(
        DsgLayers.OBJECTS, sym("O", 1),
        ObjectNodeAttributes(
            [1.0, 0.0, 0.0], color=RED, name="chair",
            bounding_box=BoundingBox(
                BoundingBoxType.AABB, min=[0.5, -0.5, 0.0], max=[1.5, 0.5, 1.0], center=[1.0, 0.0, 0.5]
            ),
        ),
    )
    graph.add_node(
        DsgLayers.OBJECTS, sym("O", 2),
        ObjectNodeAttributes(
            [3.0, 0.0, 0.0], color=GREEN, name="table",
            bounding_box=BoundingBox(
                BoundingBoxType.OBB, min=[2.0, -1.0, 0.0], max=[4.0, 1.0, 1.0], center=[3.0, 0.0, 0.5]
            ),
        ),
    )
    for index, distance in enumerate([0.5, 1.5, 2.5], start=1):
        graph.add_node(
            DsgLayers.PLACES, sym("p", index),
            PlaceNodeAttributes([float(index), 1.0, 0.0], color=BLUE, distance=distance),
        )
    graph.add_node(DsgLayers.ROOMS, sym("R", 1), SemanticNodeAttributes([2.0, 1.0, 0.0], color=GREEN))

    graph.insert_edge(sym("p", 1), sym("p", 2))
    graph.insert_edge(sym("p", 2), sym("p", 3))
    graph.insert_edge(sym("R", 1), sym("p", 1))
    graph.insert_edge(sym("R", 1), sym("p", 2))
    graph.insert_edge(sym("p", 1), sym("O", 1))

    graph.set_mesh_points(sym("O", 1), np.array([[0.5, 0.0, 0.0], [1.5, 0.0, 0.0], [1.0, 0.5, 0.0]]))
    return graph


@pytest.fixture
def layer_configs():
    return {
        int(DsgLayers.OBJECTS): LayerConfig(z_offset_scale=0.0),
        int(DsgLayers.PLACES): LayerConfig(z_offset_scale=1.0),
        int(DsgLayers.ROOMS): LayerConfig(z_offset_scale=2.0),
    }


@pytest.fixture
def visualizer_config() -> VisualizerConfig:
    return VisualizerConfig(layer_z_step=5.0)


@pytest.fixture
def snapshot(visualizer_config, layer_configs) -> RenderSnapshot:
    return RenderSnapshot(visualizer=visualizer_config, layers=layer_configs)


@pytest.fixture
def config_store(qapp, visualizer_config, layer_configs) -> ConfigStore:
    return ConfigStore(visualizer_config, layer_configs)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
