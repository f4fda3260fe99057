import logging

import numpy as np
import pytest

from scenegraphviz.controller.builders import (
    CENTROIDS_NS, GRAPH_EDGES_NS, GraphEdgeReport, get_distance_color, make_bounding_box_primitive,
    make_centroid_primitive, make_graph_edge_primitives, make_layer_edge_primitive,
    make_mesh_edges_primitive, make_text_primitive,
)
from scenegraphviz.model.colormap import BLACK, SENTINEL_COLOR, Color
from scenegraphviz.model.errors import AttributeKindMismatch, InvalidBoundingBoxType
from scenegraphviz.model.graph import (
    BoundingBox, BoundingBoxType, DsgLayers, NodeAttributes, ObjectNodeAttributes,
    PlaceNodeAttributes, SceneGraph, SemanticNodeAttributes,
)
from scenegraphviz.model.primitives import Action, PrimitiveType
from scenegraphviz.model.render_config import LayerConfig, VisualizerConfig
from tests.conftest import GREEN, RED, sym


def _two_red_nodes() -> SceneGraph:
    graph = SceneGraph()
    graph.add_node(DsgLayers.OBJECTS, sym("O", 0), SemanticNodeAttributes([0, 0, 0], color=RED))
    graph.add_node(DsgLayers.OBJECTS, sym("O", 1), SemanticNodeAttributes([1, 0, 0], color=RED))
    return graph


def _hierarchy(num_children: int) -> SceneGraph:
    """One room connected to `num_children` places."""
    graph = SceneGraph()
    graph.add_node(DsgLayers.ROOMS, sym("R", 0), SemanticNodeAttributes([0, 0, 0], color=GREEN))
    for index in range(num_children):
        graph.add_node(
            DsgLayers.PLACES, sym("p", index), PlaceNodeAttributes([float(index), 0, 0], color=RED)
        )
        graph.insert_edge(sym("R", 0), sym("p", index))
    return graph


class TestCentroids:
    def test_cube_batch_with_semantic_colors(self):
        """Two red nodes, cube glyphs: one batch, two points, two red colors."""
        layer = _two_red_nodes().layers[DsgLayers.OBJECTS]
        config = LayerConfig(use_sphere_marker=False, marker_scale=0.2)

        primitive = make_centroid_primitive(config, layer, VisualizerConfig())

        assert primitive.action == Action.ADD
        assert primitive.type == PrimitiveType.CUBE_LIST
        assert primitive.key == (CENTROIDS_NS, DsgLayers.OBJECTS)
        np.testing.assert_allclose(primitive.points, [[0, 0, 0], [1, 0, 0]])
        np.testing.assert_allclose(primitive.colors, [RED.to_rgba(), RED.to_rgba()])
        np.testing.assert_allclose(primitive.scale, [0.2, 0.2, 0.2])

    def test_points_are_lifted_by_z_offset(self, scene_graph):
        layer = scene_graph.layers[DsgLayers.PLACES]
        primitive = make_centroid_primitive(
            LayerConfig(z_offset_scale=2.0), layer, VisualizerConfig(layer_z_step=3.0)
        )
        assert primitive.type == PrimitiveType.SPHERE_LIST
        np.testing.assert_allclose(primitive.points[:, 2], [6.0, 6.0, 6.0])

    def test_fixed_layer_color_wins(self, scene_graph):
        layer = scene_graph.layers[DsgLayers.OBJECTS]
        primitive = make_centroid_primitive(
            LayerConfig(marker_alpha=0.5), layer, VisualizerConfig(), layer_color=BLACK
        )
        np.testing.assert_allclose(primitive.colors, [BLACK.to_rgba(0.5)] * 2)

    def test_places_colored_by_distance(self, scene_graph):
        layer = scene_graph.layers[DsgLayers.PLACES]
        visualizer_config = VisualizerConfig(
            color_places_by_distance=True, places_min_distance=0.5, places_max_distance=2.5,
            places_min_hue=0.0, places_max_hue=2.0 / 3.0,
        )
        primitive = make_centroid_primitive(LayerConfig(), layer, visualizer_config)

        # clearance 0.5 -> red, 2.5 -> blue
        np.testing.assert_allclose(primitive.colors[0], [1.0, 0.0, 0.0, 1.0], atol=1e-9)
        np.testing.assert_allclose(primitive.colors[2], [0.0, 0.0, 1.0, 1.0], atol=1e-9)

    def test_sentinel_color_for_rest_of_batch(self, caplog):
        """Once a node has no color, it and every later node get the sentinel."""
        graph = SceneGraph()
        graph.add_node(DsgLayers.OBJECTS, sym("O", 0), SemanticNodeAttributes([0, 0, 0], color=GREEN))
        graph.add_node(DsgLayers.OBJECTS, sym("O", 1), NodeAttributes([1, 0, 0]))
        graph.add_node(DsgLayers.OBJECTS, sym("O", 2), SemanticNodeAttributes([2, 0, 0], color=GREEN))

        with caplog.at_level(logging.WARNING):
            primitive = make_centroid_primitive(
                LayerConfig(), graph.layers[DsgLayers.OBJECTS], VisualizerConfig()
            )

        assert len(primitive.points) == 3
        np.testing.assert_allclose(
            primitive.colors,
            [GREEN.to_rgba(), SENTINEL_COLOR.to_rgba(), SENTINEL_COLOR.to_rgba()],
        )
        assert "no usable color" in caplog.text

    def test_distance_color_with_empty_domain_is_black(self):
        config = VisualizerConfig(places_min_distance=2.0, places_max_distance=2.0)
        assert get_distance_color(config, 1.0) == BLACK


class TestLabels:
    def test_text_primitive(self, scene_graph):
        node = scene_graph.get_node(sym("R", 1))
        config = LayerConfig(z_offset_scale=1.0, label_height=0.5, label_scale=0.3)

        primitive = make_text_primitive(config, node, VisualizerConfig(layer_z_step=2.0))

        assert primitive.type == PrimitiveType.TEXT_VIEW_FACING
        assert primitive.key == (f"layer_{DsgLayers.ROOMS}_text", sym("R", 1))
        assert primitive.text == "R(1)"
        assert primitive.scale[2] == pytest.approx(0.3)
        assert primitive.pose.position[2] == pytest.approx(2.5)
        assert primitive.color == BLACK.to_rgba()


class TestBoundingBoxes:
    def test_axis_aligned(self, scene_graph):
        node = scene_graph.get_node(sym("O", 1))
        primitive = make_bounding_box_primitive(
            LayerConfig(bounding_box_alpha=0.25), node, VisualizerConfig()
        )

        assert primitive.type == PrimitiveType.CUBE
        np.testing.assert_allclose(primitive.scale, [1.0, 1.0, 1.0])
        np.testing.assert_allclose(primitive.pose.position, [1.0, 0.0, 0.5])
        np.testing.assert_allclose(primitive.pose.orientation, [0, 0, 0, 1])
        assert primitive.color == RED.to_rgba(0.25)

    def test_oriented_box_carries_rotation(self):
        rotation = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        graph = SceneGraph()
        graph.add_node(
            DsgLayers.OBJECTS, sym("O", 0),
            ObjectNodeAttributes(
                [0, 0, 0], color=RED,
                bounding_box=BoundingBox(BoundingBoxType.OBB, min=[0, 0, 0], max=[2, 1, 1], rotation=rotation),
            ),
        )
        primitive = make_bounding_box_primitive(
            LayerConfig(), graph.get_node(sym("O", 0)), VisualizerConfig()
        )

        half = np.sqrt(0.5)
        np.testing.assert_allclose(np.abs(primitive.pose.orientation), [0, 0, half, half], atol=1e-9)

    def test_invalid_box_type_raises(self):
        graph = SceneGraph()
        graph.add_node(DsgLayers.OBJECTS, sym("O", 0), ObjectNodeAttributes([0, 0, 0]))
        with pytest.raises(InvalidBoundingBoxType):
            make_bounding_box_primitive(LayerConfig(), graph.get_node(sym("O", 0)), VisualizerConfig())

    def test_degenerate_rotation_raises(self):
        graph = SceneGraph()
        graph.add_node(
            DsgLayers.OBJECTS, sym("O", 0),
            ObjectNodeAttributes(
                [0, 0, 0], color=RED,
                bounding_box=BoundingBox(BoundingBoxType.OBB, max=[1, 1, 1], rotation=np.zeros((3, 3))),
            ),
        )
        with pytest.raises(InvalidBoundingBoxType, match="no valid rotation"):
            make_bounding_box_primitive(LayerConfig(), graph.get_node(sym("O", 0)), VisualizerConfig())

    def test_non_object_node_raises(self, scene_graph):
        with pytest.raises(AttributeKindMismatch):
            make_bounding_box_primitive(
                LayerConfig(), scene_graph.get_node(sym("R", 1)), VisualizerConfig()
            )


class TestLayerEdges:
    def test_all_edges(self, scene_graph):
        layer = scene_graph.layers[DsgLayers.PLACES]
        primitive = make_layer_edge_primitive(
            LayerConfig(z_offset_scale=1.0, intralayer_edge_alpha=0.5), layer, VisualizerConfig(layer_z_step=1.0)
        )

        assert primitive.type == PrimitiveType.LINE_LIST
        assert primitive.key == (f"layer_{DsgLayers.PLACES}_edges", 0)
        assert len(primitive.points) == 4
        np.testing.assert_allclose(primitive.points[:, 2], 1.0)
        assert primitive.color == BLACK.to_rgba(0.5)

    def test_insertion_skip_stride(self):
        graph = SceneGraph()
        for index in range(6):
            graph.add_node(DsgLayers.PLACES, sym("p", index), NodeAttributes([float(index), 0, 0]))
        for index in range(5):
            graph.insert_edge(sym("p", index), sym("p", index + 1))

        primitive = make_layer_edge_primitive(
            LayerConfig(intralayer_edge_insertion_skip=1), graph.layers[DsgLayers.PLACES], VisualizerConfig()
        )

        # edges 0, 2 and 4
        np.testing.assert_allclose(primitive.points[::2, 0], [0.0, 2.0, 4.0])

    def test_hidden_layer_is_deleted(self, scene_graph):
        primitive = make_layer_edge_primitive(
            LayerConfig(visualize=False), scene_graph.layers[DsgLayers.PLACES], VisualizerConfig()
        )
        assert primitive.action == Action.DELETE
        assert len(primitive.points) == 0


class TestGraphEdges:
    def test_grouped_by_source_layer(self, scene_graph, layer_configs):
        primitives = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())

        assert [p.key for p in primitives] == [
            (GRAPH_EDGES_NS, DsgLayers.PLACES),
            (GRAPH_EDGES_NS, DsgLayers.ROOMS),
        ]
        places, rooms = primitives
        assert len(places.points) == 2
        assert len(rooms.points) == 4
        assert all(p.action == Action.ADD for p in primitives)

    def test_vertex_colors_follow_source(self, scene_graph, layer_configs):
        rooms = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())[1]
        alpha = layer_configs[DsgLayers.ROOMS].interlayer_edge_alpha
        np.testing.assert_allclose(rooms.colors, [GREEN.to_rgba(alpha)] * 4)

    def test_vertex_colors_follow_target(self, scene_graph, layer_configs):
        layer_configs[DsgLayers.ROOMS] = LayerConfig(use_edge_source=False)
        rooms = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())[1]
        np.testing.assert_allclose(rooms.colors[:, :3], [[0.0, 0.0, 1.0]] * 4)

    def test_uncolored_edges_are_black(self, scene_graph, layer_configs):
        layer_configs[DsgLayers.ROOMS] = LayerConfig(interlayer_edge_use_color=False)
        rooms = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())[1]
        np.testing.assert_allclose(rooms.colors[:, :3], 0.0)

    def test_endpoints_use_their_own_z_offset(self, scene_graph, layer_configs):
        rooms = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig(layer_z_step=5.0))[1]
        np.testing.assert_allclose(rooms.points[:, 2], [10.0, 5.0, 10.0, 5.0])

    def test_hidden_target_layer_excludes_edge(self, scene_graph, layer_configs):
        """The only PLACES -> OBJECTS edge disappears, so that batch is retracted."""
        layer_configs[DsgLayers.OBJECTS] = LayerConfig(visualize=False)
        places, rooms = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())

        assert places.action == Action.DELETE
        assert len(places.points) == 0
        assert rooms.action == Action.ADD

    def test_hidden_source_layer_is_deleted(self, scene_graph, layer_configs):
        layer_configs[DsgLayers.ROOMS] = LayerConfig(visualize=False)
        primitives = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())
        assert primitives[1].key == (GRAPH_EDGES_NS, DsgLayers.ROOMS)
        assert primitives[1].action == Action.DELETE

    @pytest.mark.parametrize("skip, expected", [(0, [0, 1, 2, 3, 4, 5]), (1, [1, 3, 5]), (2, [2, 5])])
    def test_insertion_skip_every_nth(self, skip, expected):
        graph = _hierarchy(6)
        configs = {
            int(DsgLayers.PLACES): LayerConfig(),
            int(DsgLayers.ROOMS): LayerConfig(interlayer_edge_insertion_skip=skip),
        }
        (rooms,) = make_graph_edge_primitives(graph, configs, VisualizerConfig(layer_z_step=0.0))

        # every second point is the child end of an edge
        np.testing.assert_allclose(rooms.points[1::2, 0], expected)

    def test_skip_counter_is_per_source_layer(self):
        """ROOMS and BUILDINGS edges alternate; each layer still keeps every second edge."""
        graph = SceneGraph()
        graph.add_node(DsgLayers.BUILDINGS, sym("B", 0), SemanticNodeAttributes([0, 0, 0]))
        for index in range(4):
            graph.add_node(DsgLayers.ROOMS, sym("R", index), SemanticNodeAttributes([10.0 + index, 0, 0]))
            graph.add_node(DsgLayers.PLACES, sym("p", index), PlaceNodeAttributes([float(index), 0, 0]))
        for index in range(4):
            graph.insert_edge(sym("R", 0), sym("p", index))
            graph.insert_edge(sym("B", 0), sym("R", index))
        configs = {
            int(DsgLayers.PLACES): LayerConfig(),
            int(DsgLayers.ROOMS): LayerConfig(interlayer_edge_insertion_skip=1),
            int(DsgLayers.BUILDINGS): LayerConfig(interlayer_edge_insertion_skip=1),
        }

        rooms, buildings = make_graph_edge_primitives(graph, configs, VisualizerConfig(layer_z_step=0.0))

        np.testing.assert_allclose(rooms.points[1::2, 0], [1.0, 3.0])
        np.testing.assert_allclose(buildings.points[1::2, 0], [11.0, 13.0])

    def test_child_to_parent_edges_are_normalized(self, scene_graph, layer_configs):
        scene_graph.insert_edge(sym("O", 2), sym("p", 3))
        report = GraphEdgeReport()

        places = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig(), report)[0]

        assert report.normalized == 1
        assert len(places.points) == 4
        # parent end first
        np.testing.assert_allclose(places.points[2], scene_graph.get_node(sym("p", 3)).position + [0, 0, 5.0])

    def test_missing_layer_config_skips_edges(self, scene_graph, layer_configs, caplog):
        del layer_configs[DsgLayers.OBJECTS]
        report = GraphEdgeReport()

        with caplog.at_level(logging.WARNING):
            primitives = make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig(), report)

        assert report.missing_layers == {int(DsgLayers.OBJECTS)}
        assert [p.id for p in primitives] == [DsgLayers.ROOMS]
        assert "Failed to find config for layer 2" in caplog.text

    def test_inputs_not_mutated(self, scene_graph, layer_configs):
        before = [(e.source, e.target) for e in scene_graph.inter_layer_edges]
        make_graph_edge_primitives(scene_graph, layer_configs, VisualizerConfig())
        assert [(e.source, e.target) for e in scene_graph.inter_layer_edges] == before


class TestMeshEdges:
    def test_fan_to_surface_samples(self, scene_graph):
        config = LayerConfig(z_offset_scale=1.0)
        visualizer_config = VisualizerConfig(layer_z_step=4.0, mesh_edge_break_ratio=0.5, mesh_layer_offset=-1.0)

        primitive = make_mesh_edges_primitive(
            config, visualizer_config, scene_graph, scene_graph.layers[DsgLayers.OBJECTS]
        )

        # centroid -> break point, then break point -> each of 3 samples
        assert len(primitive.points) == 2 + 2 * 3
        np.testing.assert_allclose(primitive.points[0], [1.0, 0.0, 4.0])
        np.testing.assert_allclose(primitive.points[1], [1.0, 0.0, 2.0])
        np.testing.assert_allclose(primitive.points[3::2, 2], -1.0)
        assert len(primitive.colors) == len(primitive.points)

    def test_sample_stride(self, scene_graph):
        primitive = make_mesh_edges_primitive(
            LayerConfig(interlayer_edge_insertion_skip=1), VisualizerConfig(),
            scene_graph, scene_graph.layers[DsgLayers.OBJECTS],
        )
        assert len(primitive.points) == 2 + 2 * 2

    def test_color_is_semantic(self, scene_graph):
        primitive = make_mesh_edges_primitive(
            LayerConfig(interlayer_edge_alpha=0.3), VisualizerConfig(),
            scene_graph, scene_graph.layers[DsgLayers.OBJECTS],
        )
        np.testing.assert_allclose(primitive.colors, [Color(1.0, 0.0, 0.0).to_rgba(0.3)] * 8)
