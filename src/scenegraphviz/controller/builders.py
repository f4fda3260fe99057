"""
Primitive Builders
==================
Translate one layer (or the whole graph) plus its render configuration into
primitive descriptions.

Every builder is a pure function of (graph view, LayerConfig, VisualizerConfig):
inputs are never mutated. When a layer is not visualized the builder returns a
DELETE primitive for the artifact key instead of geometry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set, Tuple, TYPE_CHECKING

import numpy as np
from scipy.spatial.transform import Rotation

from scenegraphviz.model.colormap import (
    BLACK, SENTINEL_COLOR, Color, get_ratio, interpolate_color_map
)
from scenegraphviz.model.errors import InvalidBoundingBoxType
from scenegraphviz.model.graph import (
    BoundingBoxType, DsgLayers, NodeSymbol, ObjectNodeAttributes, PlaceNodeAttributes,
    SceneGraph, SceneGraphLayer, SceneGraphNode, SemanticNodeAttributes, attributes_as,
)
from scenegraphviz.model.primitives import Action, Pose, Primitive, PrimitiveType
from scenegraphviz.model.render_config import LayerConfig, VisualizerConfig, get_z_offset

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

CENTROIDS_NS = "layer_centroids"
GRAPH_EDGES_NS = "graph_edges"
MESH_EDGES_NS = "mesh_layer_edges"


def text_namespace(layer_id: int) -> str:
    return f"layer_{layer_id}_text"


def bounding_box_namespace(layer_id: int) -> str:
    return f"layer_{layer_id}_bounding_boxes"


def layer_edges_namespace(layer_id: int) -> str:
    return f"layer_{layer_id}_edges"


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def make_delete_primitive(
    primitive_id: int,
    ns: str,
    primitive_type: PrimitiveType = PrimitiveType.CUBE,
) -> Primitive:
    return Primitive(id=primitive_id, ns=ns, type=primitive_type, action=Action.DELETE)


def make_delete_all_primitive() -> Primitive:
    return Primitive(id=0, ns="", action=Action.DELETE_ALL)


def get_distance_color(config: VisualizerConfig, distance: float) -> Color:
    """Clearance-distance ramp; black when the configured domain is empty."""
    if config.places_max_distance <= config.places_min_distance:
        return BLACK

    ratio = get_ratio(config.places_min_distance, config.places_max_distance, distance)
    return interpolate_color_map(config.places_colormap, ratio)


def _lifted(position: npt.NDArray[np.float64], dz: float) -> npt.NDArray[np.float64]:
    point = np.array(position, dtype=np.float64)
    point[2] += dz
    return point


def _semantic_color(node: SceneGraphNode) -> Color:
    """Node color, or the sentinel when the node carries no semantic color."""
    match node.attributes:
        case SemanticNodeAttributes(color=color):
            return color
        case _:
            return SENTINEL_COLOR


# ------------------------------------------------------------------------------
# Centroids
# ------------------------------------------------------------------------------
def make_centroid_primitive(
    config: LayerConfig,
    layer: SceneGraphLayer,
    visualizer_config: VisualizerConfig,
    layer_color: Optional[Color] = None,
    ns: str = CENTROIDS_NS,
) -> Primitive:
    """
    One point per node of the layer.

    Color resolution: fixed layer color, then the clearance ramp (places layer
    when enabled), then the node's semantic color. Once a node cannot provide a
    color the rest of the batch is drawn with the sentinel color.
    """
    z_offset = get_z_offset(config, visualizer_config)
    color_by_distance = (
        visualizer_config.color_places_by_distance and layer.id == DsgLayers.PLACES
    )

    points: List[npt.NDArray[np.float64]] = []
    colors: List[Tuple[float, float, float, float]] = []
    node_colors_valid = True

    for node in layer.iter_nodes():
        points.append(_lifted(node.position, z_offset))

        if layer_color is not None:
            desired_color = layer_color
        elif not node_colors_valid:
            desired_color = SENTINEL_COLOR
        else:
            match node.attributes:
                case PlaceNodeAttributes(distance=distance) if color_by_distance:
                    desired_color = get_distance_color(visualizer_config, distance)
                case SemanticNodeAttributes(color=color) if not color_by_distance:
                    desired_color = color
                case _:
                    logger.warning(
                        f"Node {NodeSymbol.from_id(node.id).label} in layer {layer.id} "
                        f"has no usable color ({type(node.attributes).__name__})."
                    )
                    node_colors_valid = False
                    desired_color = SENTINEL_COLOR

        colors.append(desired_color.to_rgba(config.marker_alpha))

    scale = config.marker_scale
    return Primitive(
        id=layer.id,
        ns=ns,
        type=PrimitiveType.SPHERE_LIST if config.use_sphere_marker else PrimitiveType.CUBE_LIST,
        action=Action.ADD,
        scale=(scale, scale, scale),
        points=np.array(points).reshape(-1, 3),
        colors=np.array(colors).reshape(-1, 4),
    )


# ------------------------------------------------------------------------------
# Labels
# ------------------------------------------------------------------------------
def make_text_primitive(
    config: LayerConfig,
    node: SceneGraphNode,
    visualizer_config: VisualizerConfig,
    ns: Optional[str] = None,
) -> Primitive:
    z = get_z_offset(config, visualizer_config) + config.label_height
    return Primitive(
        id=node.id,
        ns=ns or text_namespace(node.layer),
        type=PrimitiveType.TEXT_VIEW_FACING,
        action=Action.ADD,
        pose=Pose(position=_lifted(node.position, z)),
        scale=(0.0, 0.0, config.label_scale),
        color=BLACK.to_rgba(),
        text=NodeSymbol.from_id(node.id).label,
    )


# ------------------------------------------------------------------------------
# Bounding boxes
# ------------------------------------------------------------------------------
def make_bounding_box_primitive(
    config: LayerConfig,
    node: SceneGraphNode,
    visualizer_config: VisualizerConfig,
    ns: Optional[str] = None,
) -> Primitive:
    """
    Box primitive for an object node.

    Raises:
        AttributeKindMismatch: node attributes are not ObjectNodeAttributes.
        InvalidBoundingBoxType: box is neither oriented nor axis-aligned, or its
            rotation is not a proper rotation matrix.
    """
    attrs = attributes_as(node, ObjectNodeAttributes)
    bounding_box = attrs.bounding_box
    z_offset = get_z_offset(config, visualizer_config)

    match bounding_box.type:
        case BoundingBoxType.OBB:
            try:
                orientation = Rotation.from_matrix(bounding_box.rotation).as_quat()
            except ValueError as e:
                raise InvalidBoundingBoxType(
                    f"Oriented box of node {NodeSymbol.from_id(node.id).label} has no valid rotation: {e}"
                ) from e
        case BoundingBoxType.AABB:
            orientation = np.array([0.0, 0.0, 0.0, 1.0])
        case _:
            raise InvalidBoundingBoxType(
                f"Invalid bounding box type '{bounding_box.type}' for node "
                f"{NodeSymbol.from_id(node.id).label}."
            )

    return Primitive(
        id=node.id,
        ns=ns or bounding_box_namespace(node.layer),
        type=PrimitiveType.CUBE,
        action=Action.ADD,
        pose=Pose(position=_lifted(bounding_box.center, z_offset), orientation=orientation),
        scale=bounding_box.extents,
        color=attrs.color.to_rgba(config.bounding_box_alpha),
    )


# ------------------------------------------------------------------------------
# Intra-layer edges
# ------------------------------------------------------------------------------
def make_layer_edge_primitive(
    config: LayerConfig,
    layer: SceneGraphLayer,
    visualizer_config: VisualizerConfig,
    color: Color = BLACK,
) -> Primitive:
    """Line list over the layer's edges, keeping one edge every (skip + 1)."""
    ns = layer_edges_namespace(layer.id)
    if not config.visualize:
        return make_delete_primitive(0, ns, PrimitiveType.LINE_LIST)

    z_offset = get_z_offset(config, visualizer_config)
    stride = max(int(config.intralayer_edge_insertion_skip), 0) + 1

    points: List[npt.NDArray[np.float64]] = []
    for edge in layer.edges[::stride]:
        if not (layer.has_node(edge.source) and layer.has_node(edge.target)):
            logger.debug(f"Skipping dangling edge {edge.source} -> {edge.target} in layer {layer.id}.")
            continue
        points.append(_lifted(layer.get_position(edge.source), z_offset))
        points.append(_lifted(layer.get_position(edge.target), z_offset))

    return Primitive(
        id=0,
        ns=ns,
        type=PrimitiveType.LINE_LIST,
        action=Action.ADD,
        scale=(config.intralayer_edge_scale, 0.0, 0.0),
        color=color.to_rgba(config.intralayer_edge_alpha),
        points=np.array(points).reshape(-1, 3),
    )


# ------------------------------------------------------------------------------
# Inter-layer edges
# ------------------------------------------------------------------------------
@dataclass
class _EdgeBatch:
    primitive: Primitive
    points: List[npt.NDArray[np.float64]] = field(default_factory=list)
    colors: List[Tuple[float, float, float, float]] = field(default_factory=list)
    num_since_last_insertion: int = 0


@dataclass
class GraphEdgeReport:
    """Bookkeeping of one inter-layer pass, mostly for logging and tests."""
    normalized: int = 0
    dropped: int = 0
    missing_layers: Set[int] = field(default_factory=set)


def _new_edge_batch(config: LayerConfig, layer_id: int) -> _EdgeBatch:
    primitive = Primitive(
        id=layer_id,
        ns=GRAPH_EDGES_NS,
        type=PrimitiveType.LINE_LIST,
        action=Action.ADD if config.visualize else Action.DELETE,
        scale=(config.interlayer_edge_scale, 0.0, 0.0),
    )
    return _EdgeBatch(primitive=primitive)


def _oriented_endpoints(
    source: SceneGraphNode,
    target: SceneGraphNode,
    report: GraphEdgeReport,
) -> Optional[Tuple[SceneGraphNode, SceneGraphNode]]:
    """The parent (higher layer) node always comes first."""
    if source.layer > target.layer:
        return source, target
    if source.layer < target.layer:
        report.normalized += 1
        return target, source
    report.dropped += 1
    return None


def make_graph_edge_primitives(
    graph: SceneGraph,
    configs: Mapping[int, LayerConfig],
    visualizer_config: VisualizerConfig,
    report: Optional[GraphEdgeReport] = None,
) -> List[Primitive]:
    """
    One line list per source (parent) layer.

    An edge is drawn only when both endpoint layers are visualized. Each source
    layer keeps its own insertion counter: an edge is inserted once
    `interlayer_edge_insertion_skip` eligible edges have been skipped.
    """
    report = report if report is not None else GraphEdgeReport()
    batches: Dict[int, _EdgeBatch] = {}

    for edge in graph.inter_layer_edges:
        source = graph.get_node(edge.source)
        target = graph.get_node(edge.target)
        if source is None or target is None:
            logger.debug(f"Skipping inter-layer edge {edge.source} -> {edge.target}: missing node.")
            report.dropped += 1
            continue

        endpoints = _oriented_endpoints(source, target, report)
        if endpoints is None:
            logger.warning(
                f"Inter-layer edge {NodeSymbol.from_id(edge.source).label} -> "
                f"{NodeSymbol.from_id(edge.target).label} joins nodes of one layer, dropped."
            )
            continue
        source, target = endpoints

        source_config = configs.get(source.layer)
        target_config = configs.get(target.layer)
        if source_config is None or target_config is None:
            missing = source.layer if source_config is None else target.layer
            if missing not in report.missing_layers:
                logger.warning(f"Failed to find config for layer {missing}.")
                report.missing_layers.add(missing)
            continue

        if source.layer not in batches:
            batches[source.layer] = _new_edge_batch(source_config, source.layer)
        batch = batches[source.layer]

        if not source_config.visualize or not target_config.visualize:
            continue

        if batch.num_since_last_insertion >= source_config.interlayer_edge_insertion_skip:
            batch.num_since_last_insertion = 0
        else:
            batch.num_since_last_insertion += 1
            continue

        batch.points.append(_lifted(source.position, get_z_offset(source_config, visualizer_config)))
        batch.points.append(_lifted(target.position, get_z_offset(target_config, visualizer_config)))

        if source_config.interlayer_edge_use_color:
            colored = source if source_config.use_edge_source else target
            edge_color = _semantic_color(colored)
        else:
            edge_color = BLACK

        rgba = edge_color.to_rgba(source_config.interlayer_edge_alpha)
        batch.colors.extend((rgba, rgba))

    if report.normalized:
        logger.warning(f"Normalized {report.normalized} inter-layer edges stored child -> parent.")

    primitives = []
    for layer_id in sorted(batches):
        batch = batches[layer_id]
        primitive = batch.primitive
        if primitive.action == Action.ADD and batch.points:
            primitive.points = np.array(batch.points)
            primitive.colors = np.array(batch.colors)
        else:
            # Nothing drawable for this parent layer: retract what was there
            primitive.action = Action.DELETE
        primitives.append(primitive)
    return primitives


# ------------------------------------------------------------------------------
# Node to surface-sample edges
# ------------------------------------------------------------------------------
def make_mesh_edges_primitive(
    config: LayerConfig,
    visualizer_config: VisualizerConfig,
    graph: SceneGraph,
    layer: SceneGraphLayer,
    ns: str = MESH_EDGES_NS,
) -> Primitive:
    """
    Connect every node centroid to a break point below it, then fan out from
    the break point to every (skip + 1)-th surface sample of that node.
    """
    z_offset = get_z_offset(config, visualizer_config)
    stride = max(int(config.interlayer_edge_insertion_skip), 0) + 1
    mesh_z = 0.0 if visualizer_config.collapse_layers else visualizer_config.mesh_layer_offset

    points: List[npt.NDArray[np.float64]] = []
    colors: List[Tuple[float, float, float, float]] = []

    for node in layer.iter_nodes():
        mesh_points = graph.get_mesh_points_for_node(node.id)
        if mesh_points is None:
            continue

        if config.interlayer_edge_use_color:
            rgba = _semantic_color(node).to_rgba(config.interlayer_edge_alpha)
        else:
            rgba = BLACK.to_rgba(config.interlayer_edge_alpha)

        centroid = _lifted(node.position, z_offset)
        break_point = _lifted(node.position, visualizer_config.mesh_edge_break_ratio * z_offset)
        points.extend((centroid, break_point))
        colors.extend((rgba, rgba))

        vertices = np.asarray(mesh_points, dtype=np.float64)[::stride].copy()
        vertices[:, 2] += mesh_z
        for vertex in vertices:
            points.extend((break_point, vertex))
            colors.extend((rgba, rgba))

    return Primitive(
        id=layer.id,
        ns=ns,
        type=PrimitiveType.LINE_LIST,
        action=Action.ADD,
        scale=(config.interlayer_edge_scale, 0.0, 0.0),
        points=np.array(points).reshape(-1, 3),
        colors=np.array(colors).reshape(-1, 4),
    )
