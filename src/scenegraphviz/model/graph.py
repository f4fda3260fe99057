"""
Scene Graph Data Model
======================
Layered spatial graph consumed (read-only) by the rendering core.

Why is this file needed?
------------------------
1. Structure: Layers own nodes and intra-layer edges; the graph owns the layers,
   the inter-layer edges and the surface samples attached to nodes.
2. Attributes: Node payloads form a small tagged union
   (NodeAttributes -> Semantic -> Object / Place) that builders match on.
3. Identity: Node ids are 64-bit symbols (character key + index) that double
   as stable draw-order keys and human-readable labels.

Classes:
    DsgLayers: Well-known layer ids (higher id = structurally higher layer).
    NodeSymbol: Encodes/decodes node ids and renders their labels.
    SceneGraphLayer / SceneGraph: Containers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Dict, Iterator, List, Optional, Type, TypeVar, TYPE_CHECKING

import numpy as np

from scenegraphviz.model.colormap import BLACK, Color
from scenegraphviz.model.errors import AttributeKindMismatch

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class DsgLayers(IntEnum):
    MESH = 1
    OBJECTS = 2
    PLACES = 3
    ROOMS = 4
    BUILDINGS = 5


# ------------------------------------------------------------------------------
# Node identifiers
# ------------------------------------------------------------------------------
_KEY_SHIFT = 56
_INDEX_MASK = (1 << _KEY_SHIFT) - 1


@dataclass(frozen=True)
class NodeSymbol:
    """Node id made of a one-character key (top byte) and a 56-bit index."""
    key: str
    index: int

    @staticmethod
    def from_id(value: int) -> NodeSymbol:
        return NodeSymbol(chr((value >> _KEY_SHIFT) & 0xFF), value & _INDEX_MASK)

    @property
    def value(self) -> int:
        return (ord(self.key) << _KEY_SHIFT) | (self.index & _INDEX_MASK)

    @property
    def label(self) -> str:
        if not self.key.isprintable() or self.key.isspace():
            return str(self.value)
        return f"{self.key}({self.index})"

    def __int__(self) -> int:
        return self.value


# ------------------------------------------------------------------------------
# Attributes
# ------------------------------------------------------------------------------
class BoundingBoxType(StrEnum):
    AABB = "aabb"
    OBB = "obb"
    INVALID = "invalid"


def _vec3(value) -> npt.NDArray[np.float64]:
    return np.asarray(value, dtype=np.float64).reshape(3)


@dataclass(eq=False)
class BoundingBox:
    """
    Object extents in the world frame.
    `rotation` is only meaningful for oriented (OBB) boxes.
    """
    type: BoundingBoxType = BoundingBoxType.INVALID
    min: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    max: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    center: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    rotation: npt.NDArray[np.float64] = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        self.min = _vec3(self.min)
        self.max = _vec3(self.max)
        self.center = _vec3(self.center)
        self.rotation = np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)

    @property
    def extents(self) -> npt.NDArray[np.float64]:
        return self.max - self.min


@dataclass(eq=False)
class NodeAttributes:
    position: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)


@dataclass(eq=False)
class SemanticNodeAttributes(NodeAttributes):
    color: Color = BLACK
    name: str = ""


@dataclass(eq=False)
class ObjectNodeAttributes(SemanticNodeAttributes):
    bounding_box: BoundingBox = field(default_factory=BoundingBox)


@dataclass(eq=False)
class PlaceNodeAttributes(SemanticNodeAttributes):
    distance: float = 0.0


AttrT = TypeVar("AttrT", bound=NodeAttributes)


def attributes_as(node: SceneGraphNode, kind: Type[AttrT]) -> AttrT:
    """
    Return the node attributes as `kind`.

    Raises:
        AttributeKindMismatch: if the attributes are not `kind` (or a subtype).
    """
    if not isinstance(node.attributes, kind):
        raise AttributeKindMismatch(node.id, kind, node.attributes)
    return node.attributes


# ------------------------------------------------------------------------------
# Graph structure
# ------------------------------------------------------------------------------
@dataclass(eq=False)
class SceneGraphNode:
    id: int
    layer: int
    attributes: NodeAttributes

    @property
    def position(self) -> npt.NDArray[np.float64]:
        return self.attributes.position

    def attributes_as(self, kind: Type[AttrT]) -> AttrT:
        return attributes_as(self, kind)


@dataclass(frozen=True)
class SceneGraphEdge:
    source: int
    target: int


@dataclass(eq=False)
class SceneGraphLayer:
    id: int
    nodes: Dict[int, SceneGraphNode] = field(default_factory=dict)
    edges: List[SceneGraphEdge] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[SceneGraphNode]:
        """Nodes in ascending id order (stable draw order)."""
        for node_id in sorted(self.nodes):
            yield self.nodes[node_id]

    def num_nodes(self) -> int:
        return len(self.nodes)

    def num_edges(self) -> int:
        return len(self.edges)

    def has_node(self, node_id: int) -> bool:
        return node_id in self.nodes

    def get_position(self, node_id: int) -> npt.NDArray[np.float64]:
        return self.nodes[node_id].position


@dataclass(eq=False)
class SceneGraph:
    """
    Layered scene graph. The rendering core only reads it; the add/insert
    helpers exist for loaders and tests.
    """
    layers: Dict[int, SceneGraphLayer] = field(default_factory=dict)
    inter_layer_edges: List[SceneGraphEdge] = field(default_factory=list)
    mesh_points: Dict[int, npt.NDArray[np.float64]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._node_layers: Dict[int, int] = {
            node_id: layer.id
            for layer in self.layers.values()
            for node_id in layer.nodes
        }

    # --- Queries ---
    def layer_ids(self) -> List[int]:
        return sorted(self.layers)

    def num_nodes(self) -> int:
        return sum(layer.num_nodes() for layer in self.layers.values())

    def empty(self) -> bool:
        return self.num_nodes() == 0

    def has_node(self, node_id: int) -> bool:
        return node_id in self._node_layers

    def get_node(self, node_id: int) -> Optional[SceneGraphNode]:
        layer_id = self._node_layers.get(node_id)
        if layer_id is None:
            return None
        return self.layers[layer_id].nodes.get(node_id)

    def get_mesh_points_for_node(self, node_id: int) -> Optional[npt.NDArray[np.float64]]:
        """Surface samples attached to a node, or None if it has none."""
        points = self.mesh_points.get(node_id)
        if points is None or len(points) == 0:
            return None
        return points

    # --- Construction ---
    def add_layer(self, layer_id: int) -> SceneGraphLayer:
        if layer_id not in self.layers:
            self.layers[layer_id] = SceneGraphLayer(id=layer_id)
        return self.layers[layer_id]

    def add_node(self, layer_id: int, node_id: int, attributes: NodeAttributes) -> bool:
        if node_id in self._node_layers:
            logger.warning(f"Node {NodeSymbol.from_id(node_id).label} already exists.")
            return False
        layer = self.add_layer(layer_id)
        layer.nodes[node_id] = SceneGraphNode(id=node_id, layer=layer_id, attributes=attributes)
        self._node_layers[node_id] = layer_id
        return True

    def insert_edge(self, source: int, target: int) -> bool:
        """Add an edge; it is intra-layer when both endpoints share a layer."""
        source_layer = self._node_layers.get(source)
        target_layer = self._node_layers.get(target)
        if source_layer is None or target_layer is None:
            logger.warning(f"Cannot insert edge {source} -> {target}: missing endpoint.")
            return False

        edge = SceneGraphEdge(source, target)
        if source_layer == target_layer:
            self.layers[source_layer].edges.append(edge)
        else:
            self.inter_layer_edges.append(edge)
        return True

    def set_mesh_points(self, node_id: int, points) -> None:
        self.mesh_points[node_id] = np.asarray(points, dtype=np.float64).reshape(-1, 3)
