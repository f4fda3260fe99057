"""
Layer Orchestrator
==================
Runs the primitive builders over every layer of a scene graph and groups the
results per transport channel.

Why is this file needed?
------------------------
1. Dispatch: It looks up each layer's configuration in the pass snapshot and
   decides, per artifact, between geometry and retraction.
2. Isolation: A failure while building one node or layer is logged here and
   never aborts the pass.
3. Headers: Every primitive of a pass is stamped with the same frame and time.
"""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from scenegraphviz.config import WORLD_FRAME
from scenegraphviz.controller.builders import (
    CENTROIDS_NS, MESH_EDGES_NS, bounding_box_namespace,
    make_bounding_box_primitive, make_centroid_primitive, make_delete_all_primitive,
    make_delete_primitive, make_graph_edge_primitives, make_layer_edge_primitive,
    make_mesh_edges_primitive, make_text_primitive, text_namespace,
)
from scenegraphviz.model.colormap import BLACK
from scenegraphviz.model.errors import AttributeKindMismatch, InvalidBoundingBoxType, MissingLayerConfig
from scenegraphviz.model.graph import DsgLayers, SceneGraph, SceneGraphLayer
from scenegraphviz.model.primitives import Channel, Primitive, PrimitiveType
from scenegraphviz.model.render_config import LayerConfig, RenderSnapshot

logger = logging.getLogger(__name__)

RenderBatches = Dict[Channel, List[Primitive]]


class RenderOrchestrator:
    def __init__(
        self,
        world_frame: str = WORLD_FRAME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.world_frame = world_frame
        self._clock = clock

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def render(self, graph: SceneGraph, snapshot: RenderSnapshot) -> RenderBatches:
        """One full pass: layer artifacts, then edges. Empty channels are omitted."""
        batches: RenderBatches = defaultdict(list)
        for channel, primitives in self.display_layers(graph, snapshot).items():
            batches[channel].extend(primitives)
        for channel, primitives in self.display_edges(graph, snapshot).items():
            batches[channel].extend(primitives)

        self._fill_headers(batches)
        return {channel: prims for channel, prims in batches.items() if prims}

    def display_layers(self, graph: SceneGraph, snapshot: RenderSnapshot) -> RenderBatches:
        batches: RenderBatches = defaultdict(list)

        for layer_id in graph.layer_ids():
            try:
                config = snapshot.require(layer_id)
            except MissingLayerConfig:
                logger.warning(f"failed to find config for layer {layer_id}")
                continue

            layer = graph.layers[layer_id]
            batches[Channel.CENTROIDS].extend(self._handle_centroids(layer, config, snapshot))
            batches[Channel.LABELS].extend(self._handle_labels(layer, config, snapshot))
            batches[Channel.BOUNDING_BOXES].extend(self._handle_bounding_boxes(layer, config, snapshot))
            batches[Channel.MESH_EDGES].extend(self._handle_mesh_edges(graph, layer, config, snapshot))

        return {channel: prims for channel, prims in batches.items() if prims}

    def display_edges(self, graph: SceneGraph, snapshot: RenderSnapshot) -> RenderBatches:
        edges = make_graph_edge_primitives(graph, snapshot.layers, snapshot.visualizer)

        for layer_id in graph.layer_ids():
            layer = graph.layers[layer_id]
            if layer.num_edges() == 0:
                continue

            config = snapshot.layer(layer_id)
            if config is None:
                logger.warning(f"Failed to find config for layer {layer_id}")
                continue

            edges.append(make_layer_edge_primitive(config, layer, snapshot.visualizer, BLACK))

        return {Channel.GRAPH_EDGES: edges} if edges else {}

    def clear_batches(self) -> RenderBatches:
        """One DELETE_ALL per channel, independent of any graph."""
        stamp = self._clock()
        return {
            channel: [make_delete_all_primitive().with_header(self.world_frame, stamp)]
            for channel in Channel
        }

    # ------------------------------------------------------------------------------
    # Internal: per-artifact handlers
    # ------------------------------------------------------------------------------

    def _handle_centroids(
        self, layer: SceneGraphLayer, config: LayerConfig, snapshot: RenderSnapshot
    ) -> List[Primitive]:
        if not config.visualize:
            return [make_delete_primitive(layer.id, CENTROIDS_NS, PrimitiveType.CUBE_LIST)]
        return [make_centroid_primitive(config, layer, snapshot.visualizer)]

    def _handle_labels(
        self, layer: SceneGraphLayer, config: LayerConfig, snapshot: RenderSnapshot
    ) -> List[Primitive]:
        ns = text_namespace(layer.id)
        primitives = []
        for node in layer.iter_nodes():
            if config.visualize and config.use_label:
                primitives.append(make_text_primitive(config, node, snapshot.visualizer, ns))
            else:
                primitives.append(make_delete_primitive(node.id, ns, PrimitiveType.TEXT_VIEW_FACING))
        return primitives

    def _handle_bounding_boxes(
        self, layer: SceneGraphLayer, config: LayerConfig, snapshot: RenderSnapshot
    ) -> List[Primitive]:
        ns = bounding_box_namespace(layer.id)
        primitives = []
        for node in layer.iter_nodes():
            if not (config.visualize and config.use_bounding_box):
                primitives.append(make_delete_primitive(node.id, ns, PrimitiveType.CUBE))
                continue

            try:
                primitives.append(make_bounding_box_primitive(config, node, snapshot.visualizer, ns))
            except AttributeKindMismatch as e:
                logger.error(f"Bounding boxes enabled for non-object node: {e}")
            except InvalidBoundingBoxType as e:
                logger.error(f"Invalid bounding box encountered! {e}")
        return primitives

    def _handle_mesh_edges(
        self,
        graph: SceneGraph,
        layer: SceneGraphLayer,
        config: LayerConfig,
        snapshot: RenderSnapshot,
    ) -> List[Primitive]:
        if layer.id != DsgLayers.OBJECTS:
            return []
        if not config.visualize:
            return [make_delete_primitive(layer.id, MESH_EDGES_NS, PrimitiveType.LINE_LIST)]
        return [make_mesh_edges_primitive(config, snapshot.visualizer, graph, layer)]

    def _fill_headers(self, batches: RenderBatches) -> None:
        stamp = self._clock()
        for channel, primitives in batches.items():
            batches[channel] = [p.with_header(self.world_frame, stamp) for p in primitives]


def describe_batches(batches: RenderBatches) -> str:
    """Short summary used in debug logs."""
    parts = []
    for channel, primitives in batches.items():
        adds = sum(1 for p in primitives if not p.is_delete)
        parts.append(f"{channel.name.lower()}={adds}+{len(primitives) - adds}d")
    return ", ".join(parts) if parts else "nothing"
