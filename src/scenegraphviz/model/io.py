"""
Input/Output Manager
====================
1. Scene graph snapshots (HDF5): layers, node attributes, edges and the surface
   samples attached to nodes.
2. Render configuration (JSON): the global section plus one section per layer.
"""
import json
import logging
import os
from enum import IntEnum
from importlib.metadata import version, PackageNotFoundError
from typing import Dict, Tuple

import h5py
import numpy as np

from scenegraphviz.model.colormap import Color
from scenegraphviz.model.graph import (
    BoundingBox, BoundingBoxType, NodeAttributes, ObjectNodeAttributes, PlaceNodeAttributes,
    SceneGraph, SemanticNodeAttributes,
)
from scenegraphviz.model.render_config import LayerConfig, VisualizerConfig

logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("scenegraphviz")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


class AttributeKind(IntEnum):
    """Attribute variant code stored per node."""
    BASE = 0
    SEMANTIC = 1
    OBJECT = 2
    PLACE = 3


_BOX_TYPES = [BoundingBoxType.INVALID, BoundingBoxType.AABB, BoundingBoxType.OBB]


def _kind_of(attrs: NodeAttributes) -> AttributeKind:
    match attrs:
        case ObjectNodeAttributes():
            return AttributeKind.OBJECT
        case PlaceNodeAttributes():
            return AttributeKind.PLACE
        case SemanticNodeAttributes():
            return AttributeKind.SEMANTIC
        case _:
            return AttributeKind.BASE


class GraphIO:
    @staticmethod
    def save_graph(graph: SceneGraph, filepath: str) -> None:
        logger.info(f"Saving scene graph to: {filepath}")
        try:
            with h5py.File(filepath, "w") as f:
                f.attrs["version"] = APP_VERSION

                grp_layers = f.create_group("layers")
                for layer_id in graph.layer_ids():
                    GraphIO._save_layer(grp_layers.create_group(str(layer_id)), graph, layer_id)

                edges = np.array(
                    [(e.source, e.target) for e in graph.inter_layer_edges], dtype=np.uint64
                ).reshape(-1, 2)
                f.create_dataset("inter_layer_edges", data=edges)

                grp_mesh = f.create_group("mesh_points")
                for node_id, points in graph.mesh_points.items():
                    if len(points) == 0:
                        continue
                    grp_mesh.create_dataset(str(node_id), data=points, compression="gzip")

            logger.info(f"Scene graph saved ({graph.num_nodes()} nodes).")
        except Exception as e:
            logger.exception(f"Failed to save scene graph: {e}")
            raise e

    @staticmethod
    def _save_layer(grp: h5py.Group, graph: SceneGraph, layer_id: int) -> None:
        nodes = list(graph.layers[layer_id].iter_nodes())
        n = len(nodes)

        kinds = np.zeros(n, dtype=np.int8)
        colors = np.zeros((n, 3))
        distances = np.zeros(n)
        box_types = np.zeros(n, dtype=np.int8)
        box_min = np.zeros((n, 3))
        box_max = np.zeros((n, 3))
        box_center = np.zeros((n, 3))
        box_rotation = np.tile(np.eye(3), (n, 1, 1))
        names = []

        for i, node in enumerate(nodes):
            attrs = node.attributes
            kinds[i] = _kind_of(attrs)
            names.append(getattr(attrs, "name", ""))
            if isinstance(attrs, SemanticNodeAttributes):
                colors[i] = attrs.color.to_array()
            if isinstance(attrs, PlaceNodeAttributes):
                distances[i] = attrs.distance
            if isinstance(attrs, ObjectNodeAttributes):
                box = attrs.bounding_box
                box_types[i] = _BOX_TYPES.index(box.type)
                box_min[i], box_max[i] = box.min, box.max
                box_center[i], box_rotation[i] = box.center, box.rotation

        grp.create_dataset("node_ids", data=np.array([node.id for node in nodes], dtype=np.uint64))
        grp.create_dataset("positions", data=np.array([node.position for node in nodes]).reshape(-1, 3))
        grp.create_dataset("kinds", data=kinds)
        grp.create_dataset("colors", data=colors)
        grp.create_dataset("names", data=np.array(names, dtype=h5py.string_dtype()))
        grp.create_dataset("distances", data=distances)
        grp.create_dataset("box_types", data=box_types)
        grp.create_dataset("box_min", data=box_min)
        grp.create_dataset("box_max", data=box_max)
        grp.create_dataset("box_center", data=box_center)
        grp.create_dataset("box_rotation", data=box_rotation)

        edges = graph.layers[layer_id].edges
        grp.create_dataset(
            "edges",
            data=np.array([(e.source, e.target) for e in edges], dtype=np.uint64).reshape(-1, 2),
        )

    @staticmethod
    def load_graph(filepath: str) -> SceneGraph:
        logger.info(f"Loading scene graph from: {filepath}")
        if not h5py.is_hdf5(filepath):
            msg = f"File '{filepath}' is not a valid HDF5 file."
            logger.error(msg)
            raise ValueError(msg)

        graph = SceneGraph()
        with h5py.File(filepath, "r") as f:
            file_version = f.attrs.get("version", "unknown")
            if file_version != APP_VERSION:
                logger.debug(f"Graph file version {file_version}, running {APP_VERSION}.")

            layer_edges = []
            for name, grp in f["layers"].items():
                layer_id = int(name)
                graph.add_layer(layer_id)
                GraphIO._load_layer_nodes(grp, graph, layer_id)
                layer_edges.extend(grp["edges"][()].tolist())

            # Edges after all nodes so inter-layer endpoints resolve
            for source, target in layer_edges:
                graph.insert_edge(int(source), int(target))
            for source, target in f["inter_layer_edges"][()].tolist():
                graph.insert_edge(int(source), int(target))

            for name, dset in f.get("mesh_points", {}).items():
                graph.set_mesh_points(int(name), dset[()])

        logger.info(f"Loaded {graph.num_nodes()} nodes in {len(graph.layers)} layers.")
        return graph

    @staticmethod
    def _load_layer_nodes(grp: h5py.Group, graph: SceneGraph, layer_id: int) -> None:
        node_ids = grp["node_ids"][()]
        positions = grp["positions"][()]
        kinds = grp["kinds"][()]
        colors = grp["colors"][()]
        names = grp["names"].asstr()[()]
        distances = grp["distances"][()]
        box_types = grp["box_types"][()]
        box_min, box_max = grp["box_min"][()], grp["box_max"][()]
        box_center, box_rotation = grp["box_center"][()], grp["box_rotation"][()]

        for i, node_id in enumerate(node_ids.tolist()):
            color = Color(*(float(c) for c in colors[i]))
            match int(kinds[i]):
                case AttributeKind.OBJECT:
                    box = BoundingBox(
                        type=_BOX_TYPES[int(box_types[i])],
                        min=box_min[i],
                        max=box_max[i],
                        center=box_center[i],
                        rotation=box_rotation[i],
                    )
                    attrs = ObjectNodeAttributes(positions[i], color=color, name=names[i], bounding_box=box)
                case AttributeKind.PLACE:
                    attrs = PlaceNodeAttributes(positions[i], color=color, name=names[i], distance=float(distances[i]))
                case AttributeKind.SEMANTIC:
                    attrs = SemanticNodeAttributes(positions[i], color=color, name=names[i])
                case _:
                    attrs = NodeAttributes(positions[i])
            graph.add_node(layer_id, int(node_id), attrs)


# ------------------------------------------------------------------------------
# Render configuration (JSON)
# ------------------------------------------------------------------------------
def load_render_config(filepath: str) -> Tuple[VisualizerConfig, Dict[int, LayerConfig]]:
    """
    Reads {"visualizer": {...}, "layers": {"<layer id>": {...}}}.
    Unknown keys are ignored; missing keys keep their defaults.
    """
    logger.info(f"Loading render config from: {filepath}")
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Render config not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)

    visualizer_config = VisualizerConfig.from_dict(data.get("visualizer", {}))
    layer_configs = {
        int(layer_id): LayerConfig.from_dict(values)
        for layer_id, values in data.get("layers", {}).items()
    }
    logger.debug(f"Render config has layers {sorted(layer_configs)}.")
    return visualizer_config, layer_configs


def save_render_config(
    filepath: str,
    visualizer_config: VisualizerConfig,
    layer_configs: Dict[int, LayerConfig],
) -> None:
    data = {
        "visualizer": visualizer_config.to_dict(),
        "layers": {str(layer_id): cfg.to_dict() for layer_id, cfg in sorted(layer_configs.items())},
    }
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Render config saved to: {filepath}")
