"""
Render Primitives (Wire Contract)
=================================
Primitive descriptions exchanged with the render transport.

A primitive is keyed by (namespace, id) and carries either geometry (ADD) or a
retraction (DELETE / DELETE_ALL). Transports keep the last primitive sent per
key until it is superseded or deleted.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum, StrEnum
from typing import Tuple, TYPE_CHECKING

import numpy as np

from scenegraphviz.model.colormap import RGBA

if TYPE_CHECKING:
    import numpy.typing as npt


class Channel(StrEnum):
    """Transport channels, one per artifact kind."""
    CENTROIDS = "semantic_instance_centroid"
    BOUNDING_BOXES = "bounding_boxes"
    LABELS = "instance_ids"
    MESH_EDGES = "edges_centroid_pcl"
    GRAPH_EDGES = "edges_node_node"


class PrimitiveType(IntEnum):
    CUBE = 1
    SPHERE_LIST = 7
    CUBE_LIST = 6
    LINE_LIST = 5
    TEXT_VIEW_FACING = 9


class Action(IntEnum):
    ADD = 0
    DELETE = 2
    DELETE_ALL = 3


IDENTITY_QUATERNION: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)


@dataclass(eq=False)
class Pose:
    position: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    # (x, y, z, w)
    orientation: npt.NDArray[np.float64] = field(
        default_factory=lambda: np.array(IDENTITY_QUATERNION)
    )

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        self.orientation = np.asarray(self.orientation, dtype=np.float64).reshape(4)

    def equals(self, other: Pose) -> bool:
        return bool(
            np.array_equal(self.position, other.position)
            and np.array_equal(self.orientation, other.orientation)
        )


@dataclass(eq=False)
class Primitive:
    id: int
    ns: str
    type: PrimitiveType = PrimitiveType.CUBE
    action: Action = Action.ADD
    pose: Pose = field(default_factory=Pose)
    scale: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    color: RGBA = (0.0, 0.0, 0.0, 0.0)
    colors: npt.NDArray[np.float64] = field(default_factory=lambda: np.empty((0, 4)))
    points: npt.NDArray[np.float64] = field(default_factory=lambda: np.empty((0, 3)))
    text: str = ""
    frame_id: str = ""
    stamp: float = 0.0

    def __post_init__(self) -> None:
        self.scale = np.asarray(self.scale, dtype=np.float64).reshape(3)
        self.colors = np.asarray(self.colors, dtype=np.float64).reshape(-1, 4)
        self.points = np.asarray(self.points, dtype=np.float64).reshape(-1, 3)

    @property
    def key(self) -> Tuple[str, int]:
        return self.ns, self.id

    @property
    def is_delete(self) -> bool:
        return self.action in (Action.DELETE, Action.DELETE_ALL)

    def with_header(self, frame_id: str, stamp: float) -> Primitive:
        return replace(self, frame_id=frame_id, stamp=stamp)

    def same_content(self, other: Primitive) -> bool:
        """Equality that ignores the header (frame and timestamp)."""
        return (
            self.key == other.key
            and self.type == other.type
            and self.action == other.action
            and self.text == other.text
            and tuple(self.color) == tuple(other.color)
            and self.pose.equals(other.pose)
            and np.array_equal(self.scale, other.scale)
            and np.array_equal(self.colors, other.colors)
            and np.array_equal(self.points, other.points)
        )
