"""
VTK and Geometry Utilities
Helper functions converting render primitives into PyVista data sets.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import numpy.typing as npt
import pyvista as pv
from scipy.spatial.transform import Rotation

from scenegraphviz.model.primitives import Pose, Primitive

logger = logging.getLogger(__name__)


class VtkUtils:
    @staticmethod
    def pose_matrix(pose: Pose) -> npt.NDArray[np.float64]:
        """4x4 homogeneous transform of a pose (quaternion stored as x, y, z, w)."""
        matrix = np.eye(4)
        quat = pose.orientation
        if np.linalg.norm(quat) > 0.0:
            matrix[:3, :3] = Rotation.from_quat(quat).as_matrix()
        matrix[:3, 3] = pose.position
        return matrix

    @staticmethod
    def rgba_to_uint8(colors: npt.NDArray[np.float64]) -> npt.NDArray[np.uint8]:
        """(N, 4) floats in [0, 1] -> (N, 4) uint8 for rgba scalars."""
        clipped = np.clip(np.asarray(colors, dtype=np.float64).reshape(-1, 4), 0.0, 1.0)
        return np.round(clipped * 255.0).astype(np.uint8)

    @staticmethod
    def points_to_polydata(primitive: Primitive) -> pv.PolyData:
        """Point batch; per-point colors are stored as 'rgba' point data."""
        points = primitive.points
        pd = pv.PolyData(points) if len(points) else pv.PolyData()
        if len(points) and len(primitive.colors) == len(points):
            pd.point_data["rgba"] = VtkUtils.rgba_to_uint8(primitive.colors)
        return pd

    @staticmethod
    def line_list_to_polydata(primitive: Primitive) -> pv.PolyData:
        """
        Line list: consecutive point pairs form independent segments.
        A trailing unpaired point is ignored.
        """
        n_segments = len(primitive.points) // 2
        if n_segments == 0:
            return pv.PolyData()

        points = primitive.points[: 2 * n_segments]
        cells = np.empty((n_segments, 3), dtype=np.int_)
        cells[:, 0] = 2
        cells[:, 1] = np.arange(0, 2 * n_segments, 2)
        cells[:, 2] = cells[:, 1] + 1

        pd = pv.PolyData(points, lines=cells.ravel())
        if len(primitive.colors) >= 2 * n_segments:
            pd.point_data["rgba"] = VtkUtils.rgba_to_uint8(primitive.colors[: 2 * n_segments])
        return pd

    @staticmethod
    def box_to_polydata(primitive: Primitive) -> Optional[pv.PolyData]:
        """Axis-aligned unit cube scaled to the primitive, then posed."""
        x, y, z = (float(v) for v in primitive.scale)
        if min(x, y, z) < 0.0:
            logger.error(f"Box {primitive.ns}/{primitive.id} has negative extents {primitive.scale}.")
            return None

        cube = pv.Cube(center=(0.0, 0.0, 0.0), x_length=x, y_length=y, z_length=z)
        return cube.transform(VtkUtils.pose_matrix(primitive.pose), inplace=False)
