"""
Render Transports
=================
Receivers of primitive batches, one batch per channel per pass.

Classes:
    RenderTransport: Protocol every transport satisfies.
    RecordingTransport: Keeps the history and the last primitive per key.
    PyVistaTransport: Turns primitives into actors of a pyvista Plotter.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np
import pyvista as pv

from scenegraphviz.model.primitives import Action, Channel, Primitive, PrimitiveType
from scenegraphviz.view.vtk_utils import VtkUtils

logger = logging.getLogger(__name__)

Key = Tuple[str, int]


class RenderTransport(Protocol):
    def publish(self, channel: Channel, primitives: List[Primitive]) -> None: ...


class RecordingTransport:
    """In-memory transport; applies add/delete by (namespace, id) key."""

    def __init__(self) -> None:
        self.history: List[Tuple[Channel, List[Primitive]]] = []
        self.current: Dict[Channel, Dict[Key, Primitive]] = {channel: {} for channel in Channel}

    def publish(self, channel: Channel, primitives: List[Primitive]) -> None:
        self.history.append((channel, list(primitives)))
        drawn = self.current[channel]
        for primitive in primitives:
            match primitive.action:
                case Action.DELETE_ALL:
                    drawn.clear()
                case Action.DELETE:
                    drawn.pop(primitive.key, None)
                case _:
                    drawn[primitive.key] = primitive

    def sent(self, channel: Channel) -> List[Primitive]:
        """Every primitive ever sent on a channel, in order."""
        return [p for ch, batch in self.history if ch == channel for p in batch]

    def clear_history(self) -> None:
        self.history.clear()


class PyVistaTransport:
    """
    Maintains one actor per (channel, namespace, id) in a pyvista Plotter.

    ADD replaces the actor for its key, DELETE removes it and DELETE_ALL removes
    every actor of the channel. The plotter is re-rendered once per batch.
    """

    def __init__(self, plotter: pv.Plotter, point_size_scale: float = 100.0) -> None:
        self.plotter = plotter
        self.point_size_scale = point_size_scale
        self._actors: Dict[Channel, Dict[Key, Any]] = {channel: {} for channel in Channel}
        self._vtk_utils = VtkUtils()

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def publish(self, channel: Channel, primitives: List[Primitive]) -> None:
        for primitive in primitives:
            match primitive.action:
                case Action.DELETE_ALL:
                    self._remove_all(channel)
                case Action.DELETE:
                    self._remove(channel, primitive.key)
                case _:
                    self._remove(channel, primitive.key)
                    actor = self._add(primitive)
                    if actor is not None:
                        self._actors[channel][primitive.key] = actor
        self.plotter.render()

    def num_actors(self, channel: Optional[Channel] = None) -> int:
        if channel is not None:
            return len(self._actors[channel])
        return sum(len(actors) for actors in self._actors.values())

    # ------------------------------------------------------------------------------
    # Internal: actor management
    # ------------------------------------------------------------------------------

    def _remove(self, channel: Channel, key: Key) -> None:
        actor = self._actors[channel].pop(key, None)
        if actor is not None:
            self.plotter.remove_actor(actor)

    def _remove_all(self, channel: Channel) -> None:
        for actor in self._actors[channel].values():
            self.plotter.remove_actor(actor)
        self._actors[channel].clear()

    def _add(self, primitive: Primitive) -> Optional[Any]:
        match primitive.type:
            case PrimitiveType.SPHERE_LIST | PrimitiveType.CUBE_LIST:
                return self._add_points(primitive)
            case PrimitiveType.LINE_LIST:
                return self._add_lines(primitive)
            case PrimitiveType.CUBE:
                return self._add_box(primitive)
            case PrimitiveType.TEXT_VIEW_FACING:
                return self._add_text(primitive)
            case _:
                logger.warning(f"Unsupported primitive type {primitive.type} ({primitive.ns}/{primitive.id}).")
                return None

    def _add_points(self, primitive: Primitive) -> Optional[Any]:
        pd = self._vtk_utils.points_to_polydata(primitive)
        if pd.n_points == 0:
            return None
        return self.plotter.add_mesh(
            pd,
            scalars="rgba" if "rgba" in pd.point_data else None,
            rgba="rgba" in pd.point_data,
            style="points",
            point_size=max(float(primitive.scale[0]) * self.point_size_scale, 1.0),
            render_points_as_spheres=primitive.type == PrimitiveType.SPHERE_LIST,
            pickable=False,
            show_scalar_bar=False,
        )

    def _add_lines(self, primitive: Primitive) -> Optional[Any]:
        pd = self._vtk_utils.line_list_to_polydata(primitive)
        if pd.n_points == 0:
            return None

        line_width = max(float(primitive.scale[0]) * self.point_size_scale, 1.0)
        if "rgba" in pd.point_data:
            return self.plotter.add_mesh(
                pd,
                scalars="rgba",
                rgba=True,
                line_width=line_width,
                pickable=False,
                show_scalar_bar=False,
            )

        r, g, b, a = primitive.color
        return self.plotter.add_mesh(
            pd,
            color=(r, g, b),
            opacity=a,
            line_width=line_width,
            pickable=False,
            show_scalar_bar=False,
        )

    def _add_box(self, primitive: Primitive) -> Optional[Any]:
        box = self._vtk_utils.box_to_polydata(primitive)
        if box is None:
            return None
        r, g, b, a = primitive.color
        return self.plotter.add_mesh(
            box,
            color=(r, g, b),
            opacity=a,
            pickable=False,
            show_scalar_bar=False,
        )

    def _add_text(self, primitive: Primitive) -> Optional[Any]:
        r, g, b, _ = primitive.color
        return self.plotter.add_point_labels(
            np.atleast_2d(primitive.pose.position),
            [primitive.text],
            font_size=max(int(primitive.scale[2] * 24), 6),
            text_color=(r, g, b),
            shape_opacity=0.0,
            always_visible=True,
            show_points=False,
        )
