"""
Error taxonomy of the rendering core.

None of these escape to the redraw scheduler: they are raised in the model and
handled at the builder, orchestrator or controller boundary.
"""
from __future__ import annotations

from typing import Any


class AttributeKindMismatch(TypeError):
    """Node attributes were accessed as the wrong variant."""

    def __init__(self, node_id: int, requested: type, actual: Any) -> None:
        self.node_id = node_id
        self.requested = requested
        self.actual = type(actual)
        super().__init__(
            f"Node {node_id} has {self.actual.__name__}, not {requested.__name__}."
        )


class MissingLayerConfig(KeyError):
    """A layer has no registered render configuration."""

    def __init__(self, layer_id: int) -> None:
        self.layer_id = layer_id
        super().__init__(f"No render configuration for layer {layer_id}.")


class InvalidBoundingBoxType(ValueError):
    """Bounding box is neither oriented nor axis-aligned."""


class EmptyOrAbsentGraph(ValueError):
    """Request to visualize a missing or empty scene graph."""
