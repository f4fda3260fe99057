"""
Rendering Core
==============
Projection of a scene graph into render primitives.

1. Builders: one pure function per artifact kind (centroids, labels, boxes,
   intra-layer, inter-layer and surface-sample edges).
2. Orchestrator: per-layer dispatch and per-channel batching.
3. Redraw: configuration channel, clean/dirty state machine and scheduler.

Note: builders and orchestrator are pure Python/NumPy and do NOT import PySide6.
"""
