"""
Redraw Controller
=================
Decides when the scene graph is re-projected and forwards the result to the
render transport.

Why is this file needed?
------------------------
1. Scheduling: A QTimer ticks at a fixed period (default 100 ms); a tick only
   does work when the controller is DIRTY and holds a graph.
2. Arming: Replacing the graph or any configuration moves CLEAN -> DIRTY.
3. Containment: Nothing raised during a pass reaches the Qt event loop.

Classes:
    RedrawState: CLEAN / DIRTY.
    RedrawController: The state machine itself.
"""
from __future__ import annotations

import logging
from enum import StrEnum
from typing import Optional, TYPE_CHECKING

from PySide6.QtCore import QObject, QTimer, Signal

from scenegraphviz.config import DEFAULT_LOOP_PERIOD
from scenegraphviz.controller.config_store import ConfigStore
from scenegraphviz.controller.ledger import PrimitiveLedger
from scenegraphviz.controller.orchestrator import RenderBatches, RenderOrchestrator, describe_batches
from scenegraphviz.model.errors import EmptyOrAbsentGraph
from scenegraphviz.model.graph import SceneGraph

if TYPE_CHECKING:
    from scenegraphviz.view.transport import RenderTransport

logger = logging.getLogger(__name__)


class RedrawState(StrEnum):
    CLEAN = "clean"
    DIRTY = "dirty"


class RedrawController(QObject):
    # Number of primitives handed to the transport by the last pass
    redrawn = Signal(int)

    def __init__(
        self,
        transport: RenderTransport,
        config_store: ConfigStore,
        orchestrator: Optional[RenderOrchestrator] = None,
        suppress_unchanged: bool = True,
    ) -> None:
        super().__init__()
        self.transport = transport
        self.config_store = config_store
        self.orchestrator = orchestrator or RenderOrchestrator()
        self.ledger: Optional[PrimitiveLedger] = PrimitiveLedger() if suppress_unchanged else None

        self._graph: Optional[SceneGraph] = None
        self._state = RedrawState.CLEAN

        self.config_store.changed.connect(self.mark_dirty)

        self._timer = QTimer(self)
        self._timer.setInterval(int(DEFAULT_LOOP_PERIOD * 1000))
        self._timer.timeout.connect(self.tick)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def state(self) -> RedrawState:
        return self._state

    @property
    def graph(self) -> Optional[SceneGraph]:
        return self._graph

    def start(self, period: Optional[float] = None) -> None:
        """Start ticking every `period` seconds."""
        if period is not None:
            self._timer.setInterval(max(int(period * 1000), 1))
        logger.info(f"Redraw loop started ({self._timer.interval()} ms).")
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def is_running(self) -> bool:
        return self._timer.isActive()

    def set_graph(self, graph: Optional[SceneGraph]) -> bool:
        """Hold a new graph snapshot. Missing or empty graphs are rejected."""
        try:
            self._validate_graph(graph)
        except EmptyOrAbsentGraph as e:
            logger.warning(f"{e} Skipping.")
            return False

        self._graph = graph
        self.mark_dirty()
        return True

    def mark_dirty(self) -> None:
        self._state = RedrawState.DIRTY

    def tick(self) -> None:
        self.redraw()

    def redraw(self) -> bool:
        """Run one pass if armed. Returns True when a pass was executed."""
        if self._graph is None or self._state != RedrawState.DIRTY:
            return False

        self._state = RedrawState.CLEAN
        snapshot = self.config_store.snapshot()
        try:
            batches = self.orchestrator.render(self._graph, snapshot)
        except Exception as e:
            logger.exception(f"Redraw pass failed: {e}")
            return False

        logger.debug(f"Redraw pass: {describe_batches(batches)}")
        self.redrawn.emit(self._publish(batches))
        return True

    def clear(self) -> None:
        """Retract everything on every channel and forget the held graph."""
        self._graph = None
        self._publish(self.orchestrator.clear_batches())
        logger.info("Cleared all render channels.")

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    @staticmethod
    def _validate_graph(graph: Optional[SceneGraph]) -> None:
        if graph is None or graph.empty():
            raise EmptyOrAbsentGraph("Request to visualize empty scene graph.")

    def _publish(self, batches: RenderBatches) -> int:
        sent = 0
        for channel, primitives in batches.items():
            if self.ledger is not None:
                primitives = self.ledger.filter(channel, primitives)
            if not primitives:
                continue
            try:
                self.transport.publish(channel, primitives)
            except Exception as e:
                logger.error(f"Failed to publish {len(primitives)} primitives on {channel}: {e}")
                continue
            if self.ledger is not None:
                self.ledger.commit(channel, primitives)
            sent += len(primitives)
        return sent
