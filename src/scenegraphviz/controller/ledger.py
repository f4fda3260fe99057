"""
Primitive Ledger
Remembers the last primitive sent per (channel, namespace, id) so that a pass
only transmits what actually changes.

`filter` only looks; `commit` records. The redraw controller commits a batch
after the transport accepted it, so a failed send is retried on the next pass.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from scenegraphviz.model.primitives import Action, Channel, Primitive

logger = logging.getLogger(__name__)

Key = Tuple[str, int]


def _apply(drawn: Dict[Key, Primitive], primitives: List[Primitive]) -> List[Primitive]:
    """Update `drawn` in place and return the primitives that change it."""
    result: List[Primitive] = []
    for primitive in primitives:
        match primitive.action:
            case Action.DELETE_ALL:
                drawn.clear()
                result.append(primitive)
            case Action.DELETE:
                if drawn.pop(primitive.key, None) is not None:
                    result.append(primitive)
            case _:
                previous = drawn.get(primitive.key)
                if previous is not None and previous.same_content(primitive):
                    continue
                drawn[primitive.key] = primitive
                result.append(primitive)
    return result


class PrimitiveLedger:
    def __init__(self) -> None:
        self._drawn: Dict[Channel, Dict[Key, Primitive]] = {channel: {} for channel in Channel}

    def filter(self, channel: Channel, primitives: List[Primitive]) -> List[Primitive]:
        """
        Drop ADDs identical to what is already drawn and DELETEs of keys that
        are not drawn. DELETE_ALL always passes. The ledger is not modified.
        """
        result = _apply(dict(self._drawn[channel]), primitives)

        skipped = len(primitives) - len(result)
        if skipped:
            logger.debug(f"{channel.name}: {skipped} unchanged primitives not resent.")
        return result

    def commit(self, channel: Channel, primitives: List[Primitive]) -> None:
        """Record primitives the transport has accepted."""
        _apply(self._drawn[channel], primitives)

    def is_drawn(self, channel: Channel, key: Key) -> bool:
        return key in self._drawn[channel]

    def num_drawn(self, channel: Channel) -> int:
        return len(self._drawn[channel])
