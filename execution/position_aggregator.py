"""
Position aggregation — pure projections from orders to positions.

No position is ever constructed here; positions are looked up through the
references their orders carry and de-duplicated by id.
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from execution.position import Position, PositionStatus


def positions_from(filled_orders: Iterable) -> List[Position]:
    """Distinct positions referenced by ``filled_orders``, in first-seen order."""
    positions: Dict[str, Position] = {}
    for order in filled_orders:
        position = order.position
        if position is None:
            continue
        positions.setdefault(position.id, position)
    return list(positions.values())


def open_positions_from(positions: Iterable[Position]) -> List[Position]:
    return [p for p in positions if p.status == PositionStatus.OPEN]
