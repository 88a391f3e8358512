"""
Position — aggregate exposure derived from the orders that reference it.

A position never stores its own volume or status; both are recomputed from
its orders' executed deals on every read.  Orders point back at their
position through a PositionRef so that a broker can build the order before
the position exists (Lazy) or link an existing one directly (Resolved).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from execution.order_models import Deal, OrderDirection

VOLUME_EPSILON = 1e-9


class PositionStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


class Position:
    """Net exposure built from one or more orders."""

    def __init__(self, id: str, symbol: str, orders: Optional[list] = None):
        self._id = id
        self._symbol = symbol
        self._orders = list(orders or [])

    @property
    def id(self) -> str:
        return self._id

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def orders(self) -> list:
        return list(self._orders)

    @property
    def direction(self) -> Optional[OrderDirection]:
        """Direction of the first opening order."""
        for order in self._orders:
            if order.is_opening:
                return order.direction
        return None

    @property
    def deals(self) -> List[Deal]:
        deals: List[Deal] = []
        for order in self._orders:
            deals.extend(order.executed_deals)
        return deals

    @property
    def volume(self) -> float:
        """Opening fills minus closing fills."""
        volume = 0.0
        for order in self._orders:
            if order.is_opening:
                volume += order.filled_volume
            else:
                volume -= order.filled_volume
        return volume

    @property
    def open_price(self) -> Optional[float]:
        opening = [d for o in self._orders if o.is_opening for d in o.executed_deals]
        filled = sum(d.volume for d in opening)
        if not filled:
            return None
        return sum(d.execution_price * d.volume for d in opening) / filled

    @property
    def status(self) -> PositionStatus:
        if math.isclose(self.volume, 0.0, abs_tol=VOLUME_EPSILON):
            return PositionStatus.CLOSED
        return PositionStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN

    def _attach(self, order) -> None:
        """Link an order to this position (broker implementations only)."""
        if order not in self._orders:
            self._orders.append(order)

    def __repr__(self):
        return f"Position(id={self._id!r}, symbol={self._symbol!r}, volume={self.volume}, status={self.status.value})"


# ── Position references ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Resolved:
    position: Position

    def resolve(self) -> Position:
        return self.position


@dataclass(frozen=True)
class Lazy:
    resolver: Callable[[], Position]

    def resolve(self) -> Position:
        return self.resolver()


PositionRef = Union[Resolved, Lazy]


def to_position_ref(value) -> Optional[PositionRef]:
    """Accept a Position, a zero-argument resolver, a PositionRef or None."""
    if value is None or isinstance(value, (Resolved, Lazy)):
        return value
    if isinstance(value, Position):
        return Resolved(value)
    if callable(value):
        return Lazy(value)
    raise TypeError(f"Unsupported position reference: {value!r}")
