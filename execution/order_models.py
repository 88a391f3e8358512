"""
Order vocabulary — enums, deals and placement directives.

Everything here is a value: enums are string-valued, Deal and OrderDirectives
are frozen.  Mutable order state lives in broker_order.BrokerOrder.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional


class OrderStatus(Enum):
    """Order status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXECUTED = "executed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Specific event emitted when an order enters each status
STATUS_EVENTS = {
    OrderStatus.REJECTED: "reject",
    OrderStatus.ACCEPTED: "accept",
    OrderStatus.PENDING: "pending",
    OrderStatus.CANCELLED: "cancel",
    OrderStatus.EXECUTED: "execute",
    OrderStatus.EXPIRED: "expire",
}

TERMINAL_STATUSES = frozenset({
    OrderStatus.EXECUTED, OrderStatus.REJECTED,
    OrderStatus.CANCELLED, OrderStatus.EXPIRED,
})


class OrderDirection(Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderDirection":
        return OrderDirection.SELL if self is OrderDirection.BUY else OrderDirection.BUY


class OrderPurpose(Enum):
    OPEN = "open"
    CLOSE = "close"


class OrderExecutionType(Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"


class OrderFillType(Enum):
    FULL = "full"
    PARTIAL = "partial"


class OrderTimeInForce(Enum):
    GOOD_TILL_CANCEL = "good_till_cancel"
    IMMEDIATE_OR_CANCEL = "immediate_or_cancel"
    FILL_OR_KILL = "fill_or_kill"


class OrderRejectionType(Enum):
    NOT_ENOUGH_MONEY = "not_enough_money"
    MARKET_CLOSED = "market_closed"
    INVALID_VOLUME = "invalid_volume"
    NO_LIQUIDITY = "no_liquidity"
    SYMBOL_NOT_FOUND = "symbol_not_found"
    UNKNOWN = "unknown"


class DealStatus(Enum):
    EXECUTED = "executed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Deal:
    """Immutable execution fact belonging to one order."""
    id: str
    order_id: str
    symbol: str
    volume: float
    direction: OrderDirection
    purpose: OrderPurpose
    status: DealStatus
    execution_price: Optional[float] = None
    execution_date: Optional[datetime] = None
    position_id: Optional[str] = None
    commission: float = 0.0

    def __post_init__(self):
        if self.status == DealStatus.EXECUTED and self.execution_price is None:
            raise ValueError(f"Executed deal {self.id} needs an execution price")

    @property
    def is_executed(self) -> bool:
        return self.status == DealStatus.EXECUTED


def filter_executed_deals(deals: Iterable[Deal]) -> List[Deal]:
    return [d for d in deals if d.is_executed]


@dataclass(frozen=True)
class OrderDirectives:
    """What a strategy asks the broker to do."""
    symbol: str
    direction: OrderDirection
    volume: float
    purpose: OrderPurpose = OrderPurpose.OPEN
    limit_price: Optional[float] = None
    stop_price: Optional[float] = None
    position_id: Optional[str] = None
    time_in_force: OrderTimeInForce = OrderTimeInForce.GOOD_TILL_CANCEL

    def __post_init__(self):
        if self.volume <= 0:
            raise ValueError(f"Order volume must be positive, got {self.volume}")
        if self.limit_price is not None and self.stop_price is not None:
            raise ValueError("Limit price and stop price are mutually exclusive")
        if self.purpose == OrderPurpose.CLOSE and not self.position_id:
            raise ValueError("Closing directives require a position_id")

    @property
    def is_closing(self) -> bool:
        return self.purpose == OrderPurpose.CLOSE

    @property
    def execution_type(self) -> OrderExecutionType:
        if self.limit_price is not None:
            return OrderExecutionType.LIMIT
        if self.stop_price is not None:
            return OrderExecutionType.STOP
        return OrderExecutionType.MARKET
