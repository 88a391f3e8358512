"""
BrokerOrder — owns one order's lifecycle and the facts derived from it.

SRP: This class holds order state behind read-only properties and exposes
     protected mutators (``_transition_to``, ``_record_deal``,
     ``_update_pending_price``, ``_update_pending_volume``) for the
     broker-specific subclass that receives broker updates.  Fill volume,
     fill type and execution price are computed from the deal list on every
     read, never stored.

States:
    PENDING → ACCEPTED → EXECUTED
    PENDING → REJECTED
    {PENDING, ACCEPTED} → CANCELLED | EXPIRED
"""
from __future__ import annotations

import asyncio
import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Union
from loguru import logger

from events.emitter import Emitter, EventListener
from execution.order_models import (
    Deal, OrderDirection, OrderExecutionType, OrderFillType, OrderPurpose,
    OrderRejectionType, OrderStatus, OrderTimeInForce, STATUS_EVENTS,
    TERMINAL_STATUSES, filter_executed_deals,
)
from execution.position import Position, PositionRef, to_position_ref


class BrokerOrder(ABC):
    """Represents a broker order."""

    def __init__(
        self, *,
        broker_account: Any,
        symbol: str,
        requested_volume: float,
        direction: OrderDirection,
        purpose: OrderPurpose,
        status: OrderStatus = OrderStatus.PENDING,
        id: Optional[str] = None,
        limit_price: Optional[float] = None,
        stop_price: Optional[float] = None,
        creation_date: Optional[datetime] = None,
        last_update_date: Optional[datetime] = None,
        time_in_force: OrderTimeInForce = OrderTimeInForce.GOOD_TILL_CANCEL,
        deals: Optional[List[Deal]] = None,
        position: Union[Position, PositionRef, Any, None] = None,
        rejection_type: Optional[OrderRejectionType] = None,
        is_stop_out: bool = False,
    ):
        if limit_price is not None and stop_price is not None:
            raise ValueError("Limit price and stop price are mutually exclusive")
        self._id = id
        self._broker_account = broker_account
        self._symbol = symbol
        self._requested_volume = requested_volume
        self._direction = direction
        self._purpose = purpose
        self._limit_price = limit_price
        self._stop_price = stop_price
        self._status = status
        self._creation_date = creation_date
        self._last_update_date = last_update_date
        self._time_in_force = time_in_force
        self._deals: List[Deal] = list(deals or [])
        self._position_ref: Optional[PositionRef] = to_position_ref(position)
        self._rejection_type = rejection_type
        self._is_stop_out = is_stop_out
        self._emitter = Emitter()

    # ── Read-only state ──────────────────────────────────────────────────

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def broker_account(self):
        return self._broker_account

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def requested_volume(self) -> float:
        return self._requested_volume

    @property
    def direction(self) -> OrderDirection:
        return self._direction

    @property
    def purpose(self) -> OrderPurpose:
        return self._purpose

    @property
    def limit_price(self) -> Optional[float]:
        return self._limit_price

    @property
    def stop_price(self) -> Optional[float]:
        return self._stop_price

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def creation_date(self) -> Optional[datetime]:
        return self._creation_date

    @property
    def last_update_date(self) -> Optional[datetime]:
        return self._last_update_date

    @property
    def time_in_force(self) -> OrderTimeInForce:
        return self._time_in_force

    @property
    def deals(self) -> List[Deal]:
        return list(self._deals)

    @property
    def executed_deals(self) -> List[Deal]:
        return filter_executed_deals(self._deals)

    @property
    def position(self) -> Optional[Position]:
        if self._position_ref is None:
            return None
        return self._position_ref.resolve()

    @property
    def rejection_type(self) -> Optional[OrderRejectionType]:
        return self._rejection_type

    @property
    def is_stop_out(self) -> bool:
        return self._is_stop_out

    # ── Derived facts ────────────────────────────────────────────────────

    @property
    def is_executed(self) -> bool:
        return self._status == OrderStatus.EXECUTED

    @property
    def is_rejected(self) -> bool:
        return self._status == OrderStatus.REJECTED

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    @property
    def is_opening(self) -> bool:
        return self._purpose == OrderPurpose.OPEN

    @property
    def is_closing(self) -> bool:
        return self._purpose == OrderPurpose.CLOSE

    @property
    def filled_volume(self) -> float:
        return sum(deal.volume for deal in self.executed_deals)

    @property
    def fill_type(self) -> Optional[OrderFillType]:
        if not self.is_executed:
            return None
        if math.isclose(self.filled_volume, self._requested_volume):
            return OrderFillType.FULL
        return OrderFillType.PARTIAL

    @property
    def execution_price(self) -> Optional[float]:
        """Volume-weighted average price of the executed deals."""
        if not self.is_executed:
            return None
        filled_volume = self.filled_volume
        if not filled_volume:
            return None
        price_volume = sum(deal.execution_price * deal.volume for deal in self.executed_deals)
        return price_volume / filled_volume

    @property
    def execution_type(self) -> OrderExecutionType:
        if self._limit_price is not None:
            return OrderExecutionType.LIMIT
        if self._stop_price is not None:
            return OrderExecutionType.STOP
        return OrderExecutionType.MARKET

    # ── Broker-specific behaviour ────────────────────────────────────────

    @abstractmethod
    async def cancel(self) -> None:
        """Ask the broker to cancel; the broker update drives CANCELLED."""

    # ── Events ───────────────────────────────────────────────────────────

    def on(self, type: str, listener: Optional[EventListener] = None) -> Union[asyncio.Future, str]:
        return self._emitter.on(type, listener)

    def remove_event_listener(self, subscription_id: str) -> None:
        self._emitter.remove_event_listener(subscription_id)

    # ── Protected mutators ───────────────────────────────────────────────

    def _transition_to(self, status: OrderStatus) -> None:
        if self._status == status:
            return
        previous_status = self._status
        self._status = status
        logger.debug(f"Order {self._id or '<unassigned>'} {self._symbol}: "
                     f"{previous_status.value} → {status.value}")
        self._emitter.notify_listeners(STATUS_EVENTS[status])
        self._emitter.notify_listeners(
            "status-change", {"status": status, "previous_status": previous_status})

    def _record_deal(self, deal: Deal) -> None:
        self._deals.append(deal)
        self._emitter.notify_listeners("deal", {"deal": deal})

    def _update_pending_price(self, price: float) -> None:
        if self._limit_price is not None:
            self._limit_price = price
        elif self._stop_price is not None:
            self._stop_price = price
        else:
            logger.warning(f"Order {self._id}: pending price change on a market order ignored")
            return
        self._emitter.notify_listeners("pending-price-change", {"price": price})

    def _update_pending_volume(self, volume: float) -> None:
        if self._requested_volume == volume:
            return
        self._requested_volume = volume
        self._emitter.notify_listeners("pending-volume-change", {"volume": volume})

    def _assign_id(self, id: str) -> None:
        self._id = id

    def _set_dates(self, creation_date: Optional[datetime] = None,
                   last_update_date: Optional[datetime] = None) -> None:
        if creation_date is not None:
            self._creation_date = creation_date
        if last_update_date is not None:
            self._last_update_date = last_update_date

    def _set_position(self, position: Union[Position, PositionRef, Any, None]) -> None:
        self._position_ref = to_position_ref(position)

    def _set_rejection_type(self, rejection_type: Optional[OrderRejectionType]) -> None:
        self._rejection_type = rejection_type

    def __repr__(self):
        return (f"{type(self).__name__}(id={self._id!r}, symbol={self._symbol!r}, "
                f"{self._direction.value} {self._requested_volume}, status={self._status.value})")
