"""
PaperBrokerAccount — in-memory simulated broker.

SRP: This class plays the broker's side of the order lifecycle: it accepts
     directives, drives each PaperBrokerOrder through its states, fills at
     the current quote and keeps the positions those fills build.  It makes
     no trading decisions.

Fill rules:
  MARKET          BUY fills at ask, SELL at bid, immediately
  LIMIT  BUY/SELL rests until ask <= limit / bid >= limit
  STOP   BUY/SELL rests until ask >= stop  / bid <= stop
  IOC / FOK       resting orders that cannot fill at once expire
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
from loguru import logger

from config import get_config
from events.emitter import Emitter, EventListener
from execution.broker_order import BrokerOrder
from execution.order_models import (
    Deal, DealStatus, OrderDirection, OrderDirectives, OrderExecutionType,
    OrderRejectionType, OrderStatus, OrderTimeInForce,
)
from execution.position import VOLUME_EPSILON, Position
from market.models import Tick


class PaperBrokerOrder(BrokerOrder):
    """Order whose broker is a PaperBrokerAccount."""

    async def cancel(self) -> None:
        await self.broker_account.cancel_order(self)


class PaperBrokerAccount:
    """Simulated account: quotes in, orders/deals/positions out."""

    def __init__(self, commission_per_unit: Optional[float] = None):
        if commission_per_unit is None:
            commission_per_unit = get_config().paper.commission_per_unit
        self.commission_per_unit = commission_per_unit
        self._emitter = Emitter()
        self._last_ticks: Dict[str, Tick] = {}
        self._orders: List[PaperBrokerOrder] = []
        self._positions: Dict[str, Position] = {}
        self._order_position_ids: Dict[BrokerOrder, str] = {}
        self._counter = 0
        self.total = self.filled = self.rejected = 0
        logger.info(f"Initialized Paper Broker (commission={commission_per_unit}/unit)")

    def _gen_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    # ── Market data ──────────────────────────────────────────────────────

    def push_tick(self, tick: Tick):
        """Record the latest quote, publish it, then trigger resting orders."""
        self._last_ticks[tick.symbol] = tick
        self._emitter.notify_listeners("tick", {"tick": tick})
        for order in list(self._orders):
            if (order.symbol == tick.symbol and order.status == OrderStatus.ACCEPTED
                    and order.execution_type != OrderExecutionType.MARKET):
                self._try_trigger(order, tick)

    def get_last_tick(self, symbol: str) -> Optional[Tick]:
        return self._last_ticks.get(symbol)

    # ── Orders ───────────────────────────────────────────────────────────

    async def place_order(self, directives: OrderDirectives) -> PaperBrokerOrder:
        """Place an order. Raises ValueError when a close has nothing to close."""
        position_id = self._resolve_position_id(directives)
        now = datetime.now(timezone.utc)
        order = PaperBrokerOrder(
            broker_account=self, symbol=directives.symbol,
            requested_volume=directives.volume, direction=directives.direction,
            purpose=directives.purpose, status=OrderStatus.PENDING,
            limit_price=directives.limit_price, stop_price=directives.stop_price,
            creation_date=now, last_update_date=now,
            time_in_force=directives.time_in_force)
        self._order_position_ids[order] = position_id
        if directives.is_closing:
            order._set_position(self._positions[position_id])
        else:
            # The position of an opening order only exists once it fills
            order._set_position(lambda: self._positions.get(position_id))
        self._orders.append(order)
        self.total += 1

        tick = self._last_ticks.get(directives.symbol)
        if tick is None:
            order._set_rejection_type(OrderRejectionType.MARKET_CLOSED)
            order._transition_to(OrderStatus.REJECTED)
            self.rejected += 1
            logger.warning(f"Order rejected: no quote for {directives.symbol}")
            return order

        order._assign_id(self._gen_id("order"))
        order._transition_to(OrderStatus.ACCEPTED)
        logger.info(f"Paper order: {order.id} {directives.direction.value.upper()} "
                    f"{directives.volume} {directives.symbol} ({order.execution_type.value})")
        if order.execution_type == OrderExecutionType.MARKET:
            self._fill(order, tick.ask if order.direction == OrderDirection.BUY else tick.bid)
        elif not self._try_trigger(order, tick) and directives.time_in_force in (
                OrderTimeInForce.IMMEDIATE_OR_CANCEL, OrderTimeInForce.FILL_OR_KILL):
            order._set_dates(last_update_date=now)
            order._transition_to(OrderStatus.EXPIRED)
            logger.info(f"Order {order.id} expired ({directives.time_in_force.value})")
        return order

    async def cancel_order(self, order: PaperBrokerOrder) -> None:
        if order.is_terminal:
            raise ValueError(f"Order {order.id} is already {order.status.value}")
        order._set_dates(last_update_date=datetime.now(timezone.utc))
        order._transition_to(OrderStatus.CANCELLED)
        logger.info(f"Order {order.id} cancelled")

    async def modify_order(self, order: PaperBrokerOrder, price: Optional[float] = None,
                           volume: Optional[float] = None) -> None:
        """Change a resting order's trigger price and/or volume."""
        if order.status != OrderStatus.ACCEPTED or order.execution_type == OrderExecutionType.MARKET:
            raise ValueError(f"Order {order.id} is not a resting order")
        if volume is not None and volume <= 0:
            raise ValueError(f"Order volume must be positive, got {volume}")
        if price is not None:
            order._update_pending_price(price)
        if volume is not None:
            order._update_pending_volume(volume)
        order._set_dates(last_update_date=datetime.now(timezone.utc))
        tick = self._last_ticks.get(order.symbol)
        if tick is not None:
            self._try_trigger(order, tick)

    def get_orders(self, symbol: Optional[str] = None) -> List[PaperBrokerOrder]:
        return [o for o in self._orders if symbol is None or o.symbol == symbol]

    def get_positions(self) -> List[Position]:
        return list(self._positions.values())

    def get_position(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    # ── Events ───────────────────────────────────────────────────────────

    def on(self, type: str, listener: Optional[EventListener] = None) -> Union[asyncio.Future, str]:
        return self._emitter.on(type, listener)

    def remove_event_listener(self, subscription_id: str) -> None:
        self._emitter.remove_event_listener(subscription_id)

    # ── Private ──────────────────────────────────────────────────────────

    def _resolve_position_id(self, directives: OrderDirectives) -> str:
        if directives.position_id is None:
            return self._gen_id("position")
        position = self._positions.get(directives.position_id)
        if position is None or not position.is_open:
            raise ValueError(f"No open position {directives.position_id}")
        if position.symbol != directives.symbol:
            raise ValueError(f"Position {position.id} is on {position.symbol}, not {directives.symbol}")
        if directives.is_closing:
            available = position.volume - self._resting_close_volume(position.id)
            if directives.volume > available + VOLUME_EPSILON:
                raise ValueError(f"Close volume {directives.volume} exceeds closable volume {available} "
                                 f"of position {position.id}")
        return position.id

    def _resting_close_volume(self, position_id: str) -> float:
        """Unfilled volume of accepted close orders still resting on a position."""
        return sum(
            order.requested_volume - order.filled_volume
            for order, pid in self._order_position_ids.items()
            if pid == position_id and order.is_closing and order.status == OrderStatus.ACCEPTED)

    def _try_trigger(self, order: BrokerOrder, tick: Tick) -> bool:
        buying = order.direction == OrderDirection.BUY
        if order.execution_type == OrderExecutionType.LIMIT:
            hit = tick.ask <= order.limit_price if buying else tick.bid >= order.limit_price
        else:
            hit = tick.ask >= order.stop_price if buying else tick.bid <= order.stop_price
        if hit:
            self._fill(order, tick.ask if buying else tick.bid)
        return hit

    def _fill(self, order: BrokerOrder, price: float):
        now = datetime.now(timezone.utc)
        position_id = self._order_position_ids[order]
        position = self._positions.get(position_id)
        volume = order.requested_volume - order.filled_volume
        if order.is_closing and (position is None or volume > position.volume + VOLUME_EPSILON):
            order._set_dates(last_update_date=now)
            order._transition_to(OrderStatus.EXPIRED)
            logger.warning(f"Order {order.id} expired: {volume} exceeds open volume of {position_id}")
            return
        if position is None:
            position = Position(position_id, order.symbol)
            self._positions[position_id] = position
        position._attach(order)
        order._record_deal(Deal(
            id=self._gen_id("deal"), order_id=order.id, symbol=order.symbol,
            volume=volume, direction=order.direction, purpose=order.purpose,
            status=DealStatus.EXECUTED, execution_price=price, execution_date=now,
            position_id=position_id, commission=volume * self.commission_per_unit))
        order._set_dates(last_update_date=now)
        order._transition_to(OrderStatus.EXECUTED)
        self.filled += 1
        logger.info(f"Order {order.id} executed: {volume} {order.symbol} @ {price} ({position_id})")
