"""
ExpertAdvisor — the long-lived owner of an account, its orders and components.

SRP: Composition and lifecycle only.  Tick ordering lives in TickSerializer,
     component bookkeeping in ComponentRegistry, order state in BrokerOrder,
     position views in position_aggregator.  Concrete strategies subclass
     this and implement ``configure`` plus whichever hooks they need.

Lifecycle:
  start()  first call configures (components → advisor → watcher listeners),
           then operative, then on_start, then ``start`` event
  stop()   not operative, then on_stop, then ``stop`` event (always)
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set, Union
from loguru import logger

from advisors.component_registry import ComponentRegistry
from advisors.tick_serializer import TickSerializer
from config import get_config
from events.emitter import Emitter, EventListener
from execution.broker_order import BrokerOrder
from execution.order_models import Deal, OrderDirectives, OrderStatus
from execution.position import Position
from execution.position_aggregator import open_positions_from, positions_from
from interfaces import IAdvisorComponent, IBrokerAccount, IMarketWatcher
from market.market_watcher import MarketWatcher
from market.models import Period, Tick


class ExpertAdvisor(ABC):
    """Base class for automated strategies driven by market events."""

    def __init__(self, broker_account: IBrokerAccount,
                 market_watcher: Optional[IMarketWatcher] = None,
                 captured_ticks_maxlen: Optional[int] = None):
        maxlen = captured_ticks_maxlen or get_config().advisor.captured_ticks_maxlen
        self._broker_account = broker_account
        self._is_operative = False
        self._is_configured = False
        self._orders: List[BrokerOrder] = []
        self._captured_ticks: Deque[Tick] = deque(maxlen=maxlen)
        self._market_watcher = market_watcher or MarketWatcher(broker_account)
        self._components = ComponentRegistry()
        self._tick_serializer = TickSerializer(
            self._components, lambda tick: self.on_tick(tick),
            gate=lambda: self._is_operative)
        self._period_tasks: Set[asyncio.Task] = set()
        self._emitter = Emitter()

    # ── State ────────────────────────────────────────────────────────────

    @property
    def broker_account(self) -> IBrokerAccount:
        return self._broker_account

    @property
    def is_operative(self) -> bool:
        return self._is_operative

    @property
    def orders(self) -> List[BrokerOrder]:
        return list(self._orders)

    @property
    def captured_ticks(self) -> List[Tick]:
        return list(self._captured_ticks)

    @property
    def market_watcher(self) -> IMarketWatcher:
        return self._market_watcher

    @property
    def tick_serializer(self) -> TickSerializer:
        return self._tick_serializer

    @property
    def components(self) -> List[IAdvisorComponent]:
        return self._components.components

    @property
    def enabled_components(self) -> List[IAdvisorComponent]:
        return self._components.enabled_components

    @property
    def filled_orders(self) -> List[BrokerOrder]:
        return [o for o in self._orders if o.status == OrderStatus.EXECUTED]

    @property
    def filled_orders_deals(self) -> List[Deal]:
        deals: List[Deal] = []
        for order in self.filled_orders:
            deals.extend(order.deals)
        return deals

    @property
    def positions(self) -> List[Position]:
        return positions_from(self.filled_orders)

    @property
    def open_positions(self) -> List[Position]:
        return open_positions_from(self.positions)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._is_operative:
            return
        if not self._is_configured:
            await self._configure()
            self._is_configured = True
        self._is_operative = True
        logger.info(f"{type(self).__name__} started")
        try:
            await self.on_start()
        except Exception as e:
            logger.error(f"{type(self).__name__}.on_start failed: {e}")
            return
        self._notify_listeners("start")

    async def stop(self) -> None:
        if not self._is_operative:
            return
        self._is_operative = False
        logger.info(f"{type(self).__name__} stopped")
        try:
            await self.on_stop()
        except Exception as e:
            logger.error(f"{type(self).__name__}.on_stop failed: {e}")
        self._notify_listeners("stop")

    async def wait_until_idle(self) -> None:
        """Wait for queued ticks and running period-close hooks to finish."""
        await self._tick_serializer.wait_idle()
        if self._period_tasks:
            await asyncio.gather(*list(self._period_tasks))

    # ── Components ───────────────────────────────────────────────────────

    def add_component(self, component: IAdvisorComponent) -> None:
        self._components.register(component)

    # ── Orders ───────────────────────────────────────────────────────────

    async def place_order(self, directives: OrderDirectives) -> BrokerOrder:
        """Place through the broker account; broker errors propagate."""
        order = await self._broker_account.place_order(directives)
        self._add_order(order)
        return order

    def _add_order(self, order: BrokerOrder) -> None:
        self._orders.append(order)

    # ── Events ───────────────────────────────────────────────────────────

    def on(self, type: str, listener: Optional[EventListener] = None) -> Union[asyncio.Future, str]:
        return self._emitter.on(type, listener)

    def remove_event_listener(self, subscription_id: str) -> None:
        self._emitter.remove_event_listener(subscription_id)

    def _notify_listeners(self, type: str, descriptor: Optional[Dict[str, Any]] = None) -> None:
        self._emitter.notify_listeners(type, descriptor)

    # ── Hooks ────────────────────────────────────────────────────────────

    @abstractmethod
    async def configure(self) -> None:
        """One-time setup, run on the first start()."""

    async def on_start(self) -> None:
        pass

    async def on_tick(self, tick: Tick) -> None:
        pass

    async def on_period_close(self, period: Period) -> None:
        pass

    async def on_stop(self) -> None:
        pass

    # ── Private ──────────────────────────────────────────────────────────

    async def _configure(self):
        await self._components.configure_all()
        try:
            await self.configure()
        except Exception as e:
            logger.error(f"{type(self).__name__}.configure failed: {e}")
        self._market_watcher.on("tick", lambda event: self._on_tick(event.descriptor["tick"]))
        self._market_watcher.on("period-close", lambda event: self._on_period_close(event.descriptor["period"]))
        logger.info(f"{type(self).__name__} configured with {len(self._components)} component(s)")

    def _on_tick(self, tick: Tick):
        if self._tick_serializer.submit(tick):
            self._captured_ticks.append(tick)

    def _on_period_close(self, period: Period):
        if not self._is_operative:
            return
        task = asyncio.get_running_loop().create_task(self._run_period_close(period))
        self._period_tasks.add(task)
        task.add_done_callback(self._period_tasks.discard)

    async def _run_period_close(self, period: Period):
        try:
            await self.on_period_close(period)
        except Exception as e:
            logger.error(f"{type(self).__name__}.on_period_close failed: {e}")
