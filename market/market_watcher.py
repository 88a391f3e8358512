"""
MarketWatcher — owns per-symbol watch settings and market event emission.

SRP: This class's sole responsibility is turning raw broker ticks into the
     ``tick`` and ``period-close`` events advisors subscribe to.  It knows
     nothing about advisors, components or orders.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union
from loguru import logger

from events.emitter import Emitter, EventListener
from market.models import Period, Tick


@dataclass
class WatchSettings:
    watch_ticks: bool = True
    timeframes: Tuple[int, ...] = ()


@dataclass
class _PeriodBuilder:
    """Mutable OHLC accumulator for the period currently being formed."""
    start_ts: float
    open: float
    high: float
    low: float
    close: float
    tick_volume: int = 1

    def add(self, price: float):
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.tick_volume += 1

    def build(self, symbol: str, timeframe: int) -> Period:
        return Period(
            symbol=symbol, timeframe=timeframe,
            start_time=datetime.fromtimestamp(self.start_ts, tz=timezone.utc),
            open=self.open, high=self.high, low=self.low, close=self.close,
            tick_volume=self.tick_volume)


class MarketWatcher:
    """Forwards watched ticks and closes periods as ticks cross boundaries."""

    def __init__(self, broker_account=None):
        """
        Args:
            broker_account: optional account exposing ``on("tick", listener)``;
                when present its ticks are forwarded automatically.
        """
        self._broker_account = broker_account
        self._watched: Dict[str, WatchSettings] = {}
        self._builders: Dict[Tuple[str, int], _PeriodBuilder] = {}
        self._emitter = Emitter()
        self._broker_subscription: Optional[str] = None
        if broker_account is not None and hasattr(broker_account, "on"):
            self._broker_subscription = broker_account.on(
                "tick", lambda event: self.push_tick(event.descriptor["tick"]))

    # ── Watch list ───────────────────────────────────────────────────────

    def watch(self, symbol: str, watch_ticks: bool = True, timeframes: Iterable[int] = ()):
        """Start (or update) watching ``symbol``."""
        settings = WatchSettings(watch_ticks=watch_ticks, timeframes=tuple(sorted(set(timeframes))))
        if any(tf <= 0 for tf in settings.timeframes):
            raise ValueError("Timeframes must be positive numbers of seconds")
        self._watched[symbol] = settings
        logger.info(f"Watching {symbol} (ticks={watch_ticks}, timeframes={list(settings.timeframes)})")

    def unwatch(self, symbol: str):
        self._watched.pop(symbol, None)
        for key in [k for k in self._builders if k[0] == symbol]:
            del self._builders[key]

    @property
    def watched_symbols(self) -> List[str]:
        return list(self._watched)

    def is_watching(self, symbol: str) -> bool:
        return symbol in self._watched

    # ── Market data in ───────────────────────────────────────────────────

    def push_tick(self, tick: Tick):
        settings = self._watched.get(tick.symbol)
        if settings is None:
            return
        # Periods close before the tick that opens the next one is delivered
        for timeframe in settings.timeframes:
            self._update_period(tick, timeframe)
        if settings.watch_ticks:
            self._emitter.notify_listeners("tick", {"tick": tick})

    def _update_period(self, tick: Tick, timeframe: int):
        ts = tick.time.timestamp()
        boundary = int(ts // timeframe) * timeframe
        key = (tick.symbol, timeframe)
        builder = self._builders.get(key)
        if builder is None:
            self._builders[key] = _PeriodBuilder(boundary, tick.bid, tick.bid, tick.bid, tick.bid)
            return
        if boundary > builder.start_ts:
            period = builder.build(tick.symbol, timeframe)
            self._builders[key] = _PeriodBuilder(boundary, tick.bid, tick.bid, tick.bid, tick.bid)
            logger.debug(f"Period closed: {tick.symbol} {timeframe}s close={period.close}")
            self._emitter.notify_listeners("period-close", {"period": period})
        else:
            builder.add(tick.bid)

    # ── Events ───────────────────────────────────────────────────────────

    def on(self, type: str, listener: Optional[EventListener] = None) -> Union[asyncio.Future, str]:
        return self._emitter.on(type, listener)

    def remove_event_listener(self, subscription_id: str) -> None:
        self._emitter.remove_event_listener(subscription_id)

    def close(self):
        """Detach from the broker account's tick stream."""
        if self._broker_subscription and self._broker_account is not None:
            self._broker_account.remove_event_listener(self._broker_subscription)
            self._broker_subscription = None
