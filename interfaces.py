"""
Protocol interfaces for dependency injection (DIP — Dependency Inversion Principle).

The advisor runtime depends on these abstractions, not on concrete brokers,
watchers or components.  This allows swapping live ↔ paper ↔ mock without
touching the runtime.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


# ── Eventing ─────────────────────────────────────────────────────────────────

@runtime_checkable
class IEventSource(Protocol):
    """Anything exposing the callback / one-shot-future subscription pair."""

    def on(self, type: str, listener: Optional[Any] = None) -> Any: ...

    def remove_event_listener(self, subscription_id: str) -> None: ...


# ── Market data ──────────────────────────────────────────────────────────────

@runtime_checkable
class IMarketWatcher(IEventSource, Protocol):
    """Emits ``tick {tick}`` and ``period-close {period}`` events."""

    def watch(self, symbol: str, watch_ticks: bool = True, timeframes: Any = ()) -> None: ...


# ── Broker ───────────────────────────────────────────────────────────────────

@runtime_checkable
class IBrokerAccount(Protocol):
    """Places orders; everything else a broker offers is strategy-level."""

    async def place_order(self, directives: Any) -> Any: ...


# ── Advisor components ───────────────────────────────────────────────────────

@runtime_checkable
class IAdvisorComponent(Protocol):
    """A pluggable unit of per-tick behaviour attached to an advisor."""

    @property
    def enabled(self) -> bool: ...

    async def configure(self) -> None: ...

    async def on_tick(self, tick: Any) -> None: ...

    async def on_late_tick(self, tick: Any) -> None: ...
