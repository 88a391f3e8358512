"""
TickSerializer — in-order, non-reentrant tick dispatch for one advisor.

SRP: This class's sole responsibility is making sure ticks reach the
     component hooks and the advisor hook one at a time, in arrival order.

It is a self-draining queue, not a lock:

  submit(T)  idle  → queue T, start a drain task
             busy  → queue T, return
  drain            → while queue: pop oldest, run its handler chain

Handler chain for one tick:
  1. on_tick       of every enabled component, one after another
  2. on_late_tick  of every enabled component, one after another
  3. the advisor's own on_tick
Each call is guarded; a failing handler is logged and the chain continues.
"""
from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, Optional
from loguru import logger

from advisors.component_registry import ComponentRegistry, component_name
from market.models import Tick

TickHandler = Callable[[Tick], Awaitable[None]]


class TickSerializer:
    """Queue + single drain task guaranteeing at most one tick in flight."""

    def __init__(self, registry: ComponentRegistry, advisor_hook: TickHandler,
                 gate: Callable[[], bool] = lambda: True):
        """
        Args:
            registry: components whose hooks run first for every tick
            advisor_hook: the advisor's own tick handler, run last
            gate: ticks submitted while it returns False are dropped
        """
        self._registry = registry
        self._advisor_hook = advisor_hook
        self._gate = gate
        self._pending: Deque[Tick] = deque()
        self._processing = False
        self._task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.processed_count = 0
        self.dropped_count = 0

    # ── Public API ───────────────────────────────────────────────────────

    def submit(self, tick: Tick) -> bool:
        """Queue a tick without blocking. Returns False if it was dropped."""
        if not self._gate():
            self.dropped_count += 1
            logger.debug(f"Tick dropped, advisor not operative: {tick.symbol} @ {tick.time}")
            return False
        # Raises before any state changes when called outside a running loop
        loop = None if self._processing else asyncio.get_running_loop()
        self._pending.append(tick)
        if loop is not None:
            self._processing = True
            self._idle.clear()
            # The drain starts on the next loop iteration, not inside submit()
            self._task = loop.create_task(self._drain())
        return True

    async def wait_idle(self) -> None:
        """Resolve once every submitted tick has been fully processed."""
        await self._idle.wait()

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ── Private ──────────────────────────────────────────────────────────

    async def _drain(self):
        try:
            while self._pending:
                await self._process(self._pending.popleft())
        finally:
            self._processing = False
            self._task = None
            self._idle.set()

    async def _process(self, tick: Tick):
        for component in self._registry.enabled_components:
            await self._guarded(component.on_tick, tick, f"{component_name(component)}.on_tick")
        for component in self._registry.enabled_components:
            await self._guarded(component.on_late_tick, tick, f"{component_name(component)}.on_late_tick")
        await self._guarded(self._advisor_hook, tick, "advisor.on_tick")
        self.processed_count += 1

    @staticmethod
    async def _guarded(handler: TickHandler, tick: Tick, label: str):
        try:
            await handler(tick)
        except Exception as e:
            logger.error(f"{label} failed for {tick.symbol} @ {tick.time}: {e}")
