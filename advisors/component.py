"""
AdvisorComponent — base class for pluggable strategy sub-modules.

Subclasses override only the hooks they need; every hook is awaited by the
advisor and may suspend.
"""
from __future__ import annotations

from typing import Optional
from loguru import logger

from market.models import Tick


class AdvisorComponent:
    """Named, independently enabled unit of per-tick behaviour."""

    def __init__(self, advisor=None, name: Optional[str] = None, enabled: bool = True):
        self._advisor = advisor
        self._name = name or type(self).__name__
        self._enabled = enabled

    @property
    def advisor(self):
        return self._advisor

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self):
        if not self._enabled:
            self._enabled = True
            logger.info(f"Component enabled: {self._name}")

    def disable(self):
        if self._enabled:
            self._enabled = False
            logger.info(f"Component disabled: {self._name}")

    async def configure(self) -> None:
        pass

    async def on_tick(self, tick: Tick) -> None:
        pass

    async def on_late_tick(self, tick: Tick) -> None:
        pass

    def __repr__(self):
        return f"{type(self).__name__}(name={self._name!r}, enabled={self._enabled})"
