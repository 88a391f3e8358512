"""
Emitter — owns one subscription registry per stateful entity.

SRP: This class's sole responsibility is listener bookkeeping and dispatch.
     Two kinds of subscription share one registry:
       on(type, listener) → persistent callback, returns a subscription id
       on(type)           → asyncio.Future resolved by the next matching event,
                            unsubscribed as soon as it fires
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union
from loguru import logger


@dataclass(frozen=True)
class Event:
    """A single notification delivered to listeners."""
    type: str
    descriptor: Dict[str, Any] = field(default_factory=dict)
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventListener = Callable[[Event], Any]


@dataclass
class _Subscription:
    type: str
    listener: Optional[EventListener] = None
    future: Optional[asyncio.Future] = None


class Emitter:
    """Per-entity registry of event listeners."""

    def __init__(self):
        self._subscriptions: Dict[str, _Subscription] = {}

    # ── Public API ───────────────────────────────────────────────────────

    def on(self, type: str, listener: Optional[EventListener] = None) -> Union[asyncio.Future, str]:
        """Subscribe a persistent listener, or await the next ``type`` event."""
        if listener is None:
            future = asyncio.get_running_loop().create_future()
            self._subscriptions[str(uuid.uuid4())] = _Subscription(type=type, future=future)
            return future

        subscription_id = str(uuid.uuid4())
        self._subscriptions[subscription_id] = _Subscription(type=type, listener=listener)
        return subscription_id

    def remove_event_listener(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    def notify_listeners(self, type: str, descriptor: Optional[Dict[str, Any]] = None) -> None:
        """Deliver an event to every subscription registered for ``type``."""
        event = Event(type=type, descriptor=dict(descriptor or {}))
        for subscription_id, subscription in list(self._subscriptions.items()):
            if subscription.type != type:
                continue
            if subscription.future is not None:
                self._subscriptions.pop(subscription_id, None)
                if not subscription.future.done():
                    subscription.future.set_result(event)
                continue
            try:
                subscription.listener(event)
            except Exception as e:
                logger.error(f"Listener for '{type}' failed: {e}")

    def listener_count(self, type: Optional[str] = None) -> int:
        if type is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions.values() if s.type == type)
