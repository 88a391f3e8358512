"""Tests for events/emitter.py"""
import asyncio

import pytest

from events.emitter import Emitter


def test_listener_receives_type_and_descriptor():
    emitter = Emitter()
    received = []
    emitter.on("deal", received.append)

    emitter.notify_listeners("deal", {"deal": "d1"})

    assert len(received) == 1
    assert received[0].type == "deal"
    assert received[0].descriptor == {"deal": "d1"}


def test_listener_ignores_other_types():
    emitter = Emitter()
    received = []
    emitter.on("accept", received.append)

    emitter.notify_listeners("reject")

    assert received == []


def test_removed_listener_is_not_called():
    emitter = Emitter()
    received = []
    subscription_id = emitter.on("tick", received.append)

    emitter.remove_event_listener(subscription_id)
    emitter.notify_listeners("tick")

    assert received == []
    assert emitter.listener_count() == 0


def test_failing_listener_does_not_stop_others(log_messages):
    emitter = Emitter()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    emitter.on("stop", broken)
    emitter.on("stop", received.append)
    emitter.notify_listeners("stop")

    assert len(received) == 1
    assert any("boom" in m for m in log_messages)


@pytest.mark.asyncio
async def test_future_resolves_on_next_event_then_unsubscribes():
    emitter = Emitter()
    future = emitter.on("execute")

    assert emitter.listener_count("execute") == 1
    emitter.notify_listeners("execute", {"n": 1})
    emitter.notify_listeners("execute", {"n": 2})

    event = await asyncio.wait_for(future, timeout=1)
    assert event.descriptor == {"n": 1}
    assert emitter.listener_count("execute") == 0
