"""Tests for advisors/tick_serializer.py"""
import asyncio

import pytest

from advisors.component import AdvisorComponent
from advisors.component_registry import ComponentRegistry
from advisors.tick_serializer import TickSerializer


class Recorder(AdvisorComponent):
    """Logs every hook call; suspends a few times inside on_tick."""

    def __init__(self, log, name="component", suspend=0, fail_on=None):
        super().__init__(name=name)
        self._log = log
        self._suspend = suspend
        self._fail_on = fail_on

    async def on_tick(self, tick):
        self._log.append(f"{self.name}.on_tick({tick.symbol})")
        for _ in range(self._suspend):
            await asyncio.sleep(0)
        if self._fail_on == "on_tick":
            raise RuntimeError(f"{self.name} exploded")

    async def on_late_tick(self, tick):
        self._log.append(f"{self.name}.on_late_tick({tick.symbol})")


def _serializer(log, *components, gate=lambda: True, advisor_hook=None):
    registry = ComponentRegistry()
    for component in components:
        registry.register(component)

    async def advisor_on_tick(tick):
        log.append(f"advisor.on_tick({tick.symbol})")

    return TickSerializer(registry, advisor_hook or advisor_on_tick, gate=gate)


@pytest.mark.asyncio
async def test_back_to_back_ticks_are_serialized(make_tick):
    log = []
    serializer = _serializer(log, Recorder(log, suspend=5))

    serializer.submit(make_tick(symbol="T1"))
    serializer.submit(make_tick(symbol="T2"))
    assert serializer.pending_count == 2
    await serializer.wait_idle()

    assert log == [
        "component.on_tick(T1)", "component.on_late_tick(T1)", "advisor.on_tick(T1)",
        "component.on_tick(T2)", "component.on_late_tick(T2)", "advisor.on_tick(T2)",
    ]


@pytest.mark.asyncio
async def test_many_ticks_keep_fifo_order(make_tick):
    log = []
    serializer = _serializer(log, Recorder(log, suspend=3))
    symbols = [f"S{i}" for i in range(20)]

    for symbol in symbols:
        serializer.submit(make_tick(symbol=symbol))
    await serializer.wait_idle()

    advisor_calls = [entry for entry in log if entry.startswith("advisor")]
    assert advisor_calls == [f"advisor.on_tick({s})" for s in symbols]
    assert serializer.processed_count == 20
    assert not serializer.is_processing


@pytest.mark.asyncio
async def test_all_on_tick_hooks_run_before_late_hooks(make_tick):
    log = []
    serializer = _serializer(log, Recorder(log, name="a"), Recorder(log, name="b"))

    serializer.submit(make_tick(symbol="T1"))
    await serializer.wait_idle()

    assert log == ["a.on_tick(T1)", "b.on_tick(T1)", "a.on_late_tick(T1)",
                   "b.on_late_tick(T1)", "advisor.on_tick(T1)"]


@pytest.mark.asyncio
async def test_closed_gate_drops_ticks(make_tick):
    log = []
    serializer = _serializer(log, Recorder(log), gate=lambda: False)

    accepted = serializer.submit(make_tick())
    await serializer.wait_idle()

    assert accepted is False
    assert log == []
    assert serializer.pending_count == 0
    assert serializer.dropped_count == 1


@pytest.mark.asyncio
async def test_failing_component_does_not_block_others(make_tick, log_messages):
    log = []
    serializer = _serializer(log, Recorder(log, name="bad", fail_on="on_tick"), Recorder(log, name="good"))

    serializer.submit(make_tick(symbol="T1"))
    await serializer.wait_idle()

    assert "good.on_tick(T1)" in log
    assert "bad.on_late_tick(T1)" in log
    assert log[-1] == "advisor.on_tick(T1)"
    assert any("bad exploded" in m for m in log_messages)


@pytest.mark.asyncio
async def test_failing_advisor_hook_does_not_stop_queue(make_tick):
    log = []

    async def flaky(tick):
        log.append(tick.symbol)
        if tick.symbol == "T1":
            raise ValueError("advisor failure")

    serializer = _serializer(log, advisor_hook=flaky)
    serializer.submit(make_tick(symbol="T1"))
    serializer.submit(make_tick(symbol="T2"))
    await serializer.wait_idle()

    assert log == ["T1", "T2"]
    assert serializer.processed_count == 2


@pytest.mark.asyncio
async def test_tick_submitted_from_a_handler_runs_after_current_chain(make_tick):
    log = []
    serializer = None

    async def advisor_hook(tick):
        log.append(f"start {tick.symbol}")
        if tick.symbol == "T1":
            serializer.submit(make_tick(symbol="T1-child"))
            await asyncio.sleep(0)
        log.append(f"end {tick.symbol}")

    serializer = _serializer(log, advisor_hook=advisor_hook)
    serializer.submit(make_tick(symbol="T1"))
    serializer.submit(make_tick(symbol="T2"))
    await serializer.wait_idle()

    assert log == ["start T1", "end T1", "start T2", "end T2", "start T1-child", "end T1-child"]


@pytest.mark.asyncio
async def test_serializer_restarts_after_idle(make_tick):
    log = []
    serializer = _serializer(log)

    serializer.submit(make_tick(symbol="T1"))
    await serializer.wait_idle()
    serializer.submit(make_tick(symbol="T2"))
    await serializer.wait_idle()

    assert log == ["advisor.on_tick(T1)", "advisor.on_tick(T2)"]


def test_submit_outside_event_loop_leaves_serializer_idle(make_tick):
    log = []
    serializer = _serializer(log)

    with pytest.raises(RuntimeError):
        serializer.submit(make_tick(symbol="T0"))

    assert not serializer.is_processing
    assert serializer.pending_count == 0

    async def replay():
        serializer.submit(make_tick(symbol="T1"))
        await serializer.wait_idle()

    asyncio.run(replay())
    assert log == ["advisor.on_tick(T1)"]


@pytest.mark.asyncio
async def test_processing_starts_on_next_loop_iteration(make_tick):
    log = []
    serializer = _serializer(log, Recorder(log))

    serializer.submit(make_tick(symbol="T1"))

    assert serializer.is_processing
    assert log == []
    await asyncio.sleep(0)
    assert log[0] == "component.on_tick(T1)"
    await serializer.wait_idle()
