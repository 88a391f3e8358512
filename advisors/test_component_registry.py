"""Tests for advisors/component_registry.py and advisors/component.py"""
import pytest

from advisors.component import AdvisorComponent
from advisors.component_registry import ComponentRegistry


class ConfigRecorder(AdvisorComponent):
    def __init__(self, name, calls, fail=False, enabled=True):
        super().__init__(name=name, enabled=enabled)
        self._calls = calls
        self._fail = fail

    async def configure(self):
        self._calls.append(self.name)
        if self._fail:
            raise RuntimeError(f"{self.name} cannot configure")


def test_enabled_components_keep_registration_order():
    registry = ComponentRegistry()
    a, b, c = AdvisorComponent(name="a"), AdvisorComponent(name="b"), AdvisorComponent(name="c")
    for component in (a, b, c):
        registry.register(component)

    b.disable()

    assert registry.enabled_components == [a, c]
    assert registry.components == [a, b, c]


def test_enabled_components_is_a_snapshot():
    registry = ComponentRegistry()
    a = AdvisorComponent(name="a")
    registry.register(a)

    snapshot = registry.enabled_components
    a.disable()

    assert snapshot == [a]
    assert registry.enabled_components == []


def test_duplicate_registration_is_ignored():
    registry = ComponentRegistry()
    a = AdvisorComponent(name="a")

    registry.register(a)
    registry.register(a)

    assert len(registry) == 1


def test_component_defaults():
    component = AdvisorComponent(advisor="adv")

    assert component.name == "AdvisorComponent"
    assert component.advisor == "adv"
    assert component.enabled
    component.disable()
    component.enable()
    assert component.enabled


@pytest.mark.asyncio
async def test_configure_all_isolates_failures(log_messages):
    calls = []
    registry = ComponentRegistry()
    registry.register(ConfigRecorder("first", calls, fail=True))
    registry.register(ConfigRecorder("skipped", calls, enabled=False))
    registry.register(ConfigRecorder("second", calls))

    await registry.configure_all()

    assert calls == ["first", "second"]
    assert any("first cannot configure" in m for m in log_messages)
