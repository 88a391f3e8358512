"""
ComponentRegistry — owns the ordered set of an advisor's components.

SRP: Registration and enabled-filtering only.  Every access to
     ``enabled_components`` is a fresh snapshot, so a component toggled
     mid-tick takes effect from the next phase on.
"""
from __future__ import annotations

from typing import List
from loguru import logger

from interfaces import IAdvisorComponent


def component_name(component) -> str:
    return getattr(component, "name", None) or type(component).__name__


class ComponentRegistry:
    """Stable, registration-ordered list of components."""

    def __init__(self):
        self._components: List[IAdvisorComponent] = []

    def register(self, component: IAdvisorComponent) -> None:
        if any(c is component for c in self._components):
            logger.debug(f"Component already registered: {component_name(component)}")
            return
        self._components.append(component)
        logger.info(f"Component registered: {component_name(component)}")

    @property
    def components(self) -> List[IAdvisorComponent]:
        return list(self._components)

    @property
    def enabled_components(self) -> List[IAdvisorComponent]:
        return [c for c in self._components if c.enabled]

    def __len__(self):
        return len(self._components)

    async def configure_all(self) -> None:
        """Run each enabled component's one-time configure hook, in order."""
        for component in self.enabled_components:
            try:
                await component.configure()
            except Exception as e:
                logger.error(f"Component {component_name(component)} configure failed: {e}")
