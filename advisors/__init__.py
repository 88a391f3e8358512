"""
Advisor runtime — the concurrency core between market data and strategies.

SRP split:
  component.py           — AdvisorComponent base (enable/disable + hooks)
  component_registry.py  — ordered component set, enabled snapshots, configure_all
  tick_serializer.py     — in-order, non-reentrant tick dispatch
  expert_advisor.py      — ExpertAdvisor: lifecycle, wiring, order placement
"""
