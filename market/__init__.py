"""
Market data layer — ticks, periods, and the watcher that emits them.

  models.py          — Tick + Period value objects
  market_watcher.py  — per-symbol tick forwarding and period aggregation
  tick_loader.py     — CSV tick replay source
"""
