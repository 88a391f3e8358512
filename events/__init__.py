"""
Eventing primitives shared by advisors, orders and market watchers.

  emitter.py   — Event record + Emitter (callback and one-shot future subscriptions)
"""
