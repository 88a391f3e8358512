"""
Execution layer — orders, deals, positions, and the paper broker.

SRP split:
  order_models.py         — enums, Deal, OrderDirectives
  broker_order.py         — order state machine and derived fill facts
  position.py             — Position plus eager/lazy position references
  position_aggregator.py  — positions derived from filled orders
  paper_broker.py         — in-memory broker account for replay and tests
"""
