"""Tests for execution/position_aggregator.py and execution/position.py"""
from types import SimpleNamespace

import pytest

from execution.order_models import Deal, DealStatus, OrderDirection, OrderPurpose
from execution.position import Position, PositionStatus
from execution.position_aggregator import open_positions_from, positions_from


def _filled(volume, price, opening=True, direction=OrderDirection.BUY):
    deal = Deal(id="d", order_id="o", symbol="EURUSD", volume=volume, direction=direction,
                purpose=OrderPurpose.OPEN if opening else OrderPurpose.CLOSE,
                status=DealStatus.EXECUTED, execution_price=price)
    return SimpleNamespace(is_opening=opening, direction=direction,
                           filled_volume=volume, executed_deals=[deal])


class TestPositionsFrom:
    def test_orders_of_same_position_collapse(self):
        position = Position("position_1", "EURUSD")
        orders = [SimpleNamespace(position=position), SimpleNamespace(position=position)]

        assert positions_from(orders) == [position]

    def test_distinct_positions_in_first_seen_order(self):
        first = Position("position_2", "EURUSD")
        second = Position("position_1", "GBPUSD")
        orders = [SimpleNamespace(position=first), SimpleNamespace(position=second),
                  SimpleNamespace(position=first)]

        assert positions_from(orders) == [first, second]

    def test_orders_without_position_are_skipped(self):
        position = Position("position_1", "EURUSD")
        orders = [SimpleNamespace(position=None), SimpleNamespace(position=position)]

        assert positions_from(orders) == [position]

    def test_empty(self):
        assert positions_from([]) == []


class TestPositionStatus:
    def test_open_until_fully_closed(self):
        position = Position("position_1", "EURUSD", orders=[_filled(10.0, 1.10)])
        assert position.status == PositionStatus.OPEN
        assert position.volume == pytest.approx(10.0)

        position._attach(_filled(4.0, 1.12, opening=False, direction=OrderDirection.SELL))
        assert position.is_open
        assert position.volume == pytest.approx(6.0)

        position._attach(_filled(6.0, 1.13, opening=False, direction=OrderDirection.SELL))
        assert position.status == PositionStatus.CLOSED

    def test_direction_and_open_price(self):
        position = Position("position_1", "EURUSD",
                             orders=[_filled(4.0, 1.10), _filled(6.0, 1.12)])

        assert position.direction == OrderDirection.BUY
        assert position.open_price == pytest.approx(1.112)
        assert len(position.deals) == 2

    def test_open_positions_filter(self):
        open_position = Position("position_1", "EURUSD", orders=[_filled(1.0, 1.1)])
        closed_position = Position("position_2", "EURUSD", orders=[
            _filled(1.0, 1.1), _filled(1.0, 1.2, opening=False)])

        assert open_positions_from([open_position, closed_position]) == [open_position]
