import asyncio
import uuid
from decimal import Decimal

import pytest

from hlconnector.order_book import OrderBook
from hlconnector.strategy_base import StrategyConfig, TradingStrategy
from hlconnector.types import Fill, OrderAction, RiskLimits, Side


class _Echo(TradingStrategy):
    def __init__(self):
        self.enabled = True
        self.fills = []

    async def on_market_data(self, order_book):
        return [OrderAction.cancel(uuid.UUID(int=order_book.sequence))]

    async def on_order_update(self, order):
        return []

    async def on_position_update(self, position):
        return []

    async def on_fill(self, fill):
        self.fills.append(fill)
        return []

    def name(self):
        return "echo"

    def is_enabled(self):
        return self.enabled

    def set_enabled(self, enabled):
        self.enabled = enabled


def test_config_defaults():
    config = StrategyConfig()
    assert config.name == "base_strategy"
    assert config.enabled is False
    assert config.symbol == "HYPE"
    assert config.risk_limits == RiskLimits()


def test_abstract_cannot_instantiate():
    with pytest.raises(TypeError):
        TradingStrategy()


def test_subclass_is_usable():
    strategy = _Echo()
    actions = asyncio.run(strategy.on_market_data(OrderBook("HYPE")))
    assert actions[0].order_id == uuid.UUID(int=0)
    fill = Fill(uuid.uuid4(), "HYPE", Side.BUY, Decimal("1"), Decimal("1"))
    assert asyncio.run(strategy.on_fill(fill)) == []
    assert strategy.fills == [fill]
    strategy.set_enabled(False)
    assert strategy.is_enabled() is False