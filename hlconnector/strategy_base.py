"""The interface shared by trading strategies and their base settings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .order_book import OrderBook
from .types import Fill, Order, OrderAction, Position, RiskLimits


@dataclass
class StrategyConfig:
    name: str = "base_strategy"
    enabled: bool = False
    symbol: str = "HYPE"
    risk_limits: RiskLimits = field(default_factory=RiskLimits)


class TradingStrategy(ABC):
    """A strategy reacts to market and account updates with order actions."""

    @abstractmethod
    async def on_market_data(self, order_book: OrderBook) -> list[OrderAction]:
        ...

    @abstractmethod
    async def on_order_update(self, order: Order) -> list[OrderAction]:
        ...

    @abstractmethod
    async def on_position_update(self, position: Position) -> list[OrderAction]:
        ...

    @abstractmethod
    async def on_fill(self, fill: Fill) -> list[OrderAction]:
        ...

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def is_enabled(self) -> bool:
        ...

    @abstractmethod
    def set_enabled(self, enabled: bool) -> None:
        ...