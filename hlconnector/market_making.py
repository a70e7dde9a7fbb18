"""A laddered two-sided quoting strategy with inventory skew."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from .order_book import OrderBook
from .strategy_base import StrategyConfig, TradingStrategy
from .types import (
    Fill,
    NewOrder,
    Order,
    OrderAction,
    OrderStatus,
    OrderType,
    Position,
    Side,
)

_BPS = Decimal(10000)
_PRICE_MOVE_THRESHOLD = Decimal("0.001")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MarketMakingConfig:
    base_config: StrategyConfig = field(default_factory=StrategyConfig)
    spread_bps: int = 20
    order_size: Decimal = Decimal("1.0")
    max_orders_per_side: int = 3
    inventory_target: Decimal = Decimal("0.0")
    inventory_skew_factor: Decimal = Decimal("0.1")
    min_edge_bps: int = 5
    order_refresh_interval_ms: int = 1000


class MarketMakingStrategy(TradingStrategy):
    """Quotes a ladder of bids and asks around the mid price."""

    def __init__(self, config: Optional[MarketMakingConfig] = None) -> None:
        self.config = config if config is not None else MarketMakingConfig()
        self.active_orders: dict[uuid.UUID, Order] = {}
        self.last_order_time: datetime = _utc_now() - timedelta(hours=1)
        self.last_price: Optional[Decimal] = None
        self.current_inventory: Decimal = Decimal("0.0")
        self.enabled = True

    def _should_refresh(self, current_price: Decimal) -> bool:
        elapsed = _utc_now() - self.last_order_time
        if elapsed > timedelta(milliseconds=self.config.order_refresh_interval_ms):
            return True
        if self.last_price is not None:
            change = abs(current_price - self.last_price) / self.last_price
            if change > _PRICE_MOVE_THRESHOLD:
                return True
        return False

    def _spread(self, fair_price: Decimal) -> Decimal:
        base = fair_price * Decimal(self.config.spread_bps) / _BPS
        inventory_adjustment = self.current_inventory * self.config.inventory_skew_factor
        minimum = fair_price * Decimal(self.config.min_edge_bps) / _BPS
        return max(base + abs(inventory_adjustment), minimum)

    def _quote(self, side: Side, price: Decimal, level: int) -> OrderAction:
        prefix = "mm_buy" if side is Side.BUY else "mm_sell"
        return OrderAction.place(
            NewOrder(
                symbol=self.config.base_config.symbol,
                side=side,
                order_type=OrderType.LIMIT,
                price=price,
                size=self.config.order_size,
                client_id=f"{prefix}_{level}",
            )
        )

    def _ladder(self, fair_price: Decimal, spread: Decimal) -> list[OrderAction]:
        skew = self.current_inventory * self.config.inventory_skew_factor
        half_spread = spread / Decimal("2.0")
        bid_price = fair_price - half_spread - skew
        ask_price = fair_price + half_spread - skew
        step = spread / Decimal("4.0")
        levels = range(self.config.max_orders_per_side)
        buys = [self._quote(Side.BUY, bid_price - Decimal(i) * step, i) for i in levels]
        sells = [self._quote(Side.SELL, ask_price + Decimal(i) * step, i) for i in levels]
        return buys + sells

    def _cancel_all(self) -> list[OrderAction]:
        return [OrderAction.cancel(order_id) for order_id in self.active_orders]

    def _plan(self, order_book: OrderBook) -> tuple[Optional[Decimal], list[OrderAction]]:
        if not self.enabled:
            return None, []
        fair_price = order_book.mid_price()
        if fair_price is None or not self._should_refresh(fair_price):
            return None, []
        actions = self._cancel_all()
        actions.extend(self._ladder(fair_price, self._spread(fair_price)))
        return fair_price, actions

    def generate_actions(self, order_book: OrderBook) -> list[OrderAction]:
        """The actions a market data update would produce, without changing state."""
        return self._plan(order_book)[1]

    def update_last_price(self, price: Decimal) -> None:
        self.last_price = price
        self.last_order_time = _utc_now()

    async def on_market_data(self, order_book: OrderBook) -> list[OrderAction]:
        fair_price, actions = self._plan(order_book)
        if fair_price is not None:
            self.update_last_price(fair_price)
        return actions

    async def on_order_update(self, order: Order) -> list[OrderAction]:
        if order.status in (OrderStatus.SUBMITTED, OrderStatus.PARTIALLY_FILLED):
            self.active_orders[order.id] = order
        elif order.status in (
            OrderStatus.FILLED,
            OrderStatus.CANCELLED,
            OrderStatus.REJECTED,
        ):
            self.active_orders.pop(order.id, None)
        return []

    async def on_position_update(self, position: Position) -> list[OrderAction]:
        if position.symbol == self.config.base_config.symbol:
            self.current_inventory = position.size
        return []

    async def on_fill(self, fill: Fill) -> list[OrderAction]:
        if fill.side is Side.BUY:
            self.current_inventory += fill.size
        else:
            self.current_inventory -= fill.size
        return []

    def name(self) -> str:
        return self.config.base_config.name

    def is_enabled(self) -> bool:
        return self.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if not enabled:
            self.active_orders.clear()