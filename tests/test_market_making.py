import asyncio
import uuid
from datetime import timedelta
from decimal import Decimal

from hlconnector.market_making import MarketMakingConfig, MarketMakingStrategy
from hlconnector.order_book import OrderBook
from hlconnector.types import (
    Fill,
    Order,
    OrderActionType,
    OrderStatus,
    OrderType,
    Position,
    Side,
)


def make_book(bid="99", ask="101"):
    return OrderBook(
        symbol="HYPE",
        bids={Decimal(bid): Decimal("1")},
        asks={Decimal(ask): Decimal("1")},
    )


def make_order(status):
    return Order(
        id=uuid.uuid4(),
        symbol="HYPE",
        side=Side.BUY,
        order_type=OrderType.LIMIT,
        price=Decimal("99"),
        size=Decimal("1"),
        status=status,
    )


def prices(actions, side):
    return [a.order.price for a in actions if a.order is not None and a.order.side is side]


def test_default_config_values():
    config = MarketMakingConfig()
    assert config.spread_bps == 20
    assert config.max_orders_per_side == 3
    assert config.order_refresh_interval_ms == 1000
    assert config.base_config.symbol == "HYPE"


def test_generates_ladder_on_both_sides():
    strategy = MarketMakingStrategy()
    actions = strategy.generate_actions(make_book())
    assert len(actions) == 2 * strategy.config.max_orders_per_side
    assert all(a.action_type is OrderActionType.PLACE for a in actions)
    assert [a.order.client_id for a in actions] == [
        "mm_buy_0", "mm_buy_1", "mm_buy_2", "mm_sell_0", "mm_sell_1", "mm_sell_2",
    ]
    assert all(a.order.size == strategy.config.order_size for a in actions)


def test_ladder_is_symmetric_and_evenly_stepped():
    strategy = MarketMakingStrategy()
    book = make_book()
    actions = strategy.generate_actions(book)
    bids, asks = prices(actions, Side.BUY), prices(actions, Side.SELL)
    assert bids == sorted(bids, reverse=True)
    assert asks == sorted(asks)
    assert (bids[0] + asks[0]) / 2 == book.mid_price()
    spread = asks[0] - bids[0]
    assert asks[1] - asks[0] == spread / 4
    assert bids[0] - bids[1] == spread / 4


def test_generate_actions_does_not_change_state():
    strategy = MarketMakingStrategy()
    strategy.generate_actions(make_book())
    assert strategy.last_price is None
    assert strategy.generate_actions(make_book()) != []


def test_minimum_edge_sets_floor_on_spread():
    floor = MarketMakingStrategy(MarketMakingConfig(spread_bps=0, min_edge_bps=5))
    plain = MarketMakingStrategy(MarketMakingConfig(spread_bps=5, min_edge_bps=0))
    a = floor.generate_actions(make_book())
    b = plain.generate_actions(make_book())
    assert prices(a, Side.BUY) == prices(b, Side.BUY)
    assert prices(a, Side.SELL) == prices(b, Side.SELL)


def test_long_inventory_skews_quotes_down_and_widens():
    neutral = MarketMakingStrategy()
    long = MarketMakingStrategy()
    long.current_inventory = Decimal("2")
    book = make_book()
    n = neutral.generate_actions(book)
    l = long.generate_actions(book)
    assert prices(l, Side.BUY)[0] < prices(n, Side.BUY)[0]
    assert (prices(l, Side.BUY)[0] + prices(l, Side.SELL)[0]) / 2 < book.mid_price()
    assert prices(l, Side.SELL)[0] - prices(l, Side.BUY)[0] > prices(n, Side.SELL)[0] - prices(n, Side.BUY)[0]


def test_empty_book_produces_nothing():
    strategy = MarketMakingStrategy()
    assert strategy.generate_actions(OrderBook(symbol="HYPE")) == []


def test_disabled_strategy_produces_nothing():
    strategy = MarketMakingStrategy()
    strategy.set_enabled(False)
    assert strategy.is_enabled() is False
    assert asyncio.run(strategy.on_market_data(make_book())) == []


def test_market_data_records_price_and_throttles():
    strategy = MarketMakingStrategy()
    book = make_book()
    first = asyncio.run(strategy.on_market_data(book))
    assert first
    assert strategy.last_price == book.mid_price()
    assert asyncio.run(strategy.on_market_data(book)) == []


def test_price_move_triggers_refresh():
    strategy = MarketMakingStrategy()
    asyncio.run(strategy.on_market_data(make_book()))
    moved = asyncio.run(strategy.on_market_data(make_book("101", "103")))
    assert len(moved) == 2 * strategy.config.max_orders_per_side


def test_elapsed_time_triggers_refresh():
    strategy = MarketMakingStrategy()
    asyncio.run(strategy.on_market_data(make_book()))
    strategy.last_order_time -= timedelta(seconds=5)
    assert asyncio.run(strategy.on_market_data(make_book())) != []
    assert strategy.generate_actions(make_book()) == []


def test_active_orders_are_cancelled_before_requote():
    strategy = MarketMakingStrategy()
    order = make_order(OrderStatus.SUBMITTED)
    asyncio.run(strategy.on_order_update(order))
    actions = strategy.generate_actions(make_book())
    assert actions[0].action_type is OrderActionType.CANCEL
    assert actions[0].order_id == order.id
    assert len(actions) == 1 + 2 * strategy.config.max_orders_per_side


def test_order_updates_track_active_orders():
    strategy = MarketMakingStrategy()
    order = make_order(OrderStatus.PARTIALLY_FILLED)
    asyncio.run(strategy.on_order_update(order))
    assert order.id in strategy.active_orders
    order.status = OrderStatus.FILLED
    assert asyncio.run(strategy.on_order_update(order)) == []
    assert order.id not in strategy.active_orders
    pending = make_order(OrderStatus.PENDING)
    asyncio.run(strategy.on_order_update(pending))
    assert pending.id not in strategy.active_orders


def test_disabling_clears_active_orders():
    strategy = MarketMakingStrategy()
    asyncio.run(strategy.on_order_update(make_order(OrderStatus.SUBMITTED)))
    strategy.set_enabled(False)
    assert strategy.active_orders == {}


def test_fills_move_inventory():
    strategy = MarketMakingStrategy()
    buy = Fill(order_id=uuid.uuid4(), symbol="HYPE", side=Side.BUY,
               price=Decimal("100"), size=Decimal("3"))
    sell = Fill(order_id=uuid.uuid4(), symbol="HYPE", side=Side.SELL,
                price=Decimal("100"), size=Decimal("3"))
    asyncio.run(strategy.on_fill(buy))
    assert strategy.current_inventory == buy.size
    asyncio.run(strategy.on_fill(sell))
    assert strategy.current_inventory == 0


def test_position_update_only_for_own_symbol():
    strategy = MarketMakingStrategy()
    other = Position(symbol="BTC", size=Decimal("7"), entry_price=Decimal("1"), mark_price=Decimal("1"))
    mine = Position(symbol="HYPE", size=Decimal("4"), entry_price=Decimal("1"), mark_price=Decimal("1"))
    asyncio.run(strategy.on_position_update(other))
    assert strategy.current_inventory == 0
    asyncio.run(strategy.on_position_update(mine))
    assert strategy.current_inventory == mine.size


def test_name_comes_from_base_config():
    strategy = MarketMakingStrategy()
    assert strategy.name() == "base_strategy"