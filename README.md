# hlconnector

Building blocks for a market-making bot on a perpetuals exchange. Everything
runs in one Python process and needs only the standard library. Prices and
sizes are `decimal.Decimal` throughout.

## What it contains

- `hlconnector.types`: `Side`, `OrderStatus`, `OrderType`, `OrderActionType`,
  and the dataclasses `Order`, `Position`, `Fill`, `NewOrder`, `OrderAction`
  (with `OrderAction.place` and `OrderAction.cancel`) and `RiskLimits`.
- `hlconnector.hl_msgs`: the L2 book message (`TobMsg`, `OrderBookData`,
  `PriceLevel`). Each has `from_dict` / `to_dict`, which raise `ValueError` on
  malformed input. `OrderBookData` also has `top_of_book()` and
  `generate_id()`.
- `hlconnector.order_book`: `OrderBook`, a bid/ask book keyed by price.
  `update_from_tob` replaces its contents from a snapshot and skips levels that
  do not parse. It also has `best_bid`, `best_ask`, `mid_price`, `spread`,
  `spread_bps`, `volume_weighted_mid` and `get_depth`.
- `hlconnector.order_manager`: `OrderManager`. It tracks orders by id and
  symbol, queues cancel actions (`drain_pending_actions`) and reports counts
  and exposure. Changes are put on its `events` queue as `OrderPlaced`,
  `OrderUpdated`, `OrderCancelled` and `OrderFilled`.
- `hlconnector.position_manager`: `PositionManager`. `process_fill` keeps
  weighted entry prices, realized and unrealized PnL and fees.
  `check_risk_limits` raises `RiskLimitError` when an order would break a
  limit. Changes are put on its `events` queue as `PositionUpdated`,
  `FillProcessed` and `PnlRealized`.
- `hlconnector.risk_manager`: `RiskManager`. It holds position, exposure and
  volatility limits and circuit breakers. `check_order_risk` raises
  `OrderRiskError`. Breaches go on its `events` queue as `LimitExceeded` and
  `CircuitBreakerTriggered`. It also has `risk_score` (capped at 100) and daily
  resets, either by hand with `reset_daily_metrics` / `reset_if_due`, or on a
  background thread with `start_daily_reset_timer` / `stop_daily_reset_timer`.
- `hlconnector.strategy_base`: the `TradingStrategy` interface, whose event
  handlers are coroutines, and `StrategyConfig`.
- `hlconnector.market_making`: `MarketMakingStrategy`, which places a ladder of
  quotes around the mid price and skews them by inventory. Its settings are in
  `MarketMakingConfig`. `generate_actions` works out the actions without
  changing state. `await on_market_data(...)` also records the price and time.
- `hlconnector.event_types`: system events (`MarketDataEvent`,
  `OrderNotification`, `PositionNotification`, `StrategyNotification`,
  `ConnectionNotification`, `RiskNotification`, `SystemNotification`). Each has
  a `priority()`, a `source()` and the `topics()` it is delivered to.
- `hlconnector.event_bus`: `EventBus`. It keeps a bounded queue for each
  priority, applies optional `TopicFilter`s, and runs worker threads that copy
  events to subscriber queues (`subscribe("*")`, `subscribe("market_data.HYPE")`
  and so on). `publish` raises `EventBusFull` or `EventBusClosed`, and
  `metrics()` returns counters and queue lengths.
- `hlconnector.app`: `TradingApp`, which wires these parts together, reads the
  queued events in `process_events()` and keeps a log of at most 1000 entries.
  It also holds the manual order form (`ManualOrderState`).
- `hlconnector.views`: functions that turn the state into text and colours for
  display, such as `order_book_rows`, `order_table_rows`, `positions_rows`,
  `positions_summary`, `log_lines` and `connection_status_text`.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from decimal import Decimal

from hlconnector.hl_msgs import OrderBookData, PriceLevel
from hlconnector.order_book import OrderBook
from hlconnector.market_making import MarketMakingConfig, MarketMakingStrategy

book = OrderBook("HYPE")
book.update_from_tob(OrderBookData(
    coin="HYPE",
    time=1,
    levels=[[PriceLevel("99.9", "5", 1)], [PriceLevel("100.1", "4", 1)]],
))
print(book.mid_price())            # Decimal('100.0')

strategy = MarketMakingStrategy(MarketMakingConfig())
for action in strategy.generate_actions(book):
    print(action.action_type.value, action.order.side.value, action.order.price)
```

## The application state

```python
from hlconnector.app import TradingApp
from hlconnector.types import Side

with TradingApp() as app:          # starts the event bus and stops it on exit
    app.manual_order.price = "100"
    app.manual_order.size = "1"
    order_id = app.place_manual_order(Side.BUY)
    app.process_events()
    print(app.logs[-1].message)    # "Order placed: <id> - Buy 1 @ 100"
```

## What it does not do

- It has no connection to an exchange. Nothing here opens a websocket,
  subscribes to book updates or sends orders. Market data has to be fed in as
  `TobMsg` / `OrderBookData` objects, for example through a `MarketDataEvent`
  on the bus. Order actions are only queued or returned for some other code to
  execute.
- It draws no screen. `hlconnector.views` only produces rows and labels that a
  user interface could show.
- It installs no command; it is used as a library.
- It stores nothing. All state is in memory.