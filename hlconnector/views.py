"""Display models for the trading screens: labels, colours and table rows."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .app import ConnectionState, ConnectionStatus, LogEntry, LogLevel
from .order_book import OrderBook
from .position_manager import PositionManager
from .types import Order, Side

_ERROR_TEXT_LIMIT = 30
DEFAULT_LOG_LIMIT = 100
DEFAULT_BOOK_LEVELS = 10
VWAP_DEPTH = 5


@dataclass(frozen=True)
class Color:
    """An RGBA colour."""

    r: int
    g: int
    b: int
    a: int = 255


GREEN = Color(40, 167, 69)
RED = Color(220, 53, 69)
YELLOW = Color(255, 193, 7)
BLUE = Color(23, 162, 184)
GREY = Color(108, 117, 125)
DEFAULT_COLOR = Color(0, 0, 0, 0)

ORDER_TABLE_HEADER = ("Side", "Price", "Size", "Filled", "Status", "Action")
ORDER_BOOK_HEADER = ("Size", "Price", "Side")
POSITIONS_HEADER = (
    "Symbol",
    "Size",
    "Entry Price",
    "Mark Price",
    "Unrealized PnL",
    "Value",
)

_LEVEL_STYLE = {
    LogLevel.INFO: ("INFO", BLUE),
    LogLevel.WARNING: ("WARN", YELLOW),
    LogLevel.ERROR: ("ERROR", RED),
    LogLevel.DEBUG: ("DEBUG", GREY),
}


def _fixed(value: Decimal, places: int) -> str:
    return f"{value:.{places}f}"


def _side_color(side: Side) -> Color:
    return GREEN if side is Side.BUY else RED


def _sign_color(value: Decimal) -> Color:
    return GREEN if value >= 0 else RED


def connection_status_text(status: ConnectionStatus) -> str:
    """The status label; error messages are cut to their first 30 characters."""
    if status.state is ConnectionState.CONNECTED:
        return "🟢 Connected"
    if status.state is ConnectionState.CONNECTING:
        return "🟡 Connecting"
    if status.state is ConnectionState.DISCONNECTED:
        return "🔴 Disconnected"
    error = status.error or ""
    return f"❌ Error: {error[:_ERROR_TEXT_LIMIT]}"


def connection_status_color(status: ConnectionStatus) -> Color:
    if status.state is ConnectionState.CONNECTED:
        return GREEN
    if status.state is ConnectionState.CONNECTING:
        return YELLOW
    return RED


def format_price(price: Decimal, precision: int) -> str:
    """A dollar amount with a fixed number of decimal places."""
    return f"${_fixed(price, precision)}"


def price_color(price: Decimal, reference_price: Optional[Decimal]) -> Color:
    """Green above the reference, red below, the default colour otherwise."""
    if reference_price is None:
        return DEFAULT_COLOR
    if price > reference_price:
        return GREEN
    if price < reference_price:
        return RED
    return DEFAULT_COLOR


def order_table_rows(orders: Iterable[Order]) -> list[dict]:
    """One row per order; ``cancellable`` marks orders that are still active."""
    return [
        {
            "side": order.side.value,
            "side_color": _side_color(order.side),
            "price": _fixed(order.price, 4),
            "size": _fixed(order.size, 4),
            "filled": _fixed(order.filled_size, 4),
            "status": order.status.value,
            "cancellable": order.is_active(),
        }
        for order in orders
    ]


def log_lines(logs: Iterable[LogEntry], limit: int = DEFAULT_LOG_LIMIT) -> list[dict]:
    """The most recent log entries, newest first, at most ``limit`` of them."""
    lines = []
    for entry in reversed(list(logs)):
        if len(lines) >= limit:
            break
        stamp = entry.timestamp
        clock = f"{stamp:%H:%M:%S}.{stamp.microsecond // 1000:03d}"
        level_text, level_color = _LEVEL_STYLE[entry.level]
        lines.append(
            {
                "timestamp": f"[{clock}]",
                "level": level_text,
                "color": level_color,
                "message": entry.message,
            }
        )
    return lines


def order_book_rows(order_book: OrderBook, levels: int = DEFAULT_BOOK_LEVELS) -> list[dict]:
    """Asks from highest to lowest, a spread row, then bids from highest to lowest.

    An empty book gives no rows.
    """
    if order_book.best_bid() is None and order_book.best_ask() is None:
        return []
    bids, asks = order_book.get_depth(levels)
    rows = [
        {"size": _fixed(size, 4), "price": _fixed(price, 4), "side": "ASK", "color": RED}
        for price, size in reversed(asks)
    ]
    if bids and asks:
        best_bid, best_ask = bids[0][0], asks[0][0]
        spread = best_ask - best_bid
        spread_pct = spread / ((best_bid + best_ask) / 2) * 100
        rows.append(
            {
                "size": "",
                "price": f"Spread: {_fixed(spread, 4)} ({_fixed(spread_pct, 2)}%)",
                "side": "",
                "color": GREY,
            }
        )
    rows.extend(
        {"size": _fixed(size, 4), "price": _fixed(price, 4), "side": "BID", "color": GREEN}
        for price, size in bids
    )
    return rows


def order_book_stats(order_book: OrderBook) -> list[str]:
    """Mid price, volume-weighted mid and update count, where available."""
    stats = []
    mid = order_book.mid_price()
    if mid is not None:
        stats.append(f"Mid: {_fixed(mid, 4)}")
    vwap = order_book.volume_weighted_mid(VWAP_DEPTH)
    if vwap is not None:
        stats.append(f"VWAP({VWAP_DEPTH}): {_fixed(vwap, 4)}")
    stats.append(f"Updates: {order_book.sequence}")
    return stats


def positions_rows(position_manager: PositionManager) -> list[dict]:
    """One row per open position; flat positions are left out."""
    rows = []
    for position in position_manager.all_positions():
        if position.size == 0:
            continue
        value = position.size * position.mark_price
        rows.append(
            {
                "symbol": position.symbol,
                "size": _fixed(position.size, 4),
                "size_color": GREEN if position.size > 0 else RED,
                "entry_price": format_price(position.entry_price, 4),
                "mark_price": format_price(position.mark_price, 4),
                "unrealized_pnl": format_price(position.unrealized_pnl, 2),
                "pnl_color": _sign_color(position.unrealized_pnl),
                "value": format_price(abs(value), 2),
            }
        )
    return rows


def positions_summary(position_manager: PositionManager) -> dict:
    """Profit and loss totals, net exposure and fees as display labels."""
    total = position_manager.total_pnl()
    return {
        "total_pnl": f"Total PnL: {format_price(total, 2)}",
        "total_pnl_color": _sign_color(total),
        "unrealized": f"Unrealized: {format_price(position_manager.total_unrealized_pnl(), 2)}",
        "realized": f"Realized: {format_price(position_manager.realized_pnl, 2)}",
        "net_exposure": f"Net Exposure: {format_price(position_manager.net_exposure(), 2)}",
        "total_fees": f"Total Fees: {format_price(position_manager.total_fees, 2)}",
    }