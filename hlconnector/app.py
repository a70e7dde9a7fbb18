"""The trading application state: components, event handling and the activity log."""

from __future__ import annotations

import queue
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from .event_bus import EventBus, EventBusConfig
from .event_types import (
    ConnectionEventKind,
    ConnectionNotification,
    MarketDataEvent,
    OrderRejected,
    RiskLimitExceeded,
    RiskNotification,
)
from .market_making import MarketMakingConfig, MarketMakingStrategy
from .order_book import OrderBook
from .order_manager import (
    OrderCancelled,
    OrderFilled,
    OrderManager,
    OrderPlaced,
    OrderUpdated,
)
from .position_manager import (
    FillProcessed,
    PnlRealized,
    PositionManager,
    PositionUpdated,
)
from .types import NewOrder, OrderType, Side

MAX_LOG_ENTRIES = 1000
DEFAULT_SYMBOL = "HYPE"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_decimal(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError, ValueError):
        return None
    return value if value.is_finite() else None


def _drain(source: "queue.SimpleQueue"):
    while True:
        try:
            yield source.get_nowait()
        except queue.Empty:
            return


class LogLevel(Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    DEBUG = "Debug"


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=_utc_now)


class ConnectionState(Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    ERROR = "Error"


@dataclass(frozen=True)
class ConnectionStatus:
    """Connection state; ``error`` is set only in the error state."""

    state: ConnectionState = ConnectionState.DISCONNECTED
    error: Optional[str] = None


@dataclass
class ManualOrderState:
    """The fields of the manual order form, kept as entered."""

    side: Side = Side.BUY
    order_type: OrderType = OrderType.LIMIT
    price: str = "0.0"
    size: str = "0.0"
    symbol: str = DEFAULT_SYMBOL

    def build_order(self, side: Side) -> Optional[NewOrder]:
        """The order the form describes, or None if price or size does not parse."""
        price, size = _parse_decimal(self.price), _parse_decimal(self.size)
        if price is None or size is None:
            return None
        client_id = "manual_buy" if side is Side.BUY else "manual_sell"
        return NewOrder(
            symbol=self.symbol,
            side=side,
            order_type=self.order_type,
            price=price,
            size=size,
            client_id=client_id,
        )


class TradingApp:
    """Wires the trading components to the event bus and records what happens."""

    def __init__(self, event_bus_config: Optional[EventBusConfig] = None) -> None:
        self.event_bus = EventBus(event_bus_config or EventBusConfig())
        self.event_publisher = self.event_bus.publisher()

        self.order_manager = OrderManager()
        self.position_manager = PositionManager()
        self.order_book = OrderBook(DEFAULT_SYMBOL)
        self.market_making_strategy = MarketMakingStrategy(MarketMakingConfig())

        self.system_events = self.event_bus.subscribe("*")
        self.event_bus.start_processing()

        self.connection_status = ConnectionStatus()
        self.logs: deque[LogEntry] = deque(maxlen=MAX_LOG_ENTRIES)
        self.selected_symbol = DEFAULT_SYMBOL
        self.manual_order = ManualOrderState()

        self.show_order_book = True
        self.show_positions = True
        self.show_strategy = True
        self.show_logs = True

    def __enter__(self) -> "TradingApp":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def add_log(self, level: LogLevel, message: str) -> None:
        """Append a log entry, keeping only the most recent entries."""
        self.logs.append(LogEntry(level=level, message=message))

    def process_events(self) -> None:
        """Handle every order, position and system event waiting to be read."""
        for event in _drain(self.order_manager.events):
            self._on_order_event(event)
        for event in _drain(self.position_manager.events):
            self._on_position_event(event)
        for event in _drain(self.system_events):
            self._on_system_event(event)

    def _on_order_event(self, event) -> None:
        if isinstance(event, OrderPlaced):
            order = event.order
            self.add_log(
                LogLevel.INFO,
                f"Order placed: {order.id} - {order.side.value} {order.size} @ {order.price}",
            )
        elif isinstance(event, OrderUpdated):
            order = event.order
            self.add_log(LogLevel.INFO, f"Order updated: {order.id} - {order.status.value}")
        elif isinstance(event, OrderCancelled):
            self.add_log(LogLevel.INFO, f"Order cancelled: {event.order_id}")
        elif isinstance(event, OrderFilled):
            order = event.order
            self.add_log(LogLevel.INFO, f"Order filled: {order.id} - {order.filled_size} filled")

    def _on_position_event(self, event) -> None:
        if isinstance(event, PositionUpdated):
            position = event.position
            self.add_log(
                LogLevel.INFO,
                f"Position updated: {position.symbol} - size: {position.size}, "
                f"PnL: {position.unrealized_pnl}",
            )
        elif isinstance(event, FillProcessed):
            fill = event.fill
            self.add_log(
                LogLevel.INFO,
                f"Fill processed: {fill.symbol} {fill.size} @ {fill.price} (fee: {fill.fee})",
            )
        elif isinstance(event, PnlRealized):
            self.add_log(LogLevel.INFO, f"PnL realized: ${event.pnl:.2f}")

    def _on_system_event(self, event) -> None:
        if isinstance(event, MarketDataEvent):
            self.order_book.update_from_tob(event.data.data)
            mid = self.order_book.mid_price()
            if mid is not None:
                self.position_manager.update_mark_prices(event.symbol, mid)
        elif isinstance(event, RiskNotification):
            risk = event.event
            if isinstance(risk, RiskLimitExceeded):
                self.add_log(
                    LogLevel.ERROR,
                    f"Risk limit exceeded for {event.symbol}: {risk.limit_type} = "
                    f"{risk.current_value} (limit: {risk.limit_value})",
                )
            elif isinstance(risk, OrderRejected):
                self.add_log(LogLevel.WARNING, f"Order {risk.order_id} rejected: {risk.reason}")
        elif isinstance(event, ConnectionNotification):
            kind = event.event.kind
            if kind is ConnectionEventKind.CONNECTED:
                self.connection_status = ConnectionStatus(ConnectionState.CONNECTED)
                self.add_log(LogLevel.INFO, f"Connected: {event.connection_id}")
            elif kind is ConnectionEventKind.DISCONNECTED:
                self.connection_status = ConnectionStatus(ConnectionState.DISCONNECTED)
                self.add_log(LogLevel.WARNING, f"Disconnected: {event.connection_id}")
            elif kind is ConnectionEventKind.ERROR:
                error = event.event.error or ""
                self.connection_status = ConnectionStatus(ConnectionState.ERROR, error)
                self.add_log(
                    LogLevel.ERROR, f"Connection error {event.connection_id}: {error}"
                )

    def place_manual_order(self, side: Side) -> Optional[uuid.UUID]:
        """Place the order in the manual form; None if the form does not parse."""
        new_order = self.manual_order.build_order(side)
        if new_order is None:
            return None
        return self.order_manager.add_order(new_order)

    def cancel_manual_orders(self) -> None:
        """Cancel every active order for the manual form's symbol."""
        self.order_manager.cancel_all_orders(self.manual_order.symbol)

    def close(self) -> None:
        """Stop the event bus."""
        self.event_bus.stop()