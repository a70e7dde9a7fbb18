"""Events carried on the system event bus."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional, Union

from .hl_msgs import TobMsg
from .order_manager import OrderEvent
from .position_manager import PositionEvent
from .types import OrderAction


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventPriority(IntEnum):
    """Delivery priority; higher values are more urgent."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class StrategyEventKind(Enum):
    STARTED = "Started"
    STOPPED = "Stopped"
    ORDERS_GENERATED = "OrdersGenerated"
    PARAMETERS_UPDATED = "ParametersUpdated"
    ERROR = "Error"


@dataclass
class StrategyEvent:
    """Something a strategy did; ``orders`` and ``error`` belong to their kinds."""

    kind: StrategyEventKind
    orders: list[OrderAction] = field(default_factory=list)
    error: Optional[str] = None


class ConnectionEventKind(Enum):
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    RECONNECTING = "Reconnecting"
    ERROR = "Error"
    MESSAGE_RECEIVED = "MessageReceived"
    MESSAGE_SENT = "MessageSent"


@dataclass
class ConnectionEvent:
    kind: ConnectionEventKind
    error: Optional[str] = None


@dataclass(frozen=True)
class RiskLimitExceeded:
    limit_type: str
    current_value: str
    limit_value: str


@dataclass(frozen=True)
class PositionSizeWarning:
    current_size: str
    limit: str


@dataclass(frozen=True)
class PnlWarning:
    current_pnl: str
    limit: str


@dataclass(frozen=True)
class OrderRejected:
    order_id: uuid.UUID
    reason: str


RiskEvent = Union[RiskLimitExceeded, PositionSizeWarning, PnlWarning, OrderRejected]


class SystemLevelEventKind(Enum):
    STARTUP = "Startup"
    SHUTDOWN = "Shutdown"
    CONFIGURATION_CHANGED = "ConfigurationChanged"
    PERFORMANCE_METRIC = "PerformanceMetric"
    ERROR = "Error"


@dataclass
class SystemLevelEvent:
    """A system-wide event; metric and error fields belong to their kinds."""

    kind: SystemLevelEventKind
    metric_name: Optional[str] = None
    value: Optional[float] = None
    unit: Optional[str] = None
    component: Optional[str] = None
    error: Optional[str] = None


class SystemEvent(ABC):
    """Base of every event that travels on the bus."""

    def priority(self) -> EventPriority:
        return EventPriority.NORMAL

    @abstractmethod
    def source(self) -> str:
        """The component that produced the event."""

    @abstractmethod
    def filter_topic(self) -> str:
        """The single topic that topic filters match against."""

    @abstractmethod
    def _topic_parts(self) -> list[str]:
        ...

    def topics(self) -> list[str]:
        """Every topic the event is delivered to, the global topic first."""
        return ["*", *self._topic_parts()]


@dataclass
class MarketDataEvent(SystemEvent):
    symbol: str
    data: TobMsg
    timestamp: datetime = field(default_factory=_utc_now)

    def priority(self) -> EventPriority:
        return EventPriority.LOW

    def source(self) -> str:
        return "market_data"

    def filter_topic(self) -> str:
        return f"market_data.{self.symbol}"

    def _topic_parts(self) -> list[str]:
        return ["market_data", f"market_data.{self.symbol}"]


@dataclass
class OrderNotification(SystemEvent):
    event: OrderEvent

    def source(self) -> str:
        return "order_manager"

    def filter_topic(self) -> str:
        return "orders"

    def _topic_parts(self) -> list[str]:
        return ["orders"]


@dataclass
class PositionNotification(SystemEvent):
    event: PositionEvent

    def source(self) -> str:
        return "position_manager"

    def filter_topic(self) -> str:
        return "positions"

    def _topic_parts(self) -> list[str]:
        return ["positions"]


@dataclass
class StrategyNotification(SystemEvent):
    strategy_name: str
    event: StrategyEvent
    timestamp: datetime = field(default_factory=_utc_now)

    def priority(self) -> EventPriority:
        if self.event.kind is StrategyEventKind.ERROR:
            return EventPriority.HIGH
        return EventPriority.NORMAL

    def source(self) -> str:
        return f"strategy:{self.strategy_name}"

    def filter_topic(self) -> str:
        return f"strategy.{self.strategy_name}"

    def _topic_parts(self) -> list[str]:
        return ["strategy", f"strategy.{self.strategy_name}"]


@dataclass
class ConnectionNotification(SystemEvent):
    connection_id: str
    event: ConnectionEvent
    timestamp: datetime = field(default_factory=_utc_now)

    def priority(self) -> EventPriority:
        if self.event.kind is ConnectionEventKind.ERROR:
            return EventPriority.HIGH
        return EventPriority.NORMAL

    def source(self) -> str:
        return f"connection:{self.connection_id}"

    def filter_topic(self) -> str:
        return f"connection.{self.connection_id}"

    def _topic_parts(self) -> list[str]:
        return ["connection", f"connection.{self.connection_id}"]


@dataclass
class RiskNotification(SystemEvent):
    symbol: str
    event: RiskEvent
    timestamp: datetime = field(default_factory=_utc_now)

    def priority(self) -> EventPriority:
        return EventPriority.HIGH

    def source(self) -> str:
        return "risk_manager"

    def filter_topic(self) -> str:
        return f"risk.{self.symbol}"

    def _topic_parts(self) -> list[str]:
        return ["risk", f"risk.{self.symbol}"]


@dataclass
class SystemNotification(SystemEvent):
    event: SystemLevelEvent
    timestamp: datetime = field(default_factory=_utc_now)

    def priority(self) -> EventPriority:
        if self.event.kind is SystemLevelEventKind.ERROR:
            return EventPriority.CRITICAL
        return EventPriority.NORMAL

    def source(self) -> str:
        return "system"

    def filter_topic(self) -> str:
        return "system"

    def _topic_parts(self) -> list[str]:
        return ["system"]