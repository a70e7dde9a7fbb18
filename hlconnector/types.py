"""Core trading value types: sides, statuses, orders, positions and fills."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Side(Enum):
    BUY = "Buy"
    SELL = "Sell"


class OrderStatus(Enum):
    PENDING = "Pending"
    SUBMITTED = "Submitted"
    PARTIALLY_FILLED = "PartiallyFilled"
    FILLED = "Filled"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"


ACTIVE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.SUBMITTED, OrderStatus.PARTIALLY_FILLED}
)


class OrderType(Enum):
    MARKET = "Market"
    LIMIT = "Limit"
    POST_ONLY = "PostOnly"


class OrderActionType(Enum):
    PLACE = "Place"
    CANCEL = "Cancel"
    MODIFY = "Modify"


@dataclass
class Order:
    """An order known to the order manager."""

    id: uuid.UUID
    symbol: str
    side: Side
    order_type: OrderType
    price: Decimal
    size: Decimal
    client_id: Optional[str] = None
    filled_size: Decimal = Decimal(0)
    remaining_size: Optional[Decimal] = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.remaining_size is None:
            self.remaining_size = self.size - self.filled_size

    def is_active(self) -> bool:
        """True while the order is pending, submitted or partially filled."""
        return self.status in ACTIVE_STATUSES


@dataclass
class Position:
    symbol: str
    size: Decimal
    entry_price: Decimal
    mark_price: Decimal
    unrealized_pnl: Decimal = Decimal(0)
    realized_pnl: Decimal = Decimal(0)
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass
class Fill:
    order_id: uuid.UUID
    symbol: str
    side: Side
    price: Decimal
    size: Decimal
    fee: Decimal = Decimal(0)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass
class NewOrder:
    """A request to place an order."""

    symbol: str
    side: Side
    order_type: OrderType
    price: Decimal
    size: Decimal
    client_id: Optional[str] = None


@dataclass
class OrderAction:
    """An instruction for the execution layer."""

    action_type: OrderActionType
    order: Optional[NewOrder] = None
    order_id: Optional[uuid.UUID] = None

    @classmethod
    def place(cls, order: NewOrder) -> "OrderAction":
        return cls(OrderActionType.PLACE, order=order)

    @classmethod
    def cancel(cls, order_id: uuid.UUID) -> "OrderAction":
        return cls(OrderActionType.CANCEL, order_id=order_id)


@dataclass
class RiskLimits:
    max_position_size: Decimal = Decimal(100)
    max_daily_loss: Decimal = Decimal(1000)
    max_order_size: Decimal = Decimal(10)
    max_orders_per_side: int = 5