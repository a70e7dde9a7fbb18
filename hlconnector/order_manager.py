"""Order tracking with an event stream of order changes."""

from __future__ import annotations

import queue
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from .types import NewOrder, Order, OrderAction, OrderStatus, Side


@dataclass(frozen=True)
class OrderPlaced:
    order: Order


@dataclass(frozen=True)
class OrderUpdated:
    order: Order


@dataclass(frozen=True)
class OrderCancelled:
    order_id: uuid.UUID


@dataclass(frozen=True)
class OrderFilled:
    order: Order


OrderEvent = Union[OrderPlaced, OrderUpdated, OrderCancelled, OrderFilled]


class OrderManager:
    """Keeps orders by id and symbol and publishes changes on ``events``."""

    def __init__(self) -> None:
        self.orders: dict[uuid.UUID, Order] = {}
        self.orders_by_symbol: dict[str, list[uuid.UUID]] = {}
        self.pending_actions: list[OrderAction] = []
        self.events: "queue.SimpleQueue[OrderEvent]" = queue.SimpleQueue()
        self._lock = threading.RLock()

    def add_order(self, new_order: NewOrder) -> uuid.UUID:
        """Record a new pending order and return its id."""
        now = datetime.now(timezone.utc)
        order = Order(
            id=uuid.uuid4(),
            symbol=new_order.symbol,
            side=new_order.side,
            order_type=new_order.order_type,
            price=new_order.price,
            size=new_order.size,
            client_id=new_order.client_id,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.orders[order.id] = order
            self.orders_by_symbol.setdefault(order.symbol, []).append(order.id)
        self.events.put(OrderPlaced(replace(order)))
        return order.id

    def update_order(
        self,
        order_id: uuid.UUID,
        status: OrderStatus,
        filled_size: Optional[Decimal] = None,
    ) -> None:
        """Change an order's status and fill; unknown ids are ignored."""
        with self._lock:
            order = self.orders.get(order_id)
            if order is None:
                return
            order.status = status
            order.updated_at = datetime.now(timezone.utc)
            if filled_size is not None:
                order.filled_size = filled_size
                order.remaining_size = order.size - filled_size
            snapshot = replace(order)
        self.events.put(OrderUpdated(snapshot))
        if status is OrderStatus.FILLED:
            self.events.put(OrderFilled(replace(snapshot)))

    def cancel_order(self, order_id: uuid.UUID) -> None:
        """Queue a cancel action for the order."""
        with self._lock:
            self.pending_actions.append(OrderAction.cancel(order_id))
        self.events.put(OrderCancelled(order_id))

    def cancel_all_orders(self, symbol: Optional[str] = None) -> None:
        """Queue cancels for every active order, optionally of one symbol."""
        with self._lock:
            ids = [order.id for order in self._active(symbol)]
            for order_id in ids:
                self.cancel_order(order_id)

    def _active(self, symbol: Optional[str]) -> list[Order]:
        if symbol is None:
            candidates = self.orders.values()
        else:
            candidates = (
                self.orders[oid]
                for oid in self.orders_by_symbol.get(symbol, [])
                if oid in self.orders
            )
        return [order for order in candidates if order.is_active()]

    def get_active_orders(self, symbol: Optional[str] = None) -> list[Order]:
        with self._lock:
            return [replace(order) for order in self._active(symbol)]

    def get_orders_by_side(self, symbol: str, side: Side) -> list[Order]:
        return [order for order in self.get_active_orders(symbol) if order.side is side]

    def drain_pending_actions(self) -> list[OrderAction]:
        with self._lock:
            actions, self.pending_actions = self.pending_actions, []
        return actions

    def get_order_count(self, symbol: str) -> tuple[int, int]:
        """Number of active buy and sell orders for the symbol."""
        return (
            len(self.get_orders_by_side(symbol, Side.BUY)),
            len(self.get_orders_by_side(symbol, Side.SELL)),
        )

    def get_total_exposure(self, symbol: str) -> tuple[Decimal, Decimal]:
        """Notional of remaining size on the buy and sell side."""
        buy = sell = Decimal(0)
        for order in self.get_active_orders(symbol):
            exposure = order.remaining_size * order.price
            if order.side is Side.BUY:
                buy += exposure
            else:
                sell += exposure
        return buy, sell

    def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        with self._lock:
            order = self.orders.get(order_id)
            return replace(order) if order is not None else None

    def __len__(self) -> int:
        return len(self.orders)