"""Position tracking with realized and unrealized profit and loss."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from .types import Fill, Position, RiskLimits, Side

_ZERO = Decimal(0)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_positive(value: Decimal) -> bool:
    """Sign test in which an unsigned zero counts as positive."""
    return not value.is_signed()


@dataclass(frozen=True)
class PositionUpdated:
    position: Position


@dataclass(frozen=True)
class FillProcessed:
    fill: Fill


@dataclass(frozen=True)
class PnlRealized:
    pnl: Decimal


PositionEvent = Union[PositionUpdated, FillProcessed, PnlRealized]


class RiskLimitError(ValueError):
    """Raised when an order would break a position or loss limit."""


class PositionManager:
    """Keeps one position per symbol and publishes changes on ``events``."""

    def __init__(self) -> None:
        self.positions: dict[str, Position] = {}
        self.realized_pnl: Decimal = _ZERO
        self.total_fees: Decimal = _ZERO
        self.events: "queue.SimpleQueue[PositionEvent]" = queue.SimpleQueue()
        self._lock = threading.RLock()

    def _position_for(self, symbol: str, mark_price: Decimal) -> Position:
        position = self.positions.get(symbol)
        if position is None:
            position = Position(
                symbol=symbol,
                size=_ZERO,
                entry_price=_ZERO,
                mark_price=mark_price,
            )
            self.positions[symbol] = position
        return position

    def update_position(
        self,
        symbol: str,
        size: Decimal,
        entry_price: Decimal,
        mark_price: Decimal,
    ) -> None:
        """Set a position's size, entry price and mark price directly."""
        with self._lock:
            position = self._position_for(symbol, mark_price)
            position.size = size
            position.entry_price = entry_price
            position.mark_price = mark_price
            position.updated_at = _utc_now()
            if position.size != 0:
                position.unrealized_pnl = (mark_price - entry_price) * size
            else:
                position.unrealized_pnl = _ZERO
            snapshot = replace(position)
        self.events.put(PositionUpdated(snapshot))

    def process_fill(self, fill: Fill) -> None:
        """Apply a fill to its position, realizing profit on any reduction."""
        realized: Optional[Decimal] = None
        with self._lock:
            position = self._position_for(fill.symbol, fill.price)
            fill_size = fill.size if fill.side is Side.BUY else -fill.size

            if position.size != 0 and _is_positive(position.size) != _is_positive(fill_size):
                reducing = min(abs(fill_size), abs(position.size))
                if fill.side is Side.SELL:
                    per_unit = fill.price - position.entry_price
                else:
                    per_unit = position.entry_price - fill.price
                realized = per_unit * reducing
                position.realized_pnl += realized
                self.realized_pnl += realized

            new_size = position.size + fill_size
            if new_size == 0:
                position.size = _ZERO
                position.entry_price = _ZERO
                position.unrealized_pnl = _ZERO
            elif position.size == 0 or _is_positive(position.size) != _is_positive(new_size):
                position.size = new_size
                position.entry_price = fill.price
            else:
                total_cost = position.size * position.entry_price + fill_size * fill.price
                position.size = new_size
                position.entry_price = total_cost / new_size

            position.mark_price = fill.price
            position.updated_at = _utc_now()
            self.total_fees += fill.fee

            if position.size != 0:
                position.unrealized_pnl = (
                    position.mark_price - position.entry_price
                ) * position.size
            snapshot = replace(position)

        if realized is not None:
            self.events.put(PnlRealized(realized))
        self.events.put(FillProcessed(fill))
        self.events.put(PositionUpdated(snapshot))

    def update_mark_prices(self, symbol: str, mark_price: Decimal) -> None:
        """Revalue an existing position at a new mark; unknown symbols are ignored."""
        with self._lock:
            position = self.positions.get(symbol)
            if position is None:
                return
            position.mark_price = mark_price
            if position.size != 0:
                position.unrealized_pnl = (mark_price - position.entry_price) * position.size
            position.updated_at = _utc_now()
            snapshot = replace(position)
        self.events.put(PositionUpdated(snapshot))

    def get_position(self, symbol: str) -> Optional[Position]:
        with self._lock:
            position = self.positions.get(symbol)
            return replace(position) if position is not None else None

    def total_unrealized_pnl(self) -> Decimal:
        with self._lock:
            return sum((p.unrealized_pnl for p in self.positions.values()), _ZERO)

    def total_pnl(self) -> Decimal:
        with self._lock:
            return self.realized_pnl + self.total_unrealized_pnl()

    def position_value(self, symbol: str) -> Decimal:
        """Signed notional of a position at its mark price."""
        with self._lock:
            position = self.positions.get(symbol)
            if position is None:
                return _ZERO
            return position.size * position.mark_price

    def net_exposure(self) -> Decimal:
        """Sum of absolute notionals across all positions."""
        with self._lock:
            return sum(
                (abs(p.size) * p.mark_price for p in self.positions.values()), _ZERO
            )

    def check_risk_limits(
        self, limits: RiskLimits, symbol: str, new_order_size: Decimal
    ) -> None:
        """Raise RiskLimitError if the order would break the position or loss limit."""
        position = self.get_position(symbol)
        current = position.size if position is not None else _ZERO
        new_position_size = abs(current + new_order_size)
        if new_position_size > limits.max_position_size:
            raise RiskLimitError(
                f"Position size {new_position_size} would exceed limit "
                f"{limits.max_position_size}"
            )
        total = self.total_pnl()
        if total < -limits.max_daily_loss:
            raise RiskLimitError(
                f"Daily loss {total} exceeds limit {limits.max_daily_loss}"
            )

    def all_positions(self) -> list[Position]:
        with self._lock:
            return [replace(p) for p in self.positions.values()]

    def __len__(self) -> int:
        return len(self.positions)