"""A local price-level order book."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from itertools import islice
from typing import Optional

from .hl_msgs import OrderBookData

_TWO = Decimal(2)
_BPS = Decimal(10000)


def _parse_decimal(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return value if value.is_finite() else None


@dataclass
class OrderBook:
    """Bids and asks keyed by price, each mapping to size."""

    symbol: str
    bids: dict = field(default_factory=dict)
    asks: dict = field(default_factory=dict)
    last_update: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sequence: int = 0

    def update_from_tob(self, tob_data: OrderBookData) -> None:
        """Replace the book with the levels of a snapshot; bad levels are skipped."""
        self.bids.clear()
        self.asks.clear()
        for book, side in zip((self.bids, self.asks), tob_data.levels[:2]):
            for level in side:
                price, size = _parse_decimal(level.px), _parse_decimal(level.sz)
                if price is not None and size is not None:
                    book[price] = size
        self.last_update = datetime.now(timezone.utc)
        self.sequence += 1

    def _sorted_bids(self):
        return sorted(self.bids.items(), reverse=True)

    def _sorted_asks(self):
        return sorted(self.asks.items())

    def best_bid(self) -> Optional[tuple[Decimal, Decimal]]:
        if not self.bids:
            return None
        price = max(self.bids)
        return price, self.bids[price]

    def best_ask(self) -> Optional[tuple[Decimal, Decimal]]:
        if not self.asks:
            return None
        price = min(self.asks)
        return price, self.asks[price]

    def mid_price(self) -> Optional[Decimal]:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is None or ask is None:
            return None
        return (bid[0] + ask[0]) / _TWO

    def spread(self) -> Optional[Decimal]:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is None or ask is None:
            return None
        return ask[0] - bid[0]

    def spread_bps(self) -> Optional[Decimal]:
        spread, mid = self.spread(), self.mid_price()
        if spread is None or mid is None:
            return None
        return spread / mid * _BPS if mid > 0 else Decimal(0)

    def volume_weighted_mid(self, depth: int) -> Optional[Decimal]:
        """Average of the size-weighted bid and ask prices over the top levels."""

        def weighted(levels):
            volume = sum((size for _, size in levels), Decimal(0))
            total = sum((price * size for price, size in levels), Decimal(0))
            return volume, total

        bid_vol, bid_sum = weighted(list(islice(self._sorted_bids(), depth)))
        ask_vol, ask_sum = weighted(list(islice(self._sorted_asks(), depth)))
        if bid_vol > 0 and ask_vol > 0:
            return (bid_sum / bid_vol + ask_sum / ask_vol) / _TWO
        return None

    def get_depth(self, levels: int) -> tuple[list, list]:
        """Top bids (best first, descending) and top asks (best first, ascending)."""
        return self._sorted_bids()[:levels], self._sorted_asks()[:levels]