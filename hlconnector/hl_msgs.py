"""Order book messages as received from the exchange stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _debug_str(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass
class PriceLevel:
    px: str
    sz: str
    n: int

    @classmethod
    def from_dict(cls, data: Any) -> "PriceLevel":
        try:
            px, sz, n = data["px"], data["sz"], data["n"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid price level: {data!r}") from exc
        if not isinstance(px, str) or not isinstance(sz, str) or not _is_uint(n):
            raise ValueError(f"invalid price level: {data!r}")
        return cls(px, sz, n)

    def to_dict(self) -> dict:
        return {"px": self.px, "sz": self.sz, "n": self.n}

    def _debug(self) -> str:
        return f"PriceLevel {{ px: {_debug_str(self.px)}, sz: {_debug_str(self.sz)}, n: {self.n} }}"


@dataclass
class OrderBookData:
    coin: str
    time: int
    levels: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "OrderBookData":
        try:
            coin, time, levels = data["coin"], data["time"], data["levels"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid order book data: {data!r}") from exc
        if not isinstance(coin, str) or not _is_uint(time) or not isinstance(levels, list):
            raise ValueError(f"invalid order book data: {data!r}")
        parsed = []
        for side in levels:
            if not isinstance(side, list):
                raise ValueError(f"invalid level list: {side!r}")
            parsed.append([PriceLevel.from_dict(level) for level in side])
        return cls(coin, time, parsed)

    def to_dict(self) -> dict:
        return {
            "coin": self.coin,
            "time": self.time,
            "levels": [[level.to_dict() for level in side] for side in self.levels],
        }

    def top_of_book(self) -> Optional[tuple[PriceLevel, PriceLevel]]:
        """Best bid and best ask, or None if either side is missing."""
        if len(self.levels) < 2 or not self.levels[0] or not self.levels[1]:
            return None
        return self.levels[0][0], self.levels[1][0]

    def generate_id(self) -> str:
        """An identifier built from the timestamp and the top of the book."""
        tob = self.top_of_book()
        if tob is None:
            tob_text = "None"
        else:
            tob_text = f"Some(({tob[0]._debug()}, {tob[1]._debug()}))"
        return f"{self.time}{tob_text}"


@dataclass
class TobMsg:
    channel: str
    data: OrderBookData

    @classmethod
    def from_dict(cls, data: Any) -> "TobMsg":
        try:
            channel, payload = data["channel"], data["data"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid book message: {data!r}") from exc
        if not isinstance(channel, str):
            raise ValueError(f"invalid channel: {channel!r}")
        return cls(channel, OrderBookData.from_dict(payload))

    def to_dict(self) -> dict:
        return {"channel": self.channel, "data": self.data.to_dict()}