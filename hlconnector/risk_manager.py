"""Pre-trade risk checks, limit monitoring and circuit breakers."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .types import NewOrder, RiskLimits, Side

_ZERO = Decimal(0)
_LEVERAGE_BASE = Decimal(1000)
_MAX_SCORE = Decimal(100)
_DAY_SECONDS = 86400.0
_U32_MAX = 2**32 - 1


@dataclass
class PositionLimit:
    symbol: str
    max_long: Decimal
    max_short: Decimal
    max_net: Decimal
    current_long: Decimal = _ZERO
    current_short: Decimal = _ZERO
    current_net: Decimal = _ZERO


@dataclass
class ExposureLimit:
    symbol: str
    max_notional: Decimal
    max_leverage: Decimal
    current_notional: Decimal = _ZERO
    current_leverage: Decimal = _ZERO


@dataclass
class VolatilityLimit:
    symbol: str
    max_spread_bps: int
    max_price_change_bps: int
    current_spread_bps: int = 0
    last_price: Decimal = _ZERO
    price_change_bps: int = 0


class CircuitBreakerType(Enum):
    MAX_DAILY_LOSS = "MaxDailyLoss"
    MAX_POSITION_SIZE = "MaxPositionSize"
    MAX_EXPOSURE = "MaxExposure"
    MAX_VOLATILITY = "MaxVolatility"
    MAX_TRADES_PER_MINUTE = "MaxTradesPerMinute"
    MAX_ORDERS_PER_SECOND = "MaxOrdersPerSecond"


@dataclass
class CircuitBreaker:
    """A trip switch; times are monotonic seconds."""

    id: str
    symbol: str
    trigger_type: CircuitBreakerType
    threshold: Decimal
    cooldown_duration: float
    current_value: Decimal = _ZERO
    is_triggered: bool = False
    triggered_at: Optional[float] = None

    def is_active(self, now: Optional[float] = None) -> bool:
        """True while triggered and still inside the cooldown."""
        if not self.is_triggered or self.triggered_at is None:
            return False
        now = time.monotonic() if now is None else now
        return now - self.triggered_at < self.cooldown_duration


@dataclass
class RiskMetrics:
    total_exposure: Decimal = _ZERO
    total_pnl: Decimal = _ZERO
    max_drawdown: Decimal = _ZERO
    sharpe_ratio: Decimal = _ZERO
    win_rate: Decimal = _ZERO
    avg_trade_size: Decimal = _ZERO
    last_updated: float = 0.0


class RiskSeverity(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class LimitExceeded:
    limit_type: str
    symbol: str
    current_value: Decimal
    limit_value: Decimal
    severity: RiskSeverity


@dataclass(frozen=True)
class CircuitBreakerTriggered:
    breaker_id: str
    symbol: str
    trigger_type: CircuitBreakerType
    threshold: Decimal
    current_value: Decimal


@dataclass(frozen=True)
class RiskWarning:
    message: str
    symbol: str
    severity: RiskSeverity


@dataclass(frozen=True)
class PositionRisk:
    symbol: str
    position_size: Decimal
    exposure: Decimal
    pnl: Decimal
    risk_score: Decimal


RiskEvent = Union[LimitExceeded, CircuitBreakerTriggered, RiskWarning, PositionRisk]


class OrderRiskError(ValueError):
    """Raised when an order fails a pre-trade risk check."""


def _threshold_as_count(threshold: Decimal) -> int:
    """The threshold read as a whole unsigned count, or 0 if it is not one."""
    text = str(threshold)
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        return 0
    value = int(digits)
    return value if value <= _U32_MAX else 0


class RiskManager:
    """Holds per-symbol limits and circuit breakers and reports breaches on ``events``."""

    def __init__(self) -> None:
        self.risk_limits: dict[str, RiskLimits] = {}
        self.position_limits: dict[str, PositionLimit] = {}
        self.exposure_limits: dict[str, ExposureLimit] = {}
        self.volatility_limits: dict[str, VolatilityLimit] = {}
        self.circuit_breakers: list[CircuitBreaker] = []
        self.events: "queue.SimpleQueue[RiskEvent]" = queue.SimpleQueue()
        self.daily_pnl: Decimal = _ZERO
        self.daily_trades: int = 0
        self.last_reset: float = time.monotonic()
        self._metrics = RiskMetrics(last_updated=time.monotonic())
        self._lock = threading.RLock()
        self._timer_stop: Optional[threading.Event] = None
        self._timer_thread: Optional[threading.Thread] = None

    def add_risk_limits(self, symbol: str, limits: RiskLimits) -> None:
        with self._lock:
            self.risk_limits[symbol] = limits

    def add_position_limit(self, symbol: str, limit: PositionLimit) -> None:
        with self._lock:
            self.position_limits[symbol] = limit

    def add_exposure_limit(self, symbol: str, limit: ExposureLimit) -> None:
        with self._lock:
            self.exposure_limits[symbol] = limit

    def add_volatility_limit(self, symbol: str, limit: VolatilityLimit) -> None:
        with self._lock:
            self.volatility_limits[symbol] = limit

    def add_circuit_breaker(self, breaker: CircuitBreaker) -> None:
        with self._lock:
            self.circuit_breakers.append(breaker)

    def check_order_risk(self, order: NewOrder) -> None:
        """Raise OrderRiskError if the order breaks a limit or meets an active breaker."""
        symbol = order.symbol
        with self._lock:
            position_limit = self.position_limits.get(symbol)
            if position_limit is not None:
                if order.side is Side.BUY:
                    new_position = position_limit.current_net + order.size
                else:
                    new_position = position_limit.current_net - order.size
                if abs(new_position) > position_limit.max_net:
                    raise OrderRiskError(
                        f"Order would exceed position limit: {abs(new_position)} > "
                        f"{position_limit.max_net}"
                    )

            exposure_limit = self.exposure_limits.get(symbol)
            if exposure_limit is not None:
                new_exposure = exposure_limit.current_notional + order.price * order.size
                if new_exposure > exposure_limit.max_notional:
                    raise OrderRiskError(
                        f"Order would exceed exposure limit: {new_exposure} > "
                        f"{exposure_limit.max_notional}"
                    )

            limits = self.risk_limits.get(symbol)
            if limits is not None and self.daily_pnl < -limits.max_daily_loss:
                raise OrderRiskError(
                    f"Daily loss limit exceeded: {self.daily_pnl} < {-limits.max_daily_loss}"
                )

            now = time.monotonic()
            for breaker in self.circuit_breakers:
                if breaker.symbol == symbol and breaker.is_active(now):
                    raise OrderRiskError(f"Circuit breaker {breaker.id} is still active")

    def update_position(self, symbol: str, size: Decimal, price: Decimal) -> None:
        """Record a new position and report any position or exposure breach."""
        with self._lock:
            position_limit = self.position_limits.get(symbol)
            if position_limit is not None:
                position_limit.current_net = size
                if size > 0:
                    position_limit.current_long = size
                    position_limit.current_short = _ZERO
                else:
                    position_limit.current_long = _ZERO
                    position_limit.current_short = -size

            exposure_limit = self.exposure_limits.get(symbol)
            if exposure_limit is not None:
                exposure_limit.current_notional = abs(size) * price
                if exposure_limit.current_notional > 0:
                    exposure_limit.current_leverage = (
                        exposure_limit.current_notional / _LEVERAGE_BASE
                    )

            self._check_position_limits(symbol)
            self._check_exposure_limits(symbol)

    def update_pnl(self, pnl: Decimal) -> None:
        """Add to the daily result and report breaches of any daily loss limit."""
        with self._lock:
            self.daily_pnl += pnl
            for symbol, limits in self.risk_limits.items():
                if self.daily_pnl < -limits.max_daily_loss:
                    self.events.put(
                        LimitExceeded(
                            limit_type="daily_loss",
                            symbol=symbol,
                            current_value=self.daily_pnl,
                            limit_value=-limits.max_daily_loss,
                            severity=RiskSeverity.CRITICAL,
                        )
                    )
            self._metrics.total_pnl = self.daily_pnl
            self._metrics.last_updated = time.monotonic()

    def update_trade_count(self) -> None:
        """Count a trade and trip trade-rate breakers whose threshold is passed."""
        with self._lock:
            self.daily_trades += 1
            for breaker in self.circuit_breakers:
                if breaker.trigger_type is CircuitBreakerType.MAX_TRADES_PER_MINUTE:
                    if self.daily_trades > _threshold_as_count(breaker.threshold):
                        self._trigger_circuit_breaker(breaker)

    def update_volatility(
        self,
        symbol: str,
        spread_bps: int,
        price_change_bps: int,
        current_price: Decimal,
    ) -> None:
        with self._lock:
            limit = self.volatility_limits.get(symbol)
            if limit is None:
                return
            limit.current_spread_bps = spread_bps
            limit.price_change_bps = price_change_bps
            limit.last_price = current_price
            if spread_bps > limit.max_spread_bps:
                self.events.put(
                    LimitExceeded(
                        limit_type="spread",
                        symbol=symbol,
                        current_value=Decimal(spread_bps),
                        limit_value=Decimal(limit.max_spread_bps),
                        severity=RiskSeverity.HIGH,
                    )
                )
            if price_change_bps > limit.max_price_change_bps:
                self.events.put(
                    LimitExceeded(
                        limit_type="price_change",
                        symbol=symbol,
                        current_value=Decimal(price_change_bps),
                        limit_value=Decimal(limit.max_price_change_bps),
                        severity=RiskSeverity.HIGH,
                    )
                )

    def _check_position_limits(self, symbol: str) -> None:
        limit = self.position_limits.get(symbol)
        if limit is not None and abs(limit.current_net) > limit.max_net:
            self.events.put(
                LimitExceeded(
                    limit_type="position_size",
                    symbol=symbol,
                    current_value=abs(limit.current_net),
                    limit_value=limit.max_net,
                    severity=RiskSeverity.CRITICAL,
                )
            )

    def _check_exposure_limits(self, symbol: str) -> None:
        limit = self.exposure_limits.get(symbol)
        if limit is None:
            return
        if limit.current_notional > limit.max_notional:
            self.events.put(
                LimitExceeded(
                    limit_type="exposure",
                    symbol=symbol,
                    current_value=limit.current_notional,
                    limit_value=limit.max_notional,
                    severity=RiskSeverity.HIGH,
                )
            )
        if limit.current_leverage > limit.max_leverage:
            self.events.put(
                LimitExceeded(
                    limit_type="leverage",
                    symbol=symbol,
                    current_value=limit.current_leverage,
                    limit_value=limit.max_leverage,
                    severity=RiskSeverity.CRITICAL,
                )
            )

    def _trigger_circuit_breaker(self, breaker: CircuitBreaker) -> None:
        breaker.is_triggered = True
        breaker.triggered_at = time.monotonic()
        self.events.put(
            CircuitBreakerTriggered(
                breaker_id=breaker.id,
                symbol=breaker.symbol,
                trigger_type=breaker.trigger_type,
                threshold=breaker.threshold,
                current_value=breaker.current_value,
            )
        )

    def _reset(self, now: float) -> None:
        self.daily_pnl = _ZERO
        self.daily_trades = 0
        self.last_reset = now
        for breaker in self.circuit_breakers:
            breaker.is_triggered = False
            breaker.triggered_at = None

    def reset_daily_metrics(self) -> None:
        """Clear the daily result, trade count and every circuit breaker."""
        with self._lock:
            self._reset(time.monotonic())

    def reset_if_due(self, now: float) -> bool:
        """Reset if a full day has passed since the last reset; report whether it did."""
        with self._lock:
            if now - self.last_reset >= _DAY_SECONDS:
                self._reset(now)
                return True
            return False

    def risk_score(self, symbol: str) -> Decimal:
        """A weighted 0-100 usage score; zero maxima raise ZeroDivisionError."""
        score = _ZERO
        with self._lock:
            position_limit = self.position_limits.get(symbol)
            if position_limit is not None:
                score += abs(position_limit.current_net) / position_limit.max_net * 40
            exposure_limit = self.exposure_limits.get(symbol)
            if exposure_limit is not None:
                score += exposure_limit.current_notional / exposure_limit.max_notional * 30
            vol = self.volatility_limits.get(symbol)
            if vol is not None:
                score += Decimal(vol.current_spread_bps) / Decimal(vol.max_spread_bps) * 20
                score += (
                    Decimal(vol.price_change_bps) / Decimal(vol.max_price_change_bps) * 10
                )
        return min(score, _MAX_SCORE)

    def risk_metrics(self) -> RiskMetrics:
        with self._lock:
            return replace(self._metrics)

    def is_circuit_breaker_active(self, symbol: str) -> bool:
        now = time.monotonic()
        with self._lock:
            return any(
                b.symbol == symbol and b.is_active(now) for b in self.circuit_breakers
            )

    def start_daily_reset_timer(self, check_interval: float = 3600.0) -> None:
        """Check for a due daily reset now and then every ``check_interval`` seconds."""
        if self._timer_thread is not None and self._timer_thread.is_alive():
            return
        stop = threading.Event()

        def run() -> None:
            while not stop.is_set():
                self.reset_if_due(time.monotonic())
                stop.wait(check_interval)

        self._timer_stop = stop
        self._timer_thread = threading.Thread(target=run, name="daily-risk-reset", daemon=True)
        self._timer_thread.start()

    def stop_daily_reset_timer(self) -> None:
        if self._timer_stop is not None:
            self._timer_stop.set()
        if self._timer_thread is not None:
            self._timer_thread.join()
        self._timer_stop = None
        self._timer_thread = None